from marshmallow import Schema, fields, pre_load, validate, validates, ValidationError

from models.user import Role

USERNAME_RE = r"^[A-Za-z0-9_]+$"


def _norm_email(v):
    return v.strip().lower() if isinstance(v, str) else v


class UserCreateSchema(Schema):
    display_name = fields.String(required=True, validate=validate.Length(min=2, max=50))
    email = fields.Email(required=True)
    username = fields.String(
        required=True,
        validate=[
            validate.Length(min=3, max=30),
            validate.Regexp(USERNAME_RE, error="Only letters, digits and underscores are allowed."),
        ],
    )
    password = fields.String(required=True, load_only=True, validate=validate.Length(min=8, max=100))

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict):
            data = dict(data)
            if "email" in data:
                data["email"] = _norm_email(data["email"])
            if isinstance(data.get("display_name"), str):
                data["display_name"] = data["display_name"].strip()
        return data


class UserLoginSchema(Schema):
    # email or username
    identifier = fields.String(required=True, validate=validate.Length(min=1))
    password = fields.String(required=True, load_only=True, validate=validate.Length(min=1))

    @pre_load
    def normalize(self, data, **kwargs):
        # emails are stored lower-cased; usernames never contain '@'
        if isinstance(data, dict) and isinstance(data.get("identifier"), str):
            data = dict(data)
            ident = data["identifier"].strip()
            data["identifier"] = _norm_email(ident) if "@" in ident else ident
        return data


class RoleUpdateSchema(Schema):
    role = fields.String(required=True)

    @validates("role")
    def validate_role(self, value, **kwargs):
        allowed = [r.value for r in Role]
        if value not in allowed:
            raise ValidationError(f"role must be one of {allowed}")


class UserOutSchema(Schema):
    id = fields.String()
    username = fields.String()
    email = fields.String()
    display_name = fields.String()
    role = fields.Method("get_role")
    created_at = fields.DateTime()

    def get_role(self, obj):
        return Role(obj.role).value


class UserPublicSchema(Schema):
    """Uploader/commenter summary embedded in other payloads."""

    id = fields.String()
    username = fields.String()
    display_name = fields.String()
