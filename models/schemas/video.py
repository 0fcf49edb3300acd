from marshmallow import Schema, fields, pre_load, validate

from models.schemas.user import UserPublicSchema
from models.video import Visibility


class VideoUploadSchema(Schema):
    title = fields.String(required=True, validate=validate.Length(min=1, max=200))
    description = fields.String(allow_none=True, validate=validate.Length(max=5000))
    visibility = fields.Enum(Visibility, load_default=Visibility.PUBLIC)
    tags = fields.String(allow_none=True, validate=validate.Length(max=500))

    @pre_load
    def drop_blank(self, data, **kwargs):
        # Form posts send "" for untouched optional fields
        return {k: v for k, v in data.items() if v not in (None, "") or k == "title"}


class VideoOutSchema(Schema):
    id = fields.String()
    title = fields.String()
    description = fields.String(allow_none=True)
    tags = fields.String(allow_none=True)
    thumbnail_path = fields.String(allow_none=True)
    duration = fields.Integer(allow_none=True)
    file_size = fields.Integer(allow_none=True)
    view_count = fields.Integer()
    like_count = fields.Integer()
    comment_count = fields.Integer()
    visibility = fields.Enum(Visibility)
    status = fields.Method("get_status")
    created_at = fields.DateTime()
    updated_at = fields.DateTime()
    user = fields.Nested(UserPublicSchema)

    def get_status(self, obj):
        return getattr(obj.status, "value", obj.status)
