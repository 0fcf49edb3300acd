from marshmallow import Schema, fields, validate

from models.schemas.user import UserPublicSchema


class CommentCreateSchema(Schema):
    content = fields.String(required=True, validate=validate.Length(min=1, max=1000))
    parent_id = fields.String(allow_none=True)


class ReplyOutSchema(Schema):
    id = fields.String()
    content = fields.String()
    parent_id = fields.String(allow_none=True)
    created_at = fields.DateTime()
    user = fields.Nested(UserPublicSchema)


class CommentOutSchema(ReplyOutSchema):
    replies = fields.Method("get_replies")

    def get_replies(self, obj):
        visible = [r for r in obj.replies if r.deleted_at is None and not r.is_hidden]
        visible.sort(key=lambda r: r.created_at)
        return ReplyOutSchema(many=True).dump(visible)
