from __future__ import annotations

from flask import Blueprint, request, jsonify, abort, g

from models import storage
from models.comment import Comment
from models.user import Role
from models.video import Video
from models.schemas.comment import CommentCreateSchema, CommentOutSchema
from api.videos import get_playable_video
from utils.decorators import jwt_required, jwt_optional, roles_required

bp = Blueprint("comments", __name__)

comment_create_schema = CommentCreateSchema()
comment_out_schema = CommentOutSchema()
comments_out_schema = CommentOutSchema(many=True)


@bp.get("/videos/<video_id>/comments")
@jwt_optional()
def list_comments(video_id: str):
    """
    List top-level comments (newest first) with their replies (oldest first)
    ---
    tags:
      - Comments
    parameters:
      - in: path
        name: video_id
        type: string
        required: true
    responses:
      200:
        description: OK
      403:
        description: Private video
      404:
        description: Video not found
    """
    video = get_playable_video(video_id, g.current_user)
    session = storage.get_session()
    rows = (
        session.query(Comment)
        .filter(Comment.video_id == video.id)
        .filter(Comment.parent_id.is_(None))
        .filter(Comment.deleted_at.is_(None))
        .filter(Comment.is_hidden.is_(False))
        .order_by(Comment.created_at.desc())
        .all()
    )
    return jsonify({"success": True, "data": comments_out_schema.dump(rows)})


@bp.post("/videos/<video_id>/comments")
@jwt_required()
def create_comment(video_id: str):
    """
    Comment on a video, or reply to a top-level comment
    ---
    tags:
      - Comments
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      - in: path
        name: video_id
        type: string
        required: true
      - in: body
        name: body
        required: true
        schema:
          type: object
          properties:
            content: { type: string, minLength: 1, maxLength: 1000 }
            parent_id: { type: string }
    responses:
      201:
        description: Created
      403:
        description: Private video
      404:
        description: Video or parent comment not found
      422:
        description: Validation error
    """
    user = g.current_user
    video = get_playable_video(video_id, user)
    payload = request.get_json(silent=True) or {}
    data = comment_create_schema.load(payload)

    parent_id = data.get("parent_id")
    if parent_id:
        parent = storage.get(Comment, parent_id)
        if (
            not parent
            or parent.video_id != video.id
            or parent.parent_id is not None
            or parent.is_deleted
        ):
            abort(404, description="Parent comment not found")

    comment = Comment(
        video_id=video.id,
        user_id=user.id,
        parent_id=parent_id,
        content=data["content"],
    )
    storage.new(comment)
    video.comment_count = Video.comment_count + 1
    storage.new(video)
    storage.save()

    return jsonify({"success": True, "data": comment_out_schema.dump(comment)}), 201


@bp.post("/comments/<comment_id>/hide")
@roles_required([Role.MODERATOR, Role.ADMINISTRATOR])
def hide_comment(comment_id: str):
    """
    Hide a comment from listings - moderator/administrator
    ---
    tags:
      - Comments
    security:
      - Bearer: []
    parameters:
      - in: path
        name: comment_id
        type: string
        required: true
    responses:
      200:
        description: Hidden
      403:
        description: Insufficient role
      404:
        description: Not found
    """
    comment = storage.get(Comment, comment_id)
    if not comment or comment.is_deleted:
        abort(404, description="Comment not found")
    if not comment.is_hidden:
        comment.is_hidden = True
        # comment_count only counts comments that are shown
        video = comment.video
        video.comment_count = Video.comment_count - 1
        storage.new(video)
    comment.save()
    return jsonify({"success": True, "data": comment_out_schema.dump(comment)})
