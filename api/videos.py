from __future__ import annotations

import logging
import math
import os
import uuid
from typing import Tuple

from flask import Blueprint, request, jsonify, abort, g, current_app, url_for
from sqlalchemy import or_, func
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.utils import secure_filename

from models import storage
from models.like import Like
from models.user import User
from models.video import Video, VideoStatus, Visibility
from models.view import View
from models.schemas.video import VideoUploadSchema, VideoOutSchema
from services.errors import ValidationFailed
from utils.decorators import jwt_required, jwt_optional
from utils.security import hash_ip

logger = logging.getLogger(__name__)

bp = Blueprint("videos", __name__)

video_upload_schema = VideoUploadSchema()
video_out_schema = VideoOutSchema()
videos_out_schema = VideoOutSchema(many=True)

MAX_LIMIT = 100


def parse_pagination() -> Tuple[int, int]:
    try:
        page = int(request.args.get("page", "1"))
        limit = int(request.args.get("limit", "20"))
        page = max(page, 1)
        limit = max(1, min(limit, MAX_LIMIT))
        return page, limit
    except ValueError:
        abort(400, description="page and limit must be integers")


def parse_visibility():
    raw = request.args.get("visibility", Visibility.PUBLIC.value).upper()
    if raw == "ALL":
        return None
    try:
        return Visibility(raw)
    except ValueError:
        allowed = [v.value for v in Visibility] + ["ALL"]
        abort(400, description=f"visibility must be one of {allowed}")


def escape_like(text: str) -> str:
    """Make LIKE treat %, _ and the escape char itself as literals."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def get_playable_video(video_id: str, user) -> Video:
    """A READY, non-deleted video the caller may see; 404/403 otherwise."""
    video = storage.get(Video, video_id)
    if not video or video.is_deleted or video.status != VideoStatus.READY:
        abort(404, description="Video not found")
    if video.visibility == Visibility.PRIVATE and not video.is_owned_by(getattr(user, "id", None)):
        abort(403, description="Video is private")
    return video


def client_ip() -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.remote_addr or "unknown"


@bp.get("/videos")
@jwt_optional()
def list_videos():
    """
    List ready videos with pagination and search
    ---
    tags:
      - Videos
    parameters:
      - in: query
        name: page
        type: integer
        default: 1
      - in: query
        name: limit
        type: integer
        default: 20
      - in: query
        name: search
        type: string
        description: "Case-insensitive substring search on title, description and uploader display name"
      - in: query
        name: visibility
        type: string
        enum: [PUBLIC, UNLISTED, PRIVATE, ALL]
        default: PUBLIC
    responses:
      200:
        description: List of videos
    """
    session = storage.get_session()
    page, limit = parse_pagination()
    visibility = parse_visibility()
    search = (request.args.get("search") or "").strip()

    query = (
        session.query(Video)
        .filter(Video.deleted_at.is_(None))
        .filter(Video.status == VideoStatus.READY)
    )
    if visibility is not None:
        query = query.filter(Video.visibility == visibility)
    # Private videos are only ever listed for their owner
    owner_id = getattr(g.current_user, "id", None)
    if owner_id:
        query = query.filter(or_(Video.visibility != Visibility.PRIVATE, Video.user_id == owner_id))
    else:
        query = query.filter(Video.visibility != Visibility.PRIVATE)
    if search:
        pattern = f"%{escape_like(search.lower())}%"
        query = query.join(User, User.id == Video.user_id).filter(
            or_(
                func.lower(Video.title).like(pattern, escape="\\"),
                func.lower(Video.description).like(pattern, escape="\\"),
                func.lower(User.display_name).like(pattern, escape="\\"),
            )
        )

    total = query.count()
    rows = (
        query.order_by(Video.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return jsonify(
        {
            "success": True,
            "data": videos_out_schema.dump(rows),
            "meta": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": math.ceil(total / limit),
            },
        }
    )


@bp.get("/videos/mine")
@jwt_required()
def my_videos():
    """
    List the caller's videos in any processing state
    ---
    tags:
      - Videos
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    session = storage.get_session()
    rows = (
        session.query(Video)
        .filter(Video.user_id == g.current_user.id)
        .filter(Video.deleted_at.is_(None))
        .order_by(Video.created_at.desc())
        .all()
    )
    return jsonify({"success": True, "data": videos_out_schema.dump(rows)})


@bp.get("/videos/<video_id>")
@jwt_optional()
def get_video(video_id: str):
    """
    Get a single video; private or unprocessed videos are visible to their owner only
    ---
    tags:
      - Videos
    parameters:
      - in: path
        name: video_id
        type: string
        required: true
    responses:
      200:
        description: Video found
      403:
        description: Private video
      404:
        description: Not found
    """
    video = storage.get(Video, video_id)
    if not video or video.is_deleted:
        abort(404, description="Video not found")
    user_id = getattr(g.current_user, "id", None)
    if video.status != VideoStatus.READY and not video.is_owned_by(user_id):
        abort(404, description="Video not found")
    if video.visibility == Visibility.PRIVATE and not video.is_owned_by(user_id):
        abort(403, description="Video is private")
    return jsonify({"success": True, "data": video_out_schema.dump(video)})


@bp.post("/videos/upload")
@jwt_required()
def upload_video():
    """
    Upload a video file with its metadata
    ---
    tags:
      - Videos
    security:
      - Bearer: []
    consumes:
      - multipart/form-data
    parameters:
      - in: formData
        name: video
        type: file
        required: true
      - in: formData
        name: title
        type: string
        required: true
      - in: formData
        name: description
        type: string
      - in: formData
        name: visibility
        type: string
        enum: [PUBLIC, UNLISTED, PRIVATE]
      - in: formData
        name: tags
        type: string
    responses:
      201:
        description: Created, status PROCESSING
      413:
        description: File too large
      422:
        description: Validation error
    """
    video_file = request.files.get("video")
    if video_file is None or not video_file.filename:
        raise ValidationFailed("No video file provided", details={"video": ["No video file provided."]})
    if video_file.mimetype not in current_app.config["ALLOWED_VIDEO_TYPES"]:
        raise ValidationFailed(
            "Invalid file type",
            details={"video": ["Only MP4, WebM, MOV, and AVI files are allowed."]},
        )
    metadata = video_upload_schema.load(request.form.to_dict())

    video_id = str(uuid.uuid4())
    extension = os.path.splitext(secure_filename(video_file.filename))[1].lower()
    filename = f"{video_id}{extension}"
    videos_dir = os.path.join(current_app.config["UPLOAD_FOLDER"], "videos")
    os.makedirs(videos_dir, exist_ok=True)
    path = os.path.join(videos_dir, filename)
    video_file.save(path)

    video = Video(
        id=video_id,
        user_id=g.current_user.id,
        title=metadata["title"],
        description=metadata.get("description"),
        tags=metadata.get("tags"),
        visibility=metadata["visibility"],
        status=VideoStatus.PROCESSING,
        file_size=os.path.getsize(path),
        video_path=f"/uploads/videos/{filename}",
        thumbnail_path=url_for("thumbnail.thumbnail", video_id=video_id),
    )
    storage.new(video)
    try:
        storage.save()
    except SQLAlchemyError:
        os.remove(path)
        raise
    # TODO: enqueue the transcode/thumbnail job that moves the video to READY
    logger.info("User %s uploaded video %s (%d bytes)", g.current_user.id, video_id, video.file_size)

    return jsonify({"success": True, "data": video_out_schema.dump(video)}), 201


@bp.delete("/videos/<video_id>")
@jwt_required()
def delete_video(video_id: str):
    """
    Soft delete one of the caller's videos
    ---
    tags:
      - Videos
    security:
      - Bearer: []
    parameters:
      - in: path
        name: video_id
        type: string
        required: true
    responses:
      204:
        description: Deleted
      403:
        description: Not the owner
      404:
        description: Not found
    """
    video = storage.get(Video, video_id)
    if not video or video.is_deleted:
        abort(404, description="Video not found")
    if not video.is_owned_by(g.current_user.id):
        abort(403, description="Only the owner can delete this video")
    video.delete()
    return ("", 204)


@bp.post("/videos/<video_id>/like")
@jwt_required()
def toggle_like(video_id: str):
    """
    Like a video, or remove the caller's like if present
    ---
    tags:
      - Videos
    security:
      - Bearer: []
    parameters:
      - in: path
        name: video_id
        type: string
        required: true
    responses:
      200:
        description: "{ liked, like_count }"
      403:
        description: Private video
      404:
        description: Not found
    """
    user = g.current_user
    video = get_playable_video(video_id, user)
    session = storage.get_session()

    existing = (
        session.query(Like)
        .filter(Like.video_id == video.id, Like.user_id == user.id)
        .first()
    )
    if existing:
        storage.delete(existing)
        video.like_count = Video.like_count - 1
        liked = False
    else:
        storage.new(Like(video_id=video.id, user_id=user.id))
        video.like_count = Video.like_count + 1
        liked = True
    storage.new(video)
    storage.save()

    return jsonify({"success": True, "liked": liked, "like_count": video.like_count})


@bp.post("/videos/<video_id>/view")
@jwt_optional()
def record_view(video_id: str):
    """
    Record a view, at most once per client IP or signed-in user
    ---
    tags:
      - Videos
    parameters:
      - in: path
        name: video_id
        type: string
        required: true
    responses:
      200:
        description: View recorded
      403:
        description: Private video
      404:
        description: Not found
    """
    user = g.current_user
    video = get_playable_video(video_id, user)
    session = storage.get_session()
    ip_hash = hash_ip(client_ip())
    user_id = getattr(user, "id", None)

    seen_by = View.ip_hash == ip_hash
    if user_id:
        seen_by = or_(seen_by, View.user_id == user_id)
    existing = session.query(View).filter(View.video_id == video.id).filter(seen_by).first()

    counted = existing is None
    if counted:
        storage.new(View(video_id=video.id, user_id=user_id, ip_hash=ip_hash))
        video.view_count = Video.view_count + 1
        storage.new(video)
        storage.save()

    return jsonify(
        {
            "success": True,
            "message": "View recorded",
            "counted": counted,
            "view_count": video.view_count,
        }
    )
