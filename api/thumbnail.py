from flask import Blueprint, Response
from markupsafe import escape

bp = Blueprint("thumbnail", __name__)

# Placeholder until processed thumbnails exist
THUMBNAIL_SVG = """<svg width="320" height="180" xmlns="http://www.w3.org/2000/svg">
  <rect width="100%" height="100%" fill="#1f2937"/>
  <text x="50%" y="50%" text-anchor="middle" dy=".3em" font-family="Arial, sans-serif" font-size="16" fill="#9ca3af">Video Thumbnail</text>
  <text x="50%" y="65%" text-anchor="middle" dy=".3em" font-family="Arial, sans-serif" font-size="12" fill="#6b7280">ID: {video_id}</text>
</svg>
"""


@bp.get("/thumbnail/<video_id>")
def thumbnail(video_id: str):
    """
    Placeholder thumbnail
    ---
    tags:
      - Videos
    produces:
      - image/svg+xml
    parameters:
      - in: path
        name: video_id
        type: string
        required: true
    responses:
      200:
        description: SVG image
    """
    svg = THUMBNAIL_SVG.format(video_id=escape(video_id))
    response = Response(svg, mimetype="image/svg+xml")
    response.headers["Cache-Control"] = "public, max-age=3600"
    return response
