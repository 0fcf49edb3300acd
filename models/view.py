from sqlalchemy import Column, String, ForeignKey, Index

from models.base_model import BaseModel, Base


class View(BaseModel, Base):
    __tablename__ = "views"

    video_id = Column(String(36), ForeignKey("videos.id", ondelete="CASCADE"), nullable=False)
    # Anonymous views have no user; the client IP is only kept hashed
    user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    ip_hash = Column(String(64), nullable=False)

    __table_args__ = (
        Index("ix_views_video_ip", "video_id", "ip_hash"),
        Index("ix_views_video_user", "video_id", "user_id"),
    )
