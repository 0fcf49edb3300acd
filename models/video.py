from enum import Enum

from sqlalchemy import (
    Column,
    String,
    Integer,
    BigInteger,
    ForeignKey,
    Text,
    CheckConstraint,
    Index,
)
from sqlalchemy.orm import relationship
from sqlalchemy.types import Enum as SAEnum

from models.base_model import BaseModel, Base, SoftDeleteMixin


class Visibility(str, Enum):
    PUBLIC = "PUBLIC"
    UNLISTED = "UNLISTED"
    PRIVATE = "PRIVATE"


class VideoStatus(str, Enum):
    PROCESSING = "PROCESSING"
    READY = "READY"
    FAILED = "FAILED"


class Video(SoftDeleteMixin, BaseModel, Base):
    __tablename__ = "videos"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    tags = Column(String(500), nullable=True)
    visibility = Column(
        SAEnum(Visibility, name="video_visibility", native_enum=False),
        nullable=False,
        default=Visibility.PUBLIC,
    )
    status = Column(
        SAEnum(VideoStatus, name="video_status", native_enum=False),
        nullable=False,
        default=VideoStatus.PROCESSING,
    )
    file_size = Column(BigInteger, nullable=True)
    video_path = Column(String(255), nullable=True)
    thumbnail_path = Column(String(255), nullable=True)
    duration = Column(Integer, nullable=True)  # seconds, set once processed

    # Denormalized counters, adjusted in the same commit as the row they count
    view_count = Column(Integer, nullable=False, default=0)
    like_count = Column(Integer, nullable=False, default=0)
    comment_count = Column(Integer, nullable=False, default=0)

    user = relationship("User", back_populates="videos")
    comments = relationship("Comment", back_populates="video", passive_deletes=True)

    __table_args__ = (
        CheckConstraint("view_count >= 0", name="ck_videos_view_count_nonnegative"),
        CheckConstraint("like_count >= 0", name="ck_videos_like_count_nonnegative"),
        CheckConstraint("comment_count >= 0", name="ck_videos_comment_count_nonnegative"),
        Index("ix_videos_created_at", "created_at"),
    )

    def is_owned_by(self, user_id) -> bool:
        return user_id is not None and self.user_id == str(user_id)
