from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)

from config.settings import PLAN_FREE
from database import Base


def utcnow() -> datetime:
    """Naive UTC timestamp; every DateTime column in this schema stores naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    """
    Account record. Only the plan fields are owned by the entitlement core;
    the profile columns are maintained elsewhere.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=True)
    channel_name = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    image = Column(String, nullable=True)
    joined_on = Column(DateTime, default=utcnow, nullable=False)

    plan = Column(String(16), default=PLAN_FREE, nullable=False)
    plan_expiry = Column(DateTime, nullable=True)
    # seconds; 0 means unlimited
    allowed_watch_duration = Column(Integer, default=300, nullable=False)


class Video(Base):
    __tablename__ = "videos"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    filename = Column(String, nullable=False)
    filepath = Column(String, nullable=False)
    uploader_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    views = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class Payment(Base):
    """
    One row per payment attempt.

    status moves pending -> completed or pending -> failed exactly once.
    amount is in the smallest currency unit (paise for INR).
    """
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    order_id = Column(String, unique=True, nullable=False)
    payment_id = Column(String, nullable=True)
    signature = Column(String, nullable=True)
    amount = Column(Integer, nullable=False)
    currency = Column(String(8), default="INR", nullable=False)
    status = Column(String(16), default="pending", nullable=False)
    plan_type = Column(String(16), default=PLAN_FREE, nullable=False)
    plan_duration_days = Column(Integer, default=30, nullable=False)
    allowed_watch_duration = Column(Integer, default=300, nullable=False)
    expiry_date = Column(DateTime, nullable=True)
    payment_date = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_payments_user_status", "user_id", "status"),
        Index("ix_payments_user_expiry", "user_id", "expiry_date"),
    )

    def __repr__(self) -> str:
        return f"<Payment id={self.id} order_id={self.order_id} status={self.status}>"


class Download(Base):
    """
    One row per granted download. The video's locator and title are copied at
    grant time so history survives later edits or deletion of the video.
    """
    __tablename__ = "downloads"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    video_id = Column(Integer, nullable=False)
    downloaded_at = Column(DateTime, default=utcnow, nullable=False)
    is_premium_user = Column(Boolean, default=False, nullable=False)
    original_filepath = Column(String, nullable=True)
    original_filename = Column(String, nullable=True)
    video_title = Column(String, nullable=True)
    deleted = Column(Boolean, default=False, nullable=False)

    __table_args__ = (
        Index("ix_downloads_user_downloaded_at", "user_id", "downloaded_at"),
    )


class Comment(Base):
    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    video_id = Column(Integer, nullable=False)
    body = Column(Text, nullable=False)
    user_commented = Column(String, nullable=True)
    city = Column(String, nullable=True)
    lang = Column(String(16), nullable=True)
    likes = Column(Integer, default=0, nullable=False)
    dislikes = Column(Integer, default=0, nullable=False)
    # never reset once set
    deleted = Column(Boolean, default=False, nullable=False)
    deleted_at = Column(DateTime, nullable=True)
    commented_on = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_comments_video_commented_on", "video_id", "commented_on"),
    )
