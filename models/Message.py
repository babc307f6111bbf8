from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Boolean, Float
from sqlalchemy.orm import relationship
from database import Base
from utils.timeutils import utcnow

# Version 2 folded the pay-per-view fields into the base message.
MESSAGE_SCHEMA_VERSION = 2


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, index=True)
    schema_version = Column(Integer, default=MESSAGE_SCHEMA_VERSION, nullable=False)
    channel_id = Column(Integer, ForeignKey("channels.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_id = Column(String(64), nullable=False, index=True)
    receiver_id = Column(String(64), nullable=False, index=True)
    message = Column(Text, nullable=True)
    image_url = Column(String(500), nullable=True)
    # Monetized content
    blurred_image_url = Column(String(500), nullable=True)
    is_exclusive = Column(Boolean, default=False, nullable=False)
    price = Column(Float, nullable=True)
    # Weak reference for threading, same channel only
    replied_to = Column(Integer, ForeignKey("messages.id", ondelete="SET NULL"), nullable=True)
    deleted = Column(Boolean, default=False, nullable=False)
    edited = Column(Boolean, default=False, nullable=False)
    delivered = Column(Boolean, default=False, nullable=False)
    seen = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    edited_at = Column(DateTime(timezone=True), nullable=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    channel = relationship("Channel", back_populates="messages")
    replied_message = relationship("Message", remote_side=[id], foreign_keys=[replied_to])
    hides = relationship(
        "MessageHide",
        back_populates="message",
        cascade="all, delete-orphan",
    )
