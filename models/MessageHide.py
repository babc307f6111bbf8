from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from database import Base
from utils.timeutils import utcnow


class MessageHide(Base):
    """Per-viewer "delete for me": one row per (message, viewer) that hid it."""
    __tablename__ = "message_hides"
    __table_args__ = (
        UniqueConstraint("message_id", "user_id", name="uq_message_hide"),
    )

    id = Column(Integer, primary_key=True, index=True)
    message_id = Column(Integer, ForeignKey("messages.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    message = relationship("Message", back_populates="hides")
