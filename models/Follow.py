from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from database import Base
from utils.timeutils import utcnow


class Follow(Base):
    """Directed edge: follower_id follows following_id. Removed by hard delete."""
    __tablename__ = "follows"
    __table_args__ = (
        UniqueConstraint("follower_id", "following_id", name="uq_follow"),
    )

    id = Column(Integer, primary_key=True, index=True)
    follower_id = Column(String(64), ForeignKey("user_profiles.user_id", ondelete="CASCADE"), nullable=False, index=True)
    following_id = Column(String(64), ForeignKey("user_profiles.user_id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    follower = relationship("UserProfile", foreign_keys=[follower_id], back_populates="following")
    following_user = relationship("UserProfile", foreign_keys=[following_id], back_populates="followers")
