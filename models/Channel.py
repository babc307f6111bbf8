from sqlalchemy import Column, Integer, String, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship
from database import Base
from utils.timeutils import utcnow


class Channel(Base):
    """A 1:1 conversation. The pair is stored sorted so (a, b) and (b, a) share a row."""
    __tablename__ = "channels"
    __table_args__ = (
        UniqueConstraint("user_a_id", "user_b_id", name="uq_channel_pair"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_a_id = Column(String(64), nullable=False, index=True)
    user_b_id = Column(String(64), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    messages = relationship(
        "Message",
        back_populates="channel",
        cascade="all, delete-orphan",
    )

    @property
    def participant_ids(self):
        return (self.user_a_id, self.user_b_id)

    def has_participant(self, user_id: str) -> bool:
        return user_id in self.participant_ids

    def other_participant(self, user_id: str) -> str:
        return self.user_b_id if user_id == self.user_a_id else self.user_a_id
