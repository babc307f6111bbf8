from typing import List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Query, Session

from config import MESSAGES_MAX_PAGE_SIZE
from errors import Forbidden, InvalidInput, NotFound
from models.Channel import Channel
from models.Message import Message
from models.MessageHide import MessageHide
from schemas import ChannelRead, ChannelSummary, MessageRead, ProfileRead
from services.presence import PresenceOracle
from services.profiles import get_profile, require_profile
from utils.logger import get_logger

logger = get_logger("channels")


def canonical_pair(user_id: str, other_user_id: str) -> Tuple[str, str]:
    return tuple(sorted((user_id, other_user_id)))


def find_channel_for_pair(db: Session, user_id: str, other_user_id: str) -> Optional[Channel]:
    user_a_id, user_b_id = canonical_pair(user_id, other_user_id)
    return db.query(Channel).filter(
        Channel.user_a_id == user_a_id,
        Channel.user_b_id == user_b_id,
    ).first()


def resolve_channel(db: Session, user_id: str, other_user_id: str) -> Channel:
    """Return the channel for the pair, creating it on first use."""
    channel = find_channel_for_pair(db, user_id, other_user_id)
    if channel:
        return channel

    user_a_id, user_b_id = canonical_pair(user_id, other_user_id)
    channel = Channel(user_a_id=user_a_id, user_b_id=user_b_id)
    db.add(channel)
    try:
        db.commit()
    except IntegrityError:
        # Another request created it first.
        db.rollback()
        return find_channel_for_pair(db, user_id, other_user_id)
    db.refresh(channel)
    logger.info("Created channel %s for %s and %s", channel.id, user_a_id, user_b_id)
    return channel


def create_channel(db: Session, requester_id: str, other_user_id: str) -> Channel:
    if requester_id == other_user_id:
        raise InvalidInput("Cannot open a channel with yourself")
    require_profile(db, other_user_id)
    return resolve_channel(db, requester_id, other_user_id)


def require_channel(db: Session, channel_id: int) -> Channel:
    channel = db.query(Channel).filter(Channel.id == channel_id).first()
    if not channel:
        raise NotFound("Channel not found")
    return channel


def get_channel(db: Session, channel_id: int, requester_id: str) -> Channel:
    channel = require_channel(db, channel_id)
    if not channel.has_participant(requester_id):
        raise Forbidden("You are not a participant of this channel")
    return channel


def not_hidden_for(viewer_id: str):
    """Filter clause dropping messages the viewer deleted for themselves."""
    return ~Message.hides.any(MessageHide.user_id == viewer_id)


def visible_messages(db: Session, channel_id: int, viewer_id: str) -> Query:
    """Newest first. Tombstones stay, per-viewer hides are dropped."""
    return (
        db.query(Message)
        .filter(Message.channel_id == channel_id, not_hidden_for(viewer_id))
        .order_by(Message.created_at.desc(), Message.id.desc())
    )


def get_channels(db: Session, requester_id: str, presence: PresenceOracle) -> List[ChannelSummary]:
    channels = db.query(Channel).filter(
        or_(Channel.user_a_id == requester_id, Channel.user_b_id == requester_id)
    ).all()

    summaries = []
    for channel in channels:
        other_id = channel.other_participant(requester_id)
        other = get_profile(db, other_id)
        last_message = visible_messages(db, channel.id, requester_id).first()
        unread_count = db.query(Message).filter(
            Message.channel_id == channel.id,
            Message.receiver_id == requester_id,
            Message.seen.is_(False),
            Message.deleted.is_(False),
            not_hidden_for(requester_id),
        ).count()
        summaries.append(ChannelSummary(
            **ChannelRead.model_validate(channel).model_dump(),
            other_user=ProfileRead.model_validate(other) if other else None,
            is_online=presence.is_online(other_id),
            last_message=MessageRead.model_validate(last_message) if last_message else None,
            unread_count=unread_count,
        ))

    def last_activity(summary: ChannelSummary):
        return summary.last_message.created_at if summary.last_message else summary.created_at

    summaries.sort(key=last_activity, reverse=True)
    return summaries


def get_channel_messages(db: Session, channel_id: int, requester_id: str, page: int = 1, limit: int = 20) -> List[Message]:
    get_channel(db, channel_id, requester_id)
    if page < 1 or limit < 1:
        raise InvalidInput("page and limit must be positive")
    limit = min(limit, MESSAGES_MAX_PAGE_SIZE)
    return (
        visible_messages(db, channel_id, requester_id)
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )


def get_channel_media(db: Session, channel_id: int, requester_id: str) -> List[Message]:
    get_channel(db, channel_id, requester_id)
    return (
        visible_messages(db, channel_id, requester_id)
        .filter(Message.image_url.isnot(None))
        .all()
    )


def delete_channel(db: Session, channel_id: int, requester_id: str) -> None:
    channel = get_channel(db, channel_id, requester_id)
    db.delete(channel)
    db.commit()
    logger.info("Channel %s deleted by %s", channel_id, requester_id)
