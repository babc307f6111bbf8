"""Message store.

Content lifecycle: active -> edited (repeatable) -> deleted. A deleted message
keeps its row with the content cleared so replies and ordering stay intact.
``delivered`` and ``seen`` only ever go from False to True.
"""
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

import config
from errors import Forbidden, InvalidInput, InvalidReference, InvalidState, NotFound
from models.Message import Message
from models.MessageHide import MessageHide
from schemas import BulkDeleteResult, DeleteMode, MessageWrite, SkippedMessage
from services.channels import find_channel_for_pair, resolve_channel
from services.profiles import require_profile
from utils.logger import get_logger
from utils.timeutils import utcnow

logger = get_logger("messages")

_MODE_ALIASES = {
    "me": DeleteMode.me,
    "false": DeleteMode.me,
    "everyone": DeleteMode.everyone,
    "true": DeleteMode.everyone,
}


def parse_delete_mode(value: str) -> DeleteMode:
    """Path segment -> mode. ``true`` means delete for everyone."""
    mode = _MODE_ALIASES.get((value or "").lower())
    if mode is None:
        raise InvalidInput("Delete mode must be one of: me, everyone")
    return mode


def get_message(db: Session, message_id: int) -> Optional[Message]:
    return db.query(Message).filter(Message.id == message_id).first()


def require_message(db: Session, message_id: int) -> Message:
    message = get_message(db, message_id)
    if not message:
        raise NotFound("Message not found")
    return message


def is_participant(message: Message, user_id: str) -> bool:
    return user_id in (message.sender_id, message.receiver_id)


def is_hidden_for(db: Session, message_id: int, user_id: str) -> bool:
    return db.query(MessageHide).filter(
        MessageHide.message_id == message_id,
        MessageHide.user_id == user_id,
    ).first() is not None


def _validate_content(text: Optional[str], payload: MessageWrite) -> None:
    if not text and not payload.image_url:
        raise InvalidInput("Message must have text or an image")
    if payload.price is not None and payload.price <= 0:
        raise InvalidInput("Price must be positive")
    if payload.is_exclusive and (not payload.image_url or payload.price is None):
        raise InvalidInput("Exclusive messages need an image and a price")


def send_message(db: Session, sender_id: str, payload: MessageWrite) -> Message:
    text = payload.message if payload.message and payload.message.strip() else None
    _validate_content(text, payload)
    if payload.receiver_id == sender_id:
        raise InvalidInput("Cannot message yourself")
    require_profile(db, payload.receiver_id)

    if payload.replied_to is not None:
        # Checked before resolve_channel so a bad reference writes nothing.
        existing = find_channel_for_pair(db, sender_id, payload.receiver_id)
        parent = get_message(db, payload.replied_to)
        if not existing or not parent or parent.channel_id != existing.id:
            raise InvalidReference("Replied message does not belong to this channel")

    channel = resolve_channel(db, sender_id, payload.receiver_id)

    message = Message(
        channel_id=channel.id,
        sender_id=sender_id,
        receiver_id=payload.receiver_id,
        message=text,
        image_url=payload.image_url,
        blurred_image_url=payload.blurred_image_url,
        is_exclusive=payload.is_exclusive,
        price=payload.price,
        replied_to=payload.replied_to,
        created_at=utcnow(),
    )
    db.add(message)
    db.commit()
    db.refresh(message)
    logger.info("Message %s sent in channel %s by %s", message.id, channel.id, sender_id)
    return message


def edit_message(db: Session, message_id: int, requester_id: str, text: str) -> Message:
    message = require_message(db, message_id)
    if message.sender_id != requester_id:
        raise Forbidden("Only the sender can edit this message")
    if message.deleted:
        raise InvalidState("Deleted messages cannot be edited")
    if not text or not text.strip():
        raise InvalidInput("Message text cannot be empty")

    message.message = text
    message.edited = True
    message.edited_at = utcnow()
    db.commit()
    db.refresh(message)
    return message


def _delete_refusal(message: Message, requester_id: str, mode: DeleteMode) -> Optional[str]:
    if mode == DeleteMode.everyone:
        if message.sender_id != requester_id:
            return "Only the sender can delete this message for everyone"
    elif not is_participant(message, requester_id):
        return "You are not a participant of this conversation"
    return None


def _apply_delete(db: Session, message: Message, requester_id: str, mode: DeleteMode) -> None:
    if mode == DeleteMode.me:
        if not is_hidden_for(db, message.id, requester_id):
            db.add(MessageHide(message_id=message.id, user_id=requester_id))
        return
    if message.deleted:
        return
    message.deleted = True
    message.deleted_at = utcnow()
    # Tombstone: identity, flags and position survive, content does not.
    message.message = None
    message.image_url = None
    message.blurred_image_url = None


def _commit_hides(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError:
        # Another request recorded the same hide.
        db.rollback()


def _hide_each(db: Session, message_ids: List[int], user_id: str) -> None:
    for message_id in message_ids:
        if is_hidden_for(db, message_id, user_id):
            continue
        db.add(MessageHide(message_id=message_id, user_id=user_id))
        _commit_hides(db)


def delete_message(db: Session, message_id: int, requester_id: str, mode: DeleteMode) -> Message:
    message = require_message(db, message_id)
    refusal = _delete_refusal(message, requester_id, mode)
    if refusal:
        raise Forbidden(refusal)

    _apply_delete(db, message, requester_id, mode)
    _commit_hides(db)
    db.refresh(message)
    logger.info("Message %s deleted for %s by %s", message_id, mode.value, requester_id)
    return message


def delete_messages(db: Session, requester_id: str, message_ids: List[int], mode: DeleteMode) -> BulkDeleteResult:
    """Delete what the requester may delete, report the rest."""
    result = BulkDeleteResult()
    for message_id in dict.fromkeys(message_ids):
        message = get_message(db, message_id)
        if not message:
            result.skipped.append(SkippedMessage(id=message_id, reason="not_found"))
            continue
        if _delete_refusal(message, requester_id, mode):
            result.skipped.append(SkippedMessage(id=message_id, reason="forbidden"))
            continue
        _apply_delete(db, message, requester_id, mode)
        result.deleted.append(message_id)

    try:
        db.commit()
    except IntegrityError:
        if mode != DeleteMode.me:
            raise
        # A concurrent hide collided and the rollback dropped the whole batch.
        db.rollback()
        _hide_each(db, result.deleted, requester_id)
    logger.info(
        "Bulk delete (%s) by %s: %d deleted, %d skipped",
        mode.value, requester_id, len(result.deleted), len(result.skipped),
    )
    return result


def forward_message(db: Session, message_id: int, receiver_id: str, forwarder_id: str) -> Message:
    """Copy the content into the forwarder's channel with ``receiver_id``."""
    source = get_message(db, message_id)
    if not source or source.deleted or is_hidden_for(db, message_id, forwarder_id):
        raise NotFound("Message not found")
    if not is_participant(source, forwarder_id):
        raise Forbidden("You are not a participant of this conversation")
    if receiver_id == forwarder_id:
        raise InvalidInput("Cannot forward a message to yourself")
    require_profile(db, receiver_id)

    channel = resolve_channel(db, forwarder_id, receiver_id)
    copy = Message(
        channel_id=channel.id,
        sender_id=forwarder_id,
        receiver_id=receiver_id,
        message=source.message,
        image_url=source.image_url,
        blurred_image_url=source.blurred_image_url,
        is_exclusive=source.is_exclusive,
        price=source.price,
        created_at=utcnow(),
    )
    db.add(copy)
    db.commit()
    db.refresh(copy)
    logger.info("Message %s forwarded as %s to %s", message_id, copy.id, receiver_id)
    return copy


def _require_receiver(db: Session, message_id: int, requester_id: str) -> Message:
    message = require_message(db, message_id)
    if message.receiver_id != requester_id:
        raise Forbidden("Only the receiver can acknowledge this message")
    return message


def message_delivered(db: Session, message_id: int, requester_id: str) -> Message:
    message = _require_receiver(db, message_id, requester_id)
    if not message.delivered:
        message.delivered = True
        db.commit()
        db.refresh(message)
    return message


def message_seen(db: Session, message_id: int, requester_id: str) -> Message:
    message = _require_receiver(db, message_id, requester_id)
    changed = False
    if not message.seen:
        message.seen = True
        changed = True
    if config.SEEN_IMPLIES_DELIVERED and not message.delivered:
        message.delivered = True
        changed = True
    if changed:
        db.commit()
        db.refresh(message)
    return message
