from typing import List
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from config import MESSAGES_MAX_PAGE_SIZE, MESSAGES_PAGE_SIZE
from database import get_db
from schemas import (
    BulkDeleteRequest,
    BulkDeleteResult,
    ChannelRead,
    ChannelSummary,
    MessageRead,
    MessageResponse,
)
from services import channels, messages
from services.presence import PresenceOracle, get_presence
from utils.auth import get_current_user_id

router = APIRouter(prefix="/channels", tags=["Channels"])


@router.get("", response_model=List[ChannelSummary])
def get_channels(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    presence: PresenceOracle = Depends(get_presence),
):
    """
    Inbox: the user's channels with the other participant and the latest message.
    """
    return channels.get_channels(db, user_id, presence)


@router.post("/create/{other_user_id}", response_model=ChannelRead)
def create_channel(
    other_user_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    Get or create the channel between the current user and another one.
    """
    return channels.create_channel(db, user_id, other_user_id)


# Declared before /{channel_id}/delete so "messages" is not taken for an id
@router.delete("/messages/delete", response_model=BulkDeleteResult)
def delete_messages(
    payload: BulkDeleteRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    Bulk delete. Ids the user can't delete are reported in `skipped`.
    """
    return messages.delete_messages(db, user_id, payload.message_ids, payload.mode)


@router.delete("/{channel_id}/delete", response_model=MessageResponse)
def delete_channel(
    channel_id: int,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    channels.delete_channel(db, channel_id, user_id)
    return {"message": "Channel deleted"}


@router.get("/{channel_id}", response_model=ChannelRead)
def get_channel(
    channel_id: int,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return channels.get_channel(db, channel_id, user_id)


@router.get("/{channel_id}/messages", response_model=List[MessageRead])
def get_channel_messages(
    channel_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(MESSAGES_PAGE_SIZE, ge=1, le=MESSAGES_MAX_PAGE_SIZE),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    Messages of a channel, newest first.
    """
    return channels.get_channel_messages(db, channel_id, user_id, page, limit)


@router.get("/{channel_id}/media", response_model=List[MessageRead])
def get_channel_media(
    channel_id: int,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return channels.get_channel_media(db, channel_id, user_id)
