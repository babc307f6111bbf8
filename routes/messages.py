from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from database import get_db
from schemas import MessageEdit, MessageRead, MessageWrite
from services import messages
from utils.auth import get_current_user_id

router = APIRouter(prefix="/messages", tags=["Messages"])


# =====================================================
#                 SEND
# =====================================================
@router.post("", response_model=MessageRead, status_code=status.HTTP_201_CREATED)
def send_message(
    payload: MessageWrite,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    Send a message, opening the channel on first contact.
    """
    return messages.send_message(db, user_id, payload)


# =====================================================
#                 RECEIPTS
# =====================================================
@router.put("/seen/{message_id}", response_model=MessageRead)
def message_seen(
    message_id: int,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return messages.message_seen(db, message_id, user_id)


@router.put("/delivered/{message_id}", response_model=MessageRead)
def message_delivered(
    message_id: int,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return messages.message_delivered(db, message_id, user_id)


# =====================================================
#                 EDIT / DELETE / FORWARD
# =====================================================
@router.patch("/{message_id}/edit", response_model=MessageRead)
def edit_message(
    message_id: int,
    payload: MessageEdit,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return messages.edit_message(db, message_id, user_id, payload.message)


@router.delete("/{message_id}/{deleted}/delete", response_model=MessageRead)
def delete_message(
    message_id: int,
    deleted: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    Delete one message. `deleted` is `everyone` (or `true`) to delete it for
    both participants, `me` (or `false`) to hide it for the current user only.
    """
    mode = messages.parse_delete_mode(deleted)
    return messages.delete_message(db, message_id, user_id, mode)


@router.post("/{message_id}/{receiver_id}/forward", response_model=MessageRead, status_code=status.HTTP_201_CREATED)
def forward_message(
    message_id: int,
    receiver_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return messages.forward_message(db, message_id, receiver_id, user_id)
