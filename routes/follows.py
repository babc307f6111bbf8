from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from database import get_db
from schemas import MessageResponse, RelatedProfile
from services import follows
from services.presence import PresenceOracle, get_presence
from utils.auth import get_current_user_id

router = APIRouter(prefix="/follows", tags=["Follows"])


@router.post("/{user_id}", response_model=MessageResponse)
def follow_user(
    user_id: str,
    current_user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    Follow a user. Following someone twice is a no-op.
    """
    return {"message": follows.follow(db, current_user_id, user_id)}


@router.delete("/{user_id}", response_model=MessageResponse)
def unfollow_user(
    user_id: str,
    current_user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    Unfollow a user.
    """
    return {"message": follows.unfollow(db, current_user_id, user_id)}


@router.get("/{user_id}/following", response_model=List[RelatedProfile])
def get_following(
    user_id: str,
    current_user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    presence: PresenceOracle = Depends(get_presence),
):
    """
    Get list of users that a user is following.
    """
    return follows.list_following(db, user_id, current_user_id, presence)


@router.get("/{user_id}/followers", response_model=List[RelatedProfile])
def get_followers(
    user_id: str,
    current_user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    presence: PresenceOracle = Depends(get_presence),
):
    """
    Get list of users that follow a user.
    """
    return follows.list_followers(db, user_id, current_user_id, presence)


@router.get("/{follower_id}/is-following/{following_id}", response_model=bool)
def is_following(
    follower_id: str,
    following_id: str,
    current_user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    Check if a user is following another user.
    """
    return follows.is_following(db, follower_id, following_id)
