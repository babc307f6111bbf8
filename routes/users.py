from typing import List
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from database import get_db
from schemas import ProfileWrite, ProfileRead, ProfileUpdate, ProfileView
from services import profiles
from services.presence import PresenceOracle, get_presence
from utils.auth import get_current_user_id

router = APIRouter(prefix="/users", tags=["Users"])


@router.post("", response_model=ProfileRead, status_code=status.HTTP_201_CREATED)
def create_profile(
    payload: ProfileWrite,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    Register the profile of the authenticated user.
    """
    return profiles.create_profile(db, user_id, payload)


@router.get("/search", response_model=List[ProfileView])
def search_profiles(
    q: str = Query(""),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    presence: PresenceOracle = Depends(get_presence),
):
    """
    Search profiles by username or full name.
    """
    return profiles.search_profiles(db, q, user_id, presence)


@router.patch("/me", response_model=ProfileRead)
def update_profile(
    patch: ProfileUpdate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    Update the authenticated user's profile. Fields left out are not touched.
    """
    return profiles.update_profile(db, user_id, patch)


@router.get("/{username_or_id}", response_model=ProfileView)
def get_profile(
    username_or_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    presence: PresenceOracle = Depends(get_presence),
):
    """
    Get a profile by user id or username, with follow status.
    """
    return profiles.find_profile(db, username_or_id, user_id, presence)
