import re
import uuid
from typing import List, Optional

from sqlalchemy import case, or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config import SEARCH_RESULT_LIMIT
from errors import Conflict, InvalidInput, NotFound
from models.Follow import Follow
from models.UserProfile import UserProfile
from schemas import ProfileRead, ProfileUpdate, ProfileView, ProfileWrite
from services.presence import PresenceOracle
from utils.logger import get_logger
from utils.timeutils import utcnow

logger = get_logger("profiles")

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def normalize_username(username: str) -> str:
    """Lowercase and drop whitespace and anything that isn't a-z or 0-9."""
    return _NON_ALNUM.sub("", re.sub(r"\s+", "", username.lower()))


def is_user_id(value: str) -> bool:
    try:
        uuid.UUID(value)
    except (ValueError, AttributeError, TypeError):
        return False
    return True


def get_profile(db: Session, user_id: str) -> Optional[UserProfile]:
    return db.query(UserProfile).filter(UserProfile.user_id == user_id).first()


def require_profile(db: Session, user_id: str) -> UserProfile:
    profile = get_profile(db, user_id)
    if not profile:
        raise NotFound("User not found")
    return profile


def _username_taken(db: Session, username: str, user_id: str) -> bool:
    return db.query(UserProfile).filter(
        UserProfile.username == username,
        UserProfile.user_id != user_id,
    ).first() is not None


def _edge_exists(db: Session, follower_id: str, following_id: str) -> bool:
    return db.query(Follow).filter(
        Follow.follower_id == follower_id,
        Follow.following_id == following_id,
    ).first() is not None


def to_view(db: Session, profile: UserProfile, viewer_id: str, presence: PresenceOracle) -> ProfileView:
    data = ProfileRead.model_validate(profile).model_dump()
    return ProfileView(
        **data,
        is_followed_by_me=_edge_exists(db, viewer_id, profile.user_id),
        is_following=_edge_exists(db, profile.user_id, viewer_id),
        is_online=presence.is_online(profile.user_id),
        last_seen=presence.last_seen(profile.user_id),
    )


def create_profile(db: Session, user_id: str, payload: ProfileWrite) -> UserProfile:
    if not is_user_id(user_id):
        raise InvalidInput("User id must be a UUID")
    username = normalize_username(payload.username)
    if not username:
        raise InvalidInput("Username must contain letters or digits")
    if get_profile(db, user_id):
        raise Conflict("Profile already exists")
    if _username_taken(db, username, user_id):
        raise Conflict("Username already exists!")

    data = payload.model_dump()
    data["username"] = username
    profile = UserProfile(user_id=user_id, **data)
    db.add(profile)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("Username already exists!")
    db.refresh(profile)
    logger.info("Created profile %s (%s)", user_id, username)
    return profile


def find_profile(db: Session, username_or_id: str, viewer_id: str, presence: PresenceOracle) -> ProfileView:
    """Resolve by user id when the input looks like one, else by username."""
    if is_user_id(username_or_id):
        profile = get_profile(db, username_or_id)
    else:
        profile = db.query(UserProfile).filter(
            UserProfile.username == normalize_username(username_or_id)
        ).first()
    if not profile:
        raise NotFound("User not found")
    return to_view(db, profile, viewer_id, presence)


def update_profile(db: Session, user_id: str, patch: ProfileUpdate) -> UserProfile:
    profile = require_profile(db, user_id)

    update_data = patch.model_dump(exclude_unset=True)
    if "username" in update_data:
        if update_data["username"] is None:
            raise InvalidInput("Username cannot be null")
        username = normalize_username(update_data["username"])
        if not username:
            raise InvalidInput("Username must contain letters or digits")
        if _username_taken(db, username, user_id):
            raise Conflict("Username already exists!")
        update_data["username"] = username

    for key, value in update_data.items():
        setattr(profile, key, value)
    profile.updated_at = utcnow()

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("Username already exists!")
    db.refresh(profile)
    return profile


def adjust_post_count(db: Session, user_id: str, delta: int) -> None:
    """Bump post_count by ``delta`` for the post subsystem, never below 0."""
    new_count = UserProfile.post_count + delta
    db.execute(
        update(UserProfile)
        .where(UserProfile.user_id == user_id)
        .values(post_count=case((new_count < 0, 0), else_=new_count))
    )
    db.commit()


def search_profiles(db: Session, query: str, viewer_id: str, presence: PresenceOracle) -> List[ProfileView]:
    """Case-insensitive match on username or full name."""
    text = (query or "").strip()
    if not text:
        raise InvalidInput("Parameter can't be empty")

    pattern = f"%{text}%"
    hits = (
        db.query(UserProfile)
        .filter(or_(UserProfile.username.ilike(pattern), UserProfile.full_name.ilike(pattern)))
        .order_by(UserProfile.username.asc())
        .limit(SEARCH_RESULT_LIMIT)
        .all()
    )
    return [to_view(db, profile, viewer_id, presence) for profile in hits]
