"""Follow graph.

Edges and the denormalized counters on ``user_profiles`` are written in
separate commits. A crash between them leaves the counters off by one until
``services.counters.reconcile_follow_counters`` runs.
"""
from typing import List

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from errors import InvalidInput
from models.Follow import Follow
from models.UserProfile import UserProfile
from schemas import ProfileRead, RelatedProfile
from services.presence import PresenceOracle
from services.profiles import require_profile
from utils.logger import get_logger

logger = get_logger("follows")


def _find_edge(db: Session, follower_id: str, following_id: str):
    return db.query(Follow).filter(
        Follow.follower_id == follower_id,
        Follow.following_id == following_id,
    ).first()


def is_following(db: Session, follower_id: str, following_id: str) -> bool:
    return _find_edge(db, follower_id, following_id) is not None


def _adjust_counters(db: Session, follower_id: str, following_id: str, delta: int) -> None:
    # Two single-row atomic updates, committed one after the other.
    followed = update(UserProfile).where(UserProfile.user_id == following_id)
    following = update(UserProfile).where(UserProfile.user_id == follower_id)
    if delta < 0:
        followed = followed.where(UserProfile.follower_count > 0)
        following = following.where(UserProfile.following_count > 0)

    db.execute(followed.values(follower_count=UserProfile.follower_count + delta))
    db.commit()
    db.execute(following.values(following_count=UserProfile.following_count + delta))
    db.commit()


def follow(db: Session, requester_id: str, target_id: str) -> str:
    if requester_id == target_id:
        raise InvalidInput("You can't follow yourself!")
    require_profile(db, requester_id)
    require_profile(db, target_id)

    if _find_edge(db, requester_id, target_id):
        return "ok"

    db.add(Follow(follower_id=requester_id, following_id=target_id))
    try:
        db.commit()
    except IntegrityError:
        # Lost a race against an identical follow.
        db.rollback()
        return "ok"

    _adjust_counters(db, requester_id, target_id, 1)
    logger.info("%s followed %s", requester_id, target_id)
    return "Followed successfully"


def unfollow(db: Session, requester_id: str, target_id: str) -> str:
    deleted_count = db.query(Follow).filter(
        Follow.follower_id == requester_id,
        Follow.following_id == target_id,
    ).delete(synchronize_session=False)
    db.commit()

    # Consistency guard: a surviving edge means a duplicate slipped in, leave counters alone.
    if _find_edge(db, requester_id, target_id):
        logger.warning("Follow edge %s -> %s still present after delete", requester_id, target_id)
        return "User is followed"
    if not deleted_count:
        raise InvalidInput("Nothing to unFollow!")

    _adjust_counters(db, requester_id, target_id, -1)
    logger.info("%s unfollowed %s", requester_id, target_id)
    return "ok"


def _related(db: Session, profiles, viewer_id: str, presence: PresenceOracle) -> List[RelatedProfile]:
    result = []
    for profile in profiles:
        followed_by_me = is_following(db, viewer_id, profile.user_id)
        follows_me = is_following(db, profile.user_id, viewer_id)
        result.append(RelatedProfile(
            **ProfileRead.model_validate(profile).model_dump(),
            is_followed_by_me=followed_by_me,
            is_following=follows_me,
            is_mutual=followed_by_me and follows_me,
            is_online=presence.is_online(profile.user_id),
            last_seen=presence.last_seen(profile.user_id),
        ))
    return result


def list_followers(db: Session, user_id: str, viewer_id: str, presence: PresenceOracle) -> List[RelatedProfile]:
    """Profiles following ``user_id``, newest edge first."""
    profiles = (
        db.query(UserProfile)
        .join(Follow, Follow.follower_id == UserProfile.user_id)
        .filter(Follow.following_id == user_id)
        .order_by(Follow.created_at.desc(), Follow.id.desc())
        .all()
    )
    return _related(db, profiles, viewer_id, presence)


def list_following(db: Session, user_id: str, viewer_id: str, presence: PresenceOracle) -> List[RelatedProfile]:
    """Profiles ``user_id`` follows, newest edge first."""
    profiles = (
        db.query(UserProfile)
        .join(Follow, Follow.following_id == UserProfile.user_id)
        .filter(Follow.follower_id == user_id)
        .order_by(Follow.created_at.desc(), Follow.id.desc())
        .all()
    )
    return _related(db, profiles, viewer_id, presence)
