"""Recompute follower/following counters from the follows table.

Follow and unfollow bump counters in commits separate from the edge write,
so a failure between the two leaves drift behind. This job is the repair.

Usage:
    python -m services.counters [--user USER_ID ...]
"""
import argparse
from typing import Iterable, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from models.Follow import Follow
from models.UserProfile import UserProfile
from utils.logger import get_logger, setup_api_logger

logger = get_logger("counters")


def _count_by(db: Session, column, user_ids: Optional[list]) -> dict:
    query = db.query(column, func.count(Follow.id)).group_by(column)
    if user_ids is not None:
        query = query.filter(column.in_(user_ids))
    return dict(query.all())


def reconcile_follow_counters(db: Session, user_ids: Optional[Iterable[str]] = None) -> int:
    """Fix drifted counters and return how many profiles were corrected."""
    if user_ids is not None:
        user_ids = list(user_ids)

    followers = _count_by(db, Follow.following_id, user_ids)
    following = _count_by(db, Follow.follower_id, user_ids)

    query = db.query(UserProfile)
    if user_ids is not None:
        query = query.filter(UserProfile.user_id.in_(user_ids))

    corrected = 0
    for profile in query.all():
        true_followers = followers.get(profile.user_id, 0)
        true_following = following.get(profile.user_id, 0)
        if profile.follower_count != true_followers or profile.following_count != true_following:
            logger.warning(
                "Counter drift for %s: followers %s -> %s, following %s -> %s",
                profile.user_id, profile.follower_count, true_followers,
                profile.following_count, true_following,
            )
            profile.follower_count = true_followers
            profile.following_count = true_following
            corrected += 1

    db.commit()
    return corrected


def main(argv=None) -> int:
    from database import SessionLocal

    parser = argparse.ArgumentParser(description="Reconcile follow counters")
    parser.add_argument("--user", action="append", dest="users", help="Limit to this user id (repeatable)")
    args = parser.parse_args(argv)

    setup_api_logger()
    db = SessionLocal()
    try:
        corrected = reconcile_follow_counters(db, args.users)
    finally:
        db.close()
    print(f"Corrected {corrected} profile(s)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
