"""Ruter Feeds"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from pushfeed.db import get_db
from pushfeed.errors import UserNotExist
from pushfeed.models import Action, ActionType
from pushfeed.schemas import FeedCommit, FeedEntry
from pushfeed.services.actions import get_feeds
from pushfeed.services.commits import PushCommits
from pushfeed.services.feed_text import describe_action
from pushfeed.services.users import get_user_by_name

router = APIRouter(prefix="/api", tags=["feeds"])


def _entry(db: Session, action: Action) -> FeedEntry:
    entry = FeedEntry(
        id=action.id,
        op_type=action.op_type,
        act_user_name=action.act_user_name,
        repo_path=action.repo_path,
        repo_link=action.repo_link(),
        ref_name=action.ref_name or "",
        is_private=action.is_private,
        created_at=action.created_at,
        text=describe_action(
            action.op_type,
            action.content,
            actor=action.act_user_name,
            repo=action.repo_path,
            ref=action.ref_name or "",
        ),
    )
    if action.op_type == ActionType.COMMIT_REPO:
        batch = PushCommits.from_json(action.content)
        entry.compare_url = batch.compare_url
        entry.commits = [
            FeedCommit(
                sha1=c.sha1,
                message=c.message,
                author_name=c.author_name,
                author_email=c.author_email,
                avatar_url=batch.avatar_link(db, c.author_email),
            )
            for c in batch.commits
        ]
    return entry


@router.get("/users/{name}/feeds", response_model=list[FeedEntry])
def user_feeds(
    name: str,
    offset: int = Query(0, ge=0),
    profile: bool = Query(False),
    db: Session = Depends(get_db),
):
    """Dashboard feed of a user, or their public profile activity."""
    try:
        user = get_user_by_name(db, name)
    except UserNotExist as exc:
        raise HTTPException(404, str(exc)) from exc
    return [_entry(db, a) for a in get_feeds(db, user.id, offset, profile)]
