"""Repository store: lookups, metadata updates, watches and creation."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from pushfeed.errors import RepoNotExist
from pushfeed.models import Repository, User, Watch
from pushfeed.timezone import now_local

logger = logging.getLogger(__name__)

MAX_DESCRIPTION_LEN = 255


def get_repository_by_name(session: Session, owner_id: int, name: str) -> Repository:
    repo = (
        session.query(Repository)
        .filter_by(owner_id=owner_id, lower_name=(name or "").lower())
        .first()
    )
    if not repo:
        raise RepoNotExist(owner_id=owner_id, name=name)
    return repo


def update_repository(
    session: Session, repo: Repository, visibility_changed: bool = False
) -> None:
    """
    Persist repository metadata and bump its last-updated time.

    Feed rows keep the privacy flag they were created with, so a visibility
    change is only logged here.
    """
    repo.lower_name = repo.name.lower()
    repo.description = (repo.description or "")[:MAX_DESCRIPTION_LEN]
    repo.website = (repo.website or "")[:MAX_DESCRIPTION_LEN]
    repo.updated_at = now_local()
    session.flush()
    if visibility_changed:
        logger.info(
            "Repository %s visibility changed (private=%s)", repo.id, repo.is_private
        )


def get_watchers(session: Session, repo_id: int) -> list[int]:
    """User ids watching the repository, in watch order."""
    rows = (
        session.query(Watch.user_id)
        .filter_by(repo_id=repo_id)
        .order_by(Watch.id)
        .all()
    )
    return [row.user_id for row in rows]


def is_watching(session: Session, user_id: int, repo_id: int) -> bool:
    return (
        session.query(Watch.id).filter_by(user_id=user_id, repo_id=repo_id).first()
        is not None
    )


def watch_repo(session: Session, user_id: int, repo_id: int, watch: bool) -> None:
    repo = session.get(Repository, repo_id)
    if repo is None:
        raise RepoNotExist(name=str(repo_id))
    if watch:
        if is_watching(session, user_id, repo_id):
            return
        session.add(Watch(user_id=user_id, repo_id=repo_id))
        repo.num_watches = (repo.num_watches or 0) + 1
    else:
        w = session.query(Watch).filter_by(user_id=user_id, repo_id=repo_id).first()
        if not w:
            return
        session.delete(w)
        repo.num_watches = max((repo.num_watches or 0) - 1, 0)
    session.flush()


def create_repository(
    session: Session,
    doer: User,
    owner: User,
    name: str,
    *,
    description: str = "",
    is_private: bool = False,
) -> Repository:
    """
    Create a repository, let its owner watch it and record the feed entry.

    Everything happens in one transaction: when the feed fan-out fails the
    repository is not created either.
    """
    from pushfeed.services.actions import new_repo_action

    repo = Repository(
        owner_id=owner.id,
        owner=owner,
        name=name,
        lower_name=name.lower(),
        description=description,
        is_private=is_private,
        is_bare=True,
    )
    try:
        session.add(repo)
        session.flush()
        if not owner.is_organization:
            watch_repo(session, owner.id, repo.id, True)
        new_repo_action(session, doer, repo)
        session.commit()
    except Exception:
        session.rollback()
        raise
    return repo
