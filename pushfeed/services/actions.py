"""Activity feed: typed constructors per event kind and watcher fan-out."""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.orm import Session

from pushfeed.models import Action, ActionType, Issue, Repository, User
from pushfeed.services.repos import get_watchers, watch_repo
from pushfeed.timezone import now_local

logger = logging.getLogger(__name__)

FEED_PAGE_SIZE = 20

_COPIED_COLUMNS = tuple(
    c.name for c in Action.__table__.columns if c.name not in ("id", "user_id")
)


def _recipients(session: Session, action: Action) -> list[int]:
    """Actor, repository owner and watchers, each once, in that order."""
    repo = session.get(Repository, action.repo_id)
    candidates = [action.act_user_id]
    if repo is not None:
        candidates.append(repo.owner_id)
    candidates.extend(get_watchers(session, action.repo_id))

    seen: set[int] = set()
    ordered: list[int] = []
    for uid in candidates:
        if uid is None or uid in seen:
            continue
        seen.add(uid)
        ordered.append(uid)
    return ordered


def notify_watchers(session: Session, action: Action) -> list[Action]:
    """
    Insert one copy of ``action`` per interested user.

    Rows are only flushed: they become visible with the caller's commit, and
    any failure here must abort the caller's whole transaction.
    """
    if action.created_at is None:
        action.created_at = now_local()
    values = {name: getattr(action, name) for name in _COPIED_COLUMNS}
    rows = [Action(user_id=uid, **values) for uid in _recipients(session, action)]
    session.add_all(rows)
    session.flush()
    return rows


def _repo_action(
    actor: User,
    op_type: ActionType,
    repo: Repository,
    *,
    content: str = "",
    ref_name: str = "",
    repo_user_name: Optional[str] = None,
) -> Action:
    return Action(
        op_type=int(op_type),
        act_user_id=actor.id,
        act_user_name=actor.name,
        act_email=actor.email,
        repo_id=repo.id,
        repo_user_name=repo_user_name or repo.owner.name,
        repo_name=repo.name,
        ref_name=ref_name,
        is_private=bool(repo.is_private),
        content=content,
    )


def new_repo_action(session: Session, actor: User, repo: Repository) -> list[Action]:
    rows = notify_watchers(session, _repo_action(actor, ActionType.CREATE_REPO, repo))
    logger.debug("New repo action: %s/%s", actor.name, repo.name)
    return rows


def rename_repo_action(
    session: Session, actor: User, old_repo_name: str, repo: Repository
) -> list[Action]:
    rows = notify_watchers(
        session,
        _repo_action(actor, ActionType.RENAME_REPO, repo, content=old_repo_name),
    )
    logger.debug("Rename repo action: %s/%s", actor.name, repo.name)
    return rows


def transfer_repo_action(
    session: Session, actor: User, old_owner: User, new_owner: User, repo: Repository
) -> list[Action]:
    """Record a transfer; ``repo`` already belongs to ``new_owner``."""
    rows = notify_watchers(
        session,
        _repo_action(
            actor,
            ActionType.TRANSFER_REPO,
            repo,
            content=f"{old_owner.lower_name}/{repo.lower_name}",
            repo_user_name=new_owner.name,
        ),
    )
    # Organizations do not watch their repositories.
    if new_owner.is_organization:
        watch_repo(session, new_owner.id, repo.id, False)
    logger.debug("Transfer repo action: %s/%s", actor.name, repo.name)
    return rows


def _issue_content(issue: Issue) -> str:
    return f"{issue.index}|{issue.name}"


def merge_pull_request_action(
    session: Session, actor: User, repo: Repository, pull: Issue
) -> list[Action]:
    return notify_watchers(
        session,
        _repo_action(
            actor, ActionType.MERGE_PULL_REQUEST, repo, content=_issue_content(pull)
        ),
    )


def new_issue_action(
    session: Session, actor: User, repo: Repository, issue: Issue
) -> list[Action]:
    return notify_watchers(
        session,
        _repo_action(actor, ActionType.CREATE_ISSUE, repo, content=_issue_content(issue)),
    )


def new_pull_request_action(
    session: Session, actor: User, repo: Repository, pull: Issue
) -> list[Action]:
    return notify_watchers(
        session,
        _repo_action(
            actor, ActionType.CREATE_PULL_REQUEST, repo, content=_issue_content(pull)
        ),
    )


def comment_issue_action(
    session: Session, actor: User, repo: Repository, issue: Issue, comment: str
) -> list[Action]:
    """Content is ``index|comment``; the comment is cut to its first 200 chars."""
    return notify_watchers(
        session,
        _repo_action(
            actor,
            ActionType.COMMENT_ISSUE,
            repo,
            content=f"{issue.index}|{(comment or '')[:200]}",
        ),
    )


def star_repo_action(session: Session, actor: User, repo: Repository) -> list[Action]:
    return notify_watchers(session, _repo_action(actor, ActionType.STAR_REPO, repo))


def follow_repo_action(session: Session, actor: User, repo: Repository) -> list[Action]:
    """Watch ``repo`` and record it in the feed."""
    watch_repo(session, actor.id, repo.id, True)
    return notify_watchers(session, _repo_action(actor, ActionType.FOLLOW_REPO, repo))


def get_feeds(
    session: Session, user_id: int, offset: int = 0, is_profile: bool = False
) -> list[Action]:
    """
    Feed rows of ``user_id``, newest first, 20 per page.

    The profile view only shows public rows the user acted on.
    """
    query = session.query(Action).filter(Action.user_id == user_id)
    if is_profile:
        query = query.filter(
            Action.is_private.is_(False), Action.act_user_id == user_id
        )
    return (
        query.order_by(Action.id.desc())
        .offset(max(offset, 0))
        .limit(FEED_PAGE_SIZE)
        .all()
    )
