"""Turn one push into feed rows, issue updates and webhook payloads."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.orm import Session

from pushfeed.config import settings
from pushfeed.errors import PushActionError, UserNotExist
from pushfeed.models import Action, ActionType, Repository, User
from pushfeed.services.actions import notify_watchers
from pushfeed.services.commits import PushCommit, PushCommits
from pushfeed.services.issue_updater import update_issues_commit
from pushfeed.services.keywords import KeywordPatterns, default_patterns
from pushfeed.services.payloads import (
    Payload,
    PayloadAuthor,
    build_create_payload,
    build_push_payload,
    compose_repo_payload,
    compose_sender,
)
from pushfeed.services.repos import get_repository_by_name, update_repository
from pushfeed.services.users import get_user_by_email, get_user_by_id, get_user_by_name
from pushfeed.services.webhooks import HOOK_EVENT_CREATE, HOOK_EVENT_PUSH, prepare_webhooks

logger = logging.getLogger(__name__)

BRANCH_PREFIX = "refs/heads/"
TAG_PREFIX = "refs/tags/"
EMPTY_COMMIT_PREFIX = "0000000"
# Issue references are only looked for in the latest commits of a push.
MAX_SCANNED_COMMITS = 100


def ref_end_name(ref: str) -> str:
    """``refs/heads/main`` -> ``main``, ``refs/tags/v1`` -> ``v1``."""
    for prefix in (BRANCH_PREFIX, TAG_PREFIX):
        if ref.startswith(prefix):
            return ref[len(prefix) :]
    return ref


def is_empty_commit_id(commit_id: str) -> bool:
    return (commit_id or "").startswith(EMPTY_COMMIT_PREFIX)


@dataclass
class PushUpdateOptions:
    """What the git hook knows about one push."""

    user_id: int
    repo_user_id: int
    user_name: str
    act_email: str
    repo_user_name: str
    repo_name: str
    ref_full_name: str
    old_commit_id: str
    new_commit_id: str
    commits: PushCommits = field(default_factory=PushCommits)


@dataclass
class PushResult:
    op_type: ActionType
    ref_name: str
    is_new_branch: bool = False
    actions: list[Action] = field(default_factory=list)
    hook_events: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def _fatal(session: Session, step: str, exc: Exception) -> PushActionError:
    session.rollback()
    return PushActionError(step, exc)


def _author_usernames(session: Session, commits: list[PushCommit]) -> dict[str, str]:
    names: dict[str, str] = {}
    for c in commits:
        if c.author_email in names:
            continue
        try:
            names[c.author_email] = get_user_by_email(session, c.author_email).name
        except UserNotExist:
            names[c.author_email] = ""
    return names


def _hook_payloads(
    session: Session,
    opts: PushUpdateOptions,
    actor: User,
    repo: Repository,
    op_type: ActionType,
    batch: PushCommits,
    is_new_branch: bool,
) -> list[tuple[str, Payload]]:
    payload_repo = compose_repo_payload(repo)
    sender = compose_sender(actor)
    ref_name = ref_end_name(opts.ref_full_name)

    if op_type == ActionType.PUSH_TAG:
        return [
            (
                HOOK_EVENT_CREATE,
                build_create_payload(
                    ref=ref_name, ref_type="tag", repo=payload_repo, sender=sender
                ),
            )
        ]

    try:
        pusher_user: Optional[User] = get_user_by_name(session, opts.user_name)
    except UserNotExist:
        pusher_user = None
    pusher = PayloadAuthor(
        name=pusher_user.display_name() if pusher_user else opts.user_name,
        email=pusher_user.email if pusher_user else opts.act_email,
        username=opts.user_name,
    )
    payloads: list[tuple[str, Payload]] = [
        (
            HOOK_EVENT_PUSH,
            build_push_payload(
                ref=opts.ref_full_name,
                before=opts.old_commit_id,
                after=opts.new_commit_id,
                compare_url=batch.compare_url,
                commits=batch.commits,
                repo=payload_repo,
                repo_url=repo.html_url(),
                pusher=pusher,
                sender=sender,
                author_usernames=_author_usernames(session, batch.commits),
            ),
        )
    ]
    if is_new_branch:
        payloads.append(
            (
                HOOK_EVENT_CREATE,
                build_create_payload(
                    ref=ref_name, ref_type="branch", repo=payload_repo, sender=sender
                ),
            )
        )
    return payloads


def _submit_webhooks(
    session: Session,
    opts: PushUpdateOptions,
    actor: User,
    repo: Repository,
    result: PushResult,
    batch: PushCommits,
) -> None:
    """Queue payloads; failures are logged and reported, never raised."""
    try:
        payloads = _hook_payloads(
            session, opts, actor, repo, result.op_type, batch, result.is_new_branch
        )
    except Exception as exc:
        session.rollback()
        logger.exception("Building webhook payloads failed for %s", repo.full_name)
        result.warnings.append(f"webhook payloads: {exc}")
        return

    for event, payload in payloads:
        try:
            prepare_webhooks(session, repo, event, payload)
            session.commit()
        except Exception as exc:
            session.rollback()
            logger.exception("PrepareWebhooks [%s] failed for %s", event, repo.full_name)
            result.warnings.append(f"{event} webhook: {exc}")
        else:
            result.hook_events.append(event)


def commit_repo_action(
    session: Session,
    opts: PushUpdateOptions,
    patterns: Optional[KeywordPatterns] = None,
) -> PushResult:
    """
    Record a push to ``opts.repo_user_name/opts.repo_name``.

    Raises
    ------
    PushActionError
        When the actor or repository cannot be loaded, the repository cannot
        be updated, or the feed rows cannot be written. Issue linking and
        webhook failures only end up in ``PushResult.warnings``.
    """
    patterns = patterns or default_patterns()

    try:
        actor = get_user_by_id(session, opts.user_id)
    except Exception as exc:
        raise _fatal(session, "GetUserByID", exc) from exc
    try:
        repo = get_repository_by_name(session, opts.repo_user_id, opts.repo_name)
    except Exception as exc:
        raise _fatal(session, "GetRepositoryByName", exc) from exc

    # A pushed repository is no longer bare; this also bumps its update time.
    repo.is_bare = False
    try:
        update_repository(session, repo, False)
        session.commit()
    except Exception as exc:
        raise _fatal(session, "UpdateRepository", exc) from exc

    batch = opts.commits
    result = PushResult(
        op_type=ActionType.COMMIT_REPO, ref_name=ref_end_name(opts.ref_full_name)
    )
    if opts.ref_full_name.startswith(TAG_PREFIX):
        result.op_type = ActionType.PUSH_TAG
        batch = PushCommits()
    else:
        if is_empty_commit_id(opts.old_commit_id):
            result.is_new_branch = True
        else:
            batch.compare_url = (
                f"{opts.repo_user_name}/{opts.repo_name}/compare/"
                f"{opts.old_commit_id}...{opts.new_commit_id}"
            )

        try:
            update_issues_commit(
                session,
                actor,
                repo,
                opts.repo_user_name,
                opts.repo_name,
                batch.oldest_first(MAX_SCANNED_COMMITS),
                patterns,
            )
            session.commit()
        except Exception as exc:
            session.rollback()
            logger.exception("updateIssuesCommit failed for %s", repo.full_name)
            result.warnings.append(f"issue linking: {exc}")

    feed_batch = PushCommits(
        commits=batch.latest(settings.feed_max_commit_num),
        compare_url=batch.compare_url,
        len=batch.len or len(batch.commits),
    )
    action = Action(
        op_type=int(result.op_type),
        act_user_id=actor.id,
        act_user_name=opts.user_name,
        act_email=opts.act_email,
        repo_id=repo.id,
        repo_user_name=opts.repo_user_name,
        repo_name=opts.repo_name,
        ref_name=result.ref_name,
        is_private=bool(repo.is_private),
        content=feed_batch.to_json(),
    )
    try:
        result.actions = notify_watchers(session, action)
        session.commit()
    except Exception as exc:
        raise _fatal(session, "NotifyWatchers", exc) from exc

    _submit_webhooks(session, opts, actor, repo, result, feed_batch)
    logger.info(
        "Push to %s/%s %s by %s recorded (%d feed rows)",
        opts.repo_user_name,
        opts.repo_name,
        result.ref_name,
        opts.user_name,
        len(result.actions),
    )
    return result
