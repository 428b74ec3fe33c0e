"""Issue store: reference lookup, commit comments and status changes."""

from __future__ import annotations

import logging

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pushfeed.errors import IssueNotExist, RepoNotExist, UserNotExist
from pushfeed.models import Comment, CommentType, Issue, Repository, User
from pushfeed.services.repos import get_repository_by_name
from pushfeed.services.users import get_user_by_name
from pushfeed.timezone import now_local

logger = logging.getLogger(__name__)


def get_issue_by_index(session: Session, repo_id: int, index: int) -> Issue:
    issue = session.query(Issue).filter_by(repo_id=repo_id, index=index).first()
    if not issue:
        raise IssueNotExist(f"{repo_id}#{index}")
    return issue


def get_issue_by_ref(session: Session, ref: str) -> Issue:
    """
    Resolve a canonical ``owner/repo#index`` reference.

    Raises
    ------
    IssueNotExist
        When the reference is malformed or names an unknown owner,
        repository or issue.
    """
    n = ref.find("#")
    if n == -1:
        raise IssueNotExist(ref)
    try:
        index = int(ref[n + 1 :])
    except ValueError:
        raise IssueNotExist(ref) from None

    owner_name, sep, repo_name = ref[:n].partition("/")
    if not sep or not owner_name or not repo_name:
        raise IssueNotExist(ref)

    try:
        owner = get_user_by_name(session, owner_name)
        repo = get_repository_by_name(session, owner.id, repo_name)
    except (UserNotExist, RepoNotExist):
        raise IssueNotExist(ref) from None
    try:
        return get_issue_by_index(session, repo.id, index)
    except IssueNotExist:
        raise IssueNotExist(ref) from None


def _ref_comment_exists(session: Session, issue: Issue, commit_sha: str) -> bool:
    return (
        session.query(Comment.id)
        .filter_by(type=CommentType.COMMIT_REF, issue_id=issue.id, commit_sha=commit_sha)
        .first()
        is not None
    )


def create_ref_comment(
    session: Session,
    doer: User,
    repo: Repository,
    issue: Issue,
    content: str,
    commit_sha: str,
) -> bool:
    """
    Add a commit-reference comment to ``issue``.

    Returns False when the same commit already references this issue, which
    keeps repeated pushes of one commit from piling up comments.
    """
    if not commit_sha:
        raise ValueError("cannot create reference with empty commit SHA")

    if _ref_comment_exists(session, issue, commit_sha):
        return False

    try:
        with session.begin_nested():
            session.add(
                Comment(
                    type=CommentType.COMMIT_REF,
                    poster_id=doer.id,
                    issue_id=issue.id,
                    commit_sha=commit_sha,
                    content=content,
                )
            )
            session.flush()
    except IntegrityError:
        # A concurrent push inserted the same reference first.
        logger.debug("Commit %s already referenced in issue %s", commit_sha, issue.id)
        return False

    issue.num_comments = (issue.num_comments or 0) + 1
    session.flush()
    logger.debug(
        "Commit %s referenced in issue %s of repository %s", commit_sha, issue.id, repo.id
    )
    return True


def change_issue_status(
    session: Session,
    issue: Issue,
    doer: User,
    is_closed: bool,
    commit_sha: str = "",
) -> bool:
    """
    Close or reopen ``issue`` and record who did it.

    The status flip is a compare-and-set on ``is_closed`` inside a SAVEPOINT
    together with the close/reopen comment, so a concurrent push that got
    there first turns this call into a no-op (returns False).
    """
    with session.begin_nested():
        result = session.execute(
            update(Issue)
            .where(Issue.id == issue.id, Issue.is_closed.is_(not is_closed))
            .values(is_closed=is_closed, updated_at=now_local())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            return False

        delta = 1 if is_closed else -1
        session.execute(
            update(Repository)
            .where(Repository.id == issue.repo_id)
            .values(num_closed_issues=Repository.num_closed_issues + delta)
            .execution_options(synchronize_session=False)
        )
        session.add(
            Comment(
                type=CommentType.CLOSE if is_closed else CommentType.REOPEN,
                poster_id=doer.id,
                issue_id=issue.id,
                commit_sha=commit_sha,
            )
        )

    session.refresh(issue)
    repo = session.get(Repository, issue.repo_id)
    if repo is not None:
        session.expire(repo, ["num_closed_issues"])
    return True
