"""Comment on, close and reopen issues mentioned in pushed commits."""

from __future__ import annotations

import logging
from html import escape as _esc
from re import Pattern
from typing import Iterator, Sequence

from sqlalchemy.orm import Session

from pushfeed.config import settings
from pushfeed.models import Issue, Repository, User
from pushfeed.services.commits import PushCommit
from pushfeed.services.issues import change_issue_status, create_ref_comment
from pushfeed.services.keywords import KeywordPatterns, find_refs
from pushfeed.services.references import resolve_issue

logger = logging.getLogger(__name__)


def commit_link(repo_user_name: str, repo_name: str, sha: str) -> str:
    return f"{settings.app_sub_url}/{repo_user_name}/{repo_name}/commit/{sha}"


def _issues_in(
    session: Session,
    pattern: Pattern[str],
    message: str,
    repo_user_name: str,
    repo_name: str,
    marked: set[int],
) -> Iterator[Issue]:
    """Each issue matched by ``pattern`` once, skipping ids already in ``marked``."""
    for token in find_refs(pattern, message):
        issue = resolve_issue(session, token, repo_user_name, repo_name)
        if issue is None or issue.id in marked:
            continue
        marked.add(issue.id)
        yield issue


def update_issues_commit(
    session: Session,
    doer: User,
    repo: Repository,
    repo_user_name: str,
    repo_name: str,
    commits: Sequence[PushCommit],
    patterns: KeywordPatterns,
) -> None:
    """
    Apply issue references found in ``commits``.

    ``commits`` must already be oldest first. Unknown issues and unsupported
    reference forms are skipped; any other lookup error propagates.
    """
    for c in commits:
        ref_marked: set[int] = set()
        for issue in _issues_in(
            session, patterns.reference, c.message, repo_user_name, repo_name, ref_marked
        ):
            url = commit_link(repo_user_name, repo_name, c.sha1)
            message = f'<a href="{_esc(url)}">{_esc(c.message)}</a>'
            create_ref_comment(session, doer, repo, issue, message, c.sha1)

        # Shared by both passes: one commit never closes and reopens the same issue.
        status_marked: set[int] = set()
        for issue in _issues_in(
            session, patterns.close, c.message, repo_user_name, repo_name, status_marked
        ):
            if issue.repo_id != repo.id or issue.is_closed:
                continue
            if change_issue_status(session, issue, doer, True, c.sha1):
                logger.info("Issue %s closed by commit %s", issue.id, c.sha1)

        for issue in _issues_in(
            session, patterns.reopen, c.message, repo_user_name, repo_name, status_marked
        ):
            if issue.repo_id != repo.id or not issue.is_closed:
                continue
            if change_issue_status(session, issue, doer, False, c.sha1):
                logger.info("Issue %s reopened by commit %s", issue.id, c.sha1)
