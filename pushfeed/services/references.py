"""Turn matched tokens into issues."""

from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session

from pushfeed.errors import IssueNotExist
from pushfeed.models import Issue
from pushfeed.services.issues import get_issue_by_ref


def canonical_ref(token: str, repo_user_name: str, repo_name: str) -> Optional[str]:
    """
    Complete ``token`` into ``owner/repo#index``.

    ``#3`` gets the pushed repository prepended, ``owner/repo#3`` is kept,
    and the ``user#3`` form returns None since it is not supported yet.
    """
    if not token:
        return None
    if token.startswith("#"):
        return f"{repo_user_name}/{repo_name}{token}"
    if "/" not in token:
        return None
    return token


def resolve_issue(
    session: Session, token: str, repo_user_name: str, repo_name: str
) -> Optional[Issue]:
    """
    Issue named by ``token``, or None when there is nothing to link.

    Lookup errors other than a missing issue propagate.
    """
    ref = canonical_ref(token, repo_user_name, repo_name)
    if ref is None:
        return None
    try:
        return get_issue_by_ref(session, ref)
    except IssueNotExist:
        return None
