"""Commit batches carried by one push."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Mapping, Optional

from sqlalchemy.orm import Session

from pushfeed.errors import UserNotExist
from pushfeed.models import gravatar_link
from pushfeed.services.users import get_user_by_email

logger = logging.getLogger(__name__)


@dataclass
class PushCommit:
    sha1: str
    message: str
    author_email: str = ""
    author_name: str = ""


@dataclass
class PushCommits:
    """
    Commits of one push, newest first as the git transport delivers them.

    ``len`` is the number of commits pushed, which can be larger than the
    list kept here once it has been truncated for the feed.
    """

    commits: list[PushCommit] = field(default_factory=list)
    compare_url: str = ""
    len: int = 0
    _avatars: dict[str, str] = field(default_factory=dict, repr=False, compare=False)

    def oldest_first(self, limit: Optional[int] = None) -> list[PushCommit]:
        """The ``limit`` most recent commits, in the order they were made."""
        kept = self.commits if limit is None else self.latest(limit)
        return list(reversed(kept))

    def latest(self, limit: int) -> list[PushCommit]:
        return self.commits[: max(limit, 0)]

    def avatar_link(self, session: Session, email: str) -> str:
        """
        Avatar of the account owning ``email``, else its Gravatar.

        Looked up at most once per distinct email for this batch.
        """
        if email not in self._avatars:
            try:
                self._avatars[email] = get_user_by_email(session, email).avatar_link()
            except UserNotExist:
                self._avatars[email] = gravatar_link(email)
            except Exception:
                logger.exception("Avatar lookup failed for %s", email)
                self._avatars[email] = gravatar_link(email)
        return self._avatars[email]

    def to_json(self) -> str:
        return json.dumps(
            {
                "len": self.len,
                "commits": [asdict(c) for c in self.commits],
                "compare_url": self.compare_url,
            },
            ensure_ascii=False,
        )

    @classmethod
    def from_json(cls, raw: str) -> "PushCommits":
        data: Mapping[str, Any] = json.loads(raw) if raw else {}
        commits = [PushCommit(**c) for c in data.get("commits") or []]
        return cls(
            commits=commits,
            compare_url=data.get("compare_url") or "",
            len=int(data.get("len") or len(commits)),
        )
