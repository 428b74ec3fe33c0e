"""Request/response schemas"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from pushfeed.services.commits import PushCommit, PushCommits
from pushfeed.services.push import PushUpdateOptions


class PushCommitIn(BaseModel):
    sha1: str
    message: str = ""
    author_email: str = ""
    author_name: str = ""


class PushUpdateRequest(BaseModel):
    """
    Sent by the git hook after a push.

    ``commits`` is newest first, as ``git rev-list`` prints them; ``total``
    is the number of pushed commits when the hook sends only some of them.
    """

    user_id: int
    repo_user_id: int
    user_name: str
    act_email: str = ""
    repo_user_name: str
    repo_name: str
    ref_full_name: str
    old_commit_id: str
    new_commit_id: str
    commits: list[PushCommitIn] = []
    total: Optional[int] = None

    def to_options(self) -> PushUpdateOptions:
        commits = [PushCommit(**c.model_dump()) for c in self.commits]
        return PushUpdateOptions(
            user_id=self.user_id,
            repo_user_id=self.repo_user_id,
            user_name=self.user_name,
            act_email=self.act_email,
            repo_user_name=self.repo_user_name,
            repo_name=self.repo_name,
            ref_full_name=self.ref_full_name,
            old_commit_id=self.old_commit_id,
            new_commit_id=self.new_commit_id,
            commits=PushCommits(commits=commits, len=self.total or len(commits)),
        )


class PushUpdateResponse(BaseModel):
    op_type: int
    ref_name: str
    is_new_branch: bool
    feed_rows: int
    hook_events: list[str]
    warnings: list[str]


class FeedCommit(BaseModel):
    sha1: str
    message: str
    author_name: str
    author_email: str
    avatar_url: str


class FeedEntry(BaseModel):
    id: int
    op_type: int
    act_user_name: str
    repo_path: str
    repo_link: str
    ref_name: str
    is_private: bool
    created_at: Optional[datetime] = None
    text: str
    compare_url: str = ""
    commits: list[FeedCommit] = []
