"""models for DBs"""

from __future__ import annotations

import enum
import hashlib

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .config import settings
from .db import Base
from .timezone import now_local


class ActionType(enum.IntEnum):
    """Operation kinds recorded in the activity feed."""

    CREATE_REPO = 1
    RENAME_REPO = 2
    STAR_REPO = 3
    FOLLOW_REPO = 4
    COMMIT_REPO = 5
    CREATE_ISSUE = 6
    CREATE_PULL_REQUEST = 7
    TRANSFER_REPO = 8
    PUSH_TAG = 9
    COMMENT_ISSUE = 10
    MERGE_PULL_REQUEST = 11


class CommentType(enum.IntEnum):
    COMMENT = 0
    REOPEN = 1
    CLOSE = 2
    ISSUE_REF = 3
    COMMIT_REF = 4


def gravatar_link(email: str) -> str:
    digest = hashlib.md5((email or "").strip().lower().encode()).hexdigest()
    return settings.gravatar_source + digest


class User(Base):
    """Users (and organizations)"""

    __tablename__ = "users"
    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    lower_name = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String, default="")
    email = Column(String, index=True, default="")
    use_custom_avatar = Column(Boolean, default=False)
    is_organization = Column(Boolean, default=False)
    created_at = Column(DateTime, default=now_local)

    repos = relationship("Repository", back_populates="owner")

    def display_name(self) -> str:
        return self.full_name or self.name

    def rel_avatar_link(self) -> str:
        """Avatar path relative to the site root, or a Gravatar URL."""
        if self.use_custom_avatar:
            return f"{settings.app_sub_url}/avatars/{self.id}"
        return gravatar_link(self.email)

    def avatar_link(self) -> str:
        link = self.rel_avatar_link()
        if link.startswith("/"):
            return settings.app_url.rstrip("/") + link
        return link


class Repository(Base):
    """Repositories"""

    __tablename__ = "repositories"
    __table_args__ = (UniqueConstraint("owner_id", "lower_name"),)

    id = Column(Integer, primary_key=True)
    owner_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    name = Column(String, nullable=False)
    lower_name = Column(String, index=True, nullable=False)
    description = Column(Text, default="")
    website = Column(String, default="")
    is_private = Column(Boolean, default=False)
    is_bare = Column(Boolean, default=True)
    num_watches = Column(Integer, default=0)
    num_issues = Column(Integer, default=0)
    num_closed_issues = Column(Integer, default=0)
    created_at = Column(DateTime, default=now_local)
    updated_at = Column(DateTime, default=now_local)

    owner = relationship("User", back_populates="repos")
    issues = relationship("Issue", back_populates="repo", cascade="all,delete")

    @property
    def full_name(self) -> str:
        return f"{self.owner.name}/{self.name}"

    def repo_link(self) -> str:
        return f"{settings.app_sub_url}/{self.full_name}"

    def html_url(self) -> str:
        return settings.app_url + self.full_name


class Watch(Base):
    """Watches"""

    __tablename__ = "watches"
    __table_args__ = (UniqueConstraint("user_id", "repo_id"),)

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    repo_id = Column(Integer, ForeignKey("repositories.id"), index=True, nullable=False)


class Issue(Base):
    """Issues and pull requests"""

    __tablename__ = "issues"
    __table_args__ = (UniqueConstraint("repo_id", "index"),)

    id = Column(Integer, primary_key=True)
    repo_id = Column(Integer, ForeignKey("repositories.id"), index=True, nullable=False)
    index = Column(Integer, nullable=False)
    poster_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    name = Column(String, default="")
    content = Column(Text, default="")
    is_closed = Column(Boolean, default=False, nullable=False)
    is_pull = Column(Boolean, default=False)
    num_comments = Column(Integer, default=0)
    created_at = Column(DateTime, default=now_local)
    updated_at = Column(DateTime, default=now_local)

    repo = relationship("Repository", back_populates="issues")
    comments = relationship(
        "Comment", back_populates="issue", cascade="all,delete", order_by="Comment.id"
    )


class Comment(Base):
    """Issue comments, including commit references and status changes."""

    __tablename__ = "comments"
    id = Column(Integer, primary_key=True)
    type = Column(Integer, default=CommentType.COMMENT, nullable=False)
    poster_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    issue_id = Column(Integer, ForeignKey("issues.id"), index=True, nullable=False)
    commit_sha = Column(String(40), default="", index=True)
    content = Column(Text, default="")
    created_at = Column(DateTime, default=now_local)

    issue = relationship("Issue", back_populates="comments")


# One commit references an issue at most once, even across concurrent pushes.
Index(
    "uq_comments_commit_ref",
    Comment.issue_id,
    Comment.commit_sha,
    unique=True,
    sqlite_where=Comment.type == int(CommentType.COMMIT_REF),
    postgresql_where=Comment.type == int(CommentType.COMMIT_REF),
)


class Action(Base):
    """One feed row: who did what to which repository, as seen by ``user_id``."""

    __tablename__ = "actions"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, index=True, nullable=False)
    op_type = Column(Integer, nullable=False)
    act_user_id = Column(Integer, index=True)
    act_user_name = Column(String, default="")
    act_email = Column(String, default="")
    repo_id = Column(Integer, index=True)
    repo_user_name = Column(String, default="")
    repo_name = Column(String, default="")
    ref_name = Column(String, default="")
    is_private = Column(Boolean, default=False, nullable=False)
    content = Column(Text, default="")
    created_at = Column(DateTime, default=now_local, index=True)

    @property
    def repo_path(self) -> str:
        return f"{self.repo_user_name}/{self.repo_name}"

    def repo_link(self) -> str:
        return f"{settings.app_sub_url}/{self.repo_path}"

    def issue_infos(self) -> list[str]:
        return (self.content or "").split("|", 1)


class Webhook(Base):
    """Webhooks configured on a repository."""

    __tablename__ = "webhooks"
    id = Column(Integer, primary_key=True)
    repo_id = Column(Integer, ForeignKey("repositories.id"), index=True, nullable=False)
    url = Column(String, nullable=False)
    content_type = Column(String, default="json")
    secret = Column(String, default="")
    events_csv = Column(String, default="*")
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=now_local)

    tasks = relationship("HookTask", back_populates="hook", cascade="all,delete")


class HookTask(Base):
    """Queued webhook deliveries, picked up by the delivery worker."""

    __tablename__ = "hook_tasks"

    id = Column(Integer, primary_key=True)
    created_at = Column(DateTime, default=now_local, index=True)
    repo_id = Column(Integer, index=True)
    hook_id = Column(Integer, ForeignKey("webhooks.id"), index=True)
    uuid = Column(String, unique=True, index=True)
    url = Column(String, default="")
    event_type = Column(String, index=True)
    payload = Column(Text, default="")
    status = Column(String, default="pending", index=True)

    hook = relationship("Webhook", back_populates="tasks")
