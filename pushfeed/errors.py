"""Errors raised by the action pipeline and its stores."""

from __future__ import annotations


class PushfeedError(Exception):
    """Base class for every error raised by this package."""


class UserNotExist(PushfeedError):
    def __init__(self, *, user_id: int | None = None, name: str = "", email: str = ""):
        self.user_id = user_id
        self.name = name
        self.email = email
        super().__init__(
            f"user does not exist [id: {user_id}, name: {name}, email: {email}]"
        )


class RepoNotExist(PushfeedError):
    def __init__(self, *, owner_id: int | None = None, name: str = ""):
        self.owner_id = owner_id
        self.name = name
        super().__init__(f"repository does not exist [owner_id: {owner_id}, name: {name}]")


class IssueNotExist(PushfeedError):
    """Raised for unknown issues, and for references that cannot name one."""

    def __init__(self, ref: str):
        self.ref = ref
        super().__init__(f"issue does not exist [ref: {ref}]")


class PushActionError(PushfeedError):
    """A fatal step of push processing failed; ``step`` names it."""

    def __init__(self, step: str, cause: Exception):
        self.step = step
        self.cause = cause
        super().__init__(f"{step}: {cause}")
