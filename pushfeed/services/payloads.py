"""Outbound webhook payloads (push and create events)."""

from __future__ import annotations

from typing import Mapping, Optional, Sequence

from pydantic import BaseModel, Field

from pushfeed.config import settings
from pushfeed.models import Repository, User
from pushfeed.services.commits import PushCommit


class PayloadAuthor(BaseModel):
    name: str = ""
    email: str = ""
    username: str = ""


class PayloadUser(BaseModel):
    username: str = Field("", serialization_alias="login")
    id: int = 0
    avatar_url: str = ""


class PayloadCommit(BaseModel):
    id: str
    message: str
    url: str
    author: PayloadAuthor


class PayloadRepo(BaseModel):
    id: int
    name: str
    url: str
    description: str = ""
    website: str = ""
    watchers: int = 0
    owner: PayloadAuthor
    private: bool = False


class PushPayload(BaseModel):
    ref: str
    before: str
    after: str
    compare_url: str = ""
    commits: list[PayloadCommit] = []
    repository: PayloadRepo
    pusher: PayloadAuthor
    sender: PayloadUser


class CreatePayload(BaseModel):
    ref: str
    ref_type: str
    repository: PayloadRepo
    sender: PayloadUser


Payload = PushPayload | CreatePayload


def to_json(payload: Payload) -> str:
    """Wire JSON for a payload, with the external field names."""
    return payload.model_dump_json(by_alias=True)


def compose_repo_payload(repo: Repository) -> PayloadRepo:
    owner = repo.owner
    return PayloadRepo(
        id=repo.id,
        name=repo.name,
        url=repo.html_url(),
        description=repo.description or "",
        website=repo.website or "",
        watchers=repo.num_watches or 0,
        owner=PayloadAuthor(
            name=owner.display_name(), email=owner.email or "", username=owner.name
        ),
        private=bool(repo.is_private),
    )


def compose_sender(user: Optional[User]) -> PayloadUser:
    if user is None:
        return PayloadUser()
    return PayloadUser(username=user.name, id=user.id, avatar_url=user.avatar_link())


def build_push_payload(
    *,
    ref: str,
    before: str,
    after: str,
    compare_url: str,
    commits: Sequence[PushCommit],
    repo: PayloadRepo,
    repo_url: str,
    pusher: PayloadAuthor,
    sender: PayloadUser,
    author_usernames: Mapping[str, str],
) -> PushPayload:
    """
    Push event payload.

    ``compare_url`` is relative to the site root and left empty for a new
    branch. ``author_usernames`` maps commit author emails to account names;
    unknown authors keep a blank username.
    """
    return PushPayload(
        ref=ref,
        before=before,
        after=after,
        compare_url=settings.app_url + compare_url if compare_url else "",
        commits=[
            PayloadCommit(
                id=c.sha1,
                message=c.message,
                url=f"{repo_url}/commit/{c.sha1}",
                author=PayloadAuthor(
                    name=c.author_name,
                    email=c.author_email,
                    username=author_usernames.get(c.author_email, ""),
                ),
            )
            for c in commits
        ],
        repository=repo,
        pusher=pusher,
        sender=sender,
    )


def build_create_payload(
    *, ref: str, ref_type: str, repo: PayloadRepo, sender: PayloadUser
) -> CreatePayload:
    return CreatePayload(ref=ref, ref_type=ref_type, repository=repo, sender=sender)
