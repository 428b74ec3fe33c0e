"""Shared fixtures: an in-memory database, model factories and an API client."""

from __future__ import annotations

import os

os.environ.setdefault("DB_URL", "sqlite://")
os.environ.setdefault("APP_URL", "http://localhost:3000/")
os.environ.setdefault("APP_SUB_URL", "")
os.environ.setdefault("FEED_MAX_COMMIT_NUM", "5")
os.environ.setdefault("INTERNAL_TOKEN", "test-internal-token")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from pushfeed.db import Base, get_db
from pushfeed.models import Issue, Repository, User, Watch, Webhook
from pushfeed.services.commits import PushCommit, PushCommits
from pushfeed.services.push import PushUpdateOptions

ZERO_SHA = "0" * 40


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db(session_factory):
    with session_factory() as session:
        yield session


@pytest.fixture
def client(session_factory):
    from fastapi.testclient import TestClient

    from pushfeed.app import app

    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ─────────────────────────────────────────────────────────────────────────────
# Factories
# ─────────────────────────────────────────────────────────────────────────────


def make_user(db, name, email="", *, full_name="", is_organization=False) -> User:
    u = User(
        name=name,
        lower_name=name.lower(),
        email=email or f"{name.lower()}@example.com",
        full_name=full_name,
        is_organization=is_organization,
    )
    db.add(u)
    db.commit()
    return u


def make_repo(db, owner, name, *, is_private=False) -> Repository:
    repo = Repository(
        owner_id=owner.id,
        name=name,
        lower_name=name.lower(),
        is_private=is_private,
        is_bare=True,
    )
    db.add(repo)
    db.commit()
    return repo


def make_issue(db, repo, index, *, name="", is_closed=False, is_pull=False) -> Issue:
    issue = Issue(
        repo_id=repo.id,
        index=index,
        name=name or f"issue {index}",
        is_closed=is_closed,
        is_pull=is_pull,
    )
    db.add(issue)
    repo.num_issues = (repo.num_issues or 0) + 1
    if is_closed:
        repo.num_closed_issues = (repo.num_closed_issues or 0) + 1
    db.commit()
    return issue


def watch(db, user, repo) -> None:
    db.add(Watch(user_id=user.id, repo_id=repo.id))
    db.commit()


def make_webhook(db, repo, *, events_csv="*", url="https://hooks.example.com/x") -> Webhook:
    hook = Webhook(repo_id=repo.id, url=url, events_csv=events_csv)
    db.add(hook)
    db.commit()
    return hook


def commits_newest_first(*messages, author_email="alice@example.com", author_name="Alice"):
    """
    Build a batch from messages given oldest first. Shas number the commits
    in commit order; the batch is newest first like the git transport.
    """
    commits = [
        PushCommit(
            sha1=f"c{i:039d}",
            message=msg,
            author_email=author_email,
            author_name=author_name,
        )
        for i, msg in enumerate(messages)
    ]
    commits.reverse()
    return PushCommits(commits=commits, len=len(commits))


def push_options(actor, repo, batch=None, *, ref="refs/heads/main", old="a" * 40, new="b" * 40):
    return PushUpdateOptions(
        user_id=actor.id,
        repo_user_id=repo.owner_id,
        user_name=actor.name,
        act_email=actor.email,
        repo_user_name=repo.owner.name,
        repo_name=repo.name,
        ref_full_name=ref,
        old_commit_id=old,
        new_commit_id=new,
        commits=batch if batch is not None else PushCommits(),
    )
