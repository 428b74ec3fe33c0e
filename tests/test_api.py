import json

from pushfeed.config import settings
from pushfeed.models import Comment, Issue
from pushfeed.utils import SIGNATURE_HEADER, sign_body, verify_signature

from .conftest import make_issue, make_repo, make_user, watch


def _push_body(alice, org, repo, **overrides):
    body = {
        "user_id": alice.id,
        "repo_user_id": org.id,
        "user_name": "alice",
        "act_email": "alice@example.com",
        "repo_user_name": "myorg",
        "repo_name": "repo",
        "ref_full_name": "refs/heads/main",
        "old_commit_id": "a" * 40,
        "new_commit_id": "b" * 40,
        "commits": [
            {
                "sha1": "2" * 40,
                "message": "update docs",
                "author_email": "alice@example.com",
                "author_name": "Alice",
            },
            {
                "sha1": "1" * 40,
                "message": "fix #5",
                "author_email": "alice@example.com",
                "author_name": "Alice",
            },
        ],
    }
    body.update(overrides)
    return json.dumps(body).encode()


def _post(client, raw, signature=None):
    sig = signature if signature is not None else sign_body(settings.internal_token, raw)
    return client.post(
        "/api/internal/push",
        content=raw,
        headers={SIGNATURE_HEADER: sig, "Content-Type": "application/json"},
    )


def test_signature_helpers():
    sig = sign_body("secret", b"{}")
    assert verify_signature("secret", b"{}", sig)
    assert not verify_signature("secret", b"{ }", sig)
    assert not verify_signature("secret", b"{}", None)
    assert not verify_signature("secret", b"{}", sig.removeprefix("sha256="))


def test_health(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert resp.text.startswith("ok")


def test_push_rejects_bad_signature(client, db):
    alice = make_user(db, "alice")
    org = make_user(db, "myorg", is_organization=True)
    repo = make_repo(db, org, "repo")

    resp = _post(client, _push_body(alice, org, repo), signature="sha256=deadbeef")

    assert resp.status_code == 401


def test_push_unknown_repository_is_404(client, db):
    alice = make_user(db, "alice")
    org = make_user(db, "myorg", is_organization=True)
    repo = make_repo(db, org, "repo")

    resp = _post(client, _push_body(alice, org, repo, repo_name="nope"))

    assert resp.status_code == 404
    assert "GetRepositoryByName" in resp.json()["detail"]


def test_push_then_read_feed(client, db):
    alice = make_user(db, "alice", "alice@example.com")
    bob = make_user(db, "bob")
    org = make_user(db, "myorg", is_organization=True)
    repo = make_repo(db, org, "repo")
    watch(db, bob, repo)
    issue = make_issue(db, repo, 5)
    issue_id = issue.id

    resp = _post(client, _push_body(alice, org, repo))

    assert resp.status_code == 200, resp.text
    data = resp.json()
    assert data["op_type"] == 5
    assert data["ref_name"] == "main"
    assert data["feed_rows"] == 3
    assert data["warnings"] == []

    db.expire_all()
    assert db.get(Issue, issue_id).is_closed
    assert db.query(Comment).filter_by(issue_id=issue_id, commit_sha="1" * 40).count() == 2

    feed = client.get("/api/users/bob/feeds").json()
    assert len(feed) == 1
    entry = feed[0]
    assert entry["repo_path"] == "myorg/repo"
    assert entry["text"].startswith("alice pushed 2 commits to main at myorg/repo")
    assert [c["message"] for c in entry["commits"]] == ["update docs", "fix #5"]
    assert entry["commits"][0]["avatar_url"] == entry["commits"][1]["avatar_url"]


def test_feed_of_unknown_user_is_404(client):
    assert client.get("/api/users/nobody/feeds").status_code == 404
