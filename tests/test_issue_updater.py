import pytest

from pushfeed.models import Comment, CommentType
from pushfeed.services import issues, references
from pushfeed.services.issue_updater import commit_link, update_issues_commit
from pushfeed.services.issues import change_issue_status
from pushfeed.services.keywords import default_patterns

from .conftest import commits_newest_first, make_issue, make_repo, make_user


@pytest.fixture
def world(db):
    alice = make_user(db, "alice", "alice@example.com")
    org = make_user(db, "myorg", is_organization=True)
    repo = make_repo(db, org, "repo")
    return alice, org, repo


def _run(db, alice, repo, batch):
    update_issues_commit(
        db, alice, repo, repo.owner.name, repo.name, batch.oldest_first(), default_patterns()
    )
    db.commit()


def _comments(db, issue, type_):
    return db.query(Comment).filter_by(issue_id=issue.id, type=type_).all()


def test_fixes_closes_open_issue_with_one_reference(db, world):
    alice, _, repo = world
    issue = make_issue(db, repo, 3)
    batch = commits_newest_first("fixes #3")

    _run(db, alice, repo, batch)

    db.refresh(issue)
    assert issue.is_closed
    refs = _comments(db, issue, CommentType.COMMIT_REF)
    assert len(refs) == 1
    assert refs[0].commit_sha == batch.commits[0].sha1
    assert commit_link("myorg", "repo", batch.commits[0].sha1) in refs[0].content
    closes = _comments(db, issue, CommentType.CLOSE)
    assert [c.commit_sha for c in closes] == [batch.commits[0].sha1]
    db.refresh(repo)
    assert repo.num_closed_issues == 1


def test_repeated_mentions_in_one_commit_comment_once(db, world):
    alice, _, repo = world
    issue = make_issue(db, repo, 3)

    _run(db, alice, repo, commits_newest_first("fix #3, see #3 and myorg/repo#3"))

    assert len(_comments(db, issue, CommentType.COMMIT_REF)) == 1
    assert len(_comments(db, issue, CommentType.CLOSE)) == 1


def test_close_and_reopen_in_one_commit_applies_only_close(db, world):
    alice, _, repo = world
    issue = make_issue(db, repo, 3)

    _run(db, alice, repo, commits_newest_first("fixes #3 then reopens #3"))

    db.refresh(issue)
    assert issue.is_closed
    assert len(_comments(db, issue, CommentType.CLOSE)) == 1
    assert _comments(db, issue, CommentType.REOPEN) == []


def test_commits_are_applied_oldest_first(db, world):
    alice, _, repo = world
    issue = make_issue(db, repo, 5)
    # Oldest closes, newest reopens: the final state is open.
    batch = commits_newest_first("fixes #5", "reopens #5")
    assert batch.commits[0].message == "reopens #5"

    _run(db, alice, repo, batch)

    db.refresh(issue)
    assert not issue.is_closed
    assert len(_comments(db, issue, CommentType.CLOSE)) == 1
    assert len(_comments(db, issue, CommentType.REOPEN)) == 1


def test_cross_repo_reference_comments_but_never_closes(db, world):
    alice, _, repo = world
    other = make_user(db, "other")
    lib = make_repo(db, other, "lib")
    remote = make_issue(db, lib, 4)

    _run(db, alice, repo, commits_newest_first("fixes other/lib#4"))

    db.refresh(remote)
    assert not remote.is_closed
    assert len(_comments(db, remote, CommentType.COMMIT_REF)) == 1
    assert _comments(db, remote, CommentType.CLOSE) == []


def test_already_closed_issue_is_left_alone(db, world):
    alice, _, repo = world
    issue = make_issue(db, repo, 3, is_closed=True)

    _run(db, alice, repo, commits_newest_first("closes #3"))

    assert _comments(db, issue, CommentType.CLOSE) == []


def test_user_qualified_reference_is_ignored(db, world):
    alice, _, repo = world
    make_user(db, "bob")
    issue = make_issue(db, repo, 9)

    _run(db, alice, repo, commits_newest_first("fixes bob#9"))

    db.refresh(issue)
    assert not issue.is_closed
    assert db.query(Comment).count() == 0


def test_pushing_the_same_commits_again_adds_no_reference(db, world):
    alice, _, repo = world
    issue = make_issue(db, repo, 3)
    batch = commits_newest_first("refs #3")

    _run(db, alice, repo, batch)
    _run(db, alice, repo, batch)

    assert len(_comments(db, issue, CommentType.COMMIT_REF)) == 1


def test_lookup_errors_propagate(db, world, monkeypatch):
    alice, _, repo = world

    def boom(_session, _ref):
        raise RuntimeError("connection reset")

    monkeypatch.setattr(references, "get_issue_by_ref", boom)
    with pytest.raises(RuntimeError):
        _run(db, alice, repo, commits_newest_first("fixes #1"))


def test_status_change_is_compare_and_set(db, world):
    alice, _, repo = world
    issue = make_issue(db, repo, 3)

    assert change_issue_status(db, issue, alice, True, "f" * 40)
    assert not change_issue_status(db, issue, alice, True, "e" * 40)
    db.commit()

    assert [c.commit_sha for c in _comments(db, issue, CommentType.CLOSE)] == ["f" * 40]


def test_keyword_inside_brackets_closes_issue(db, world):
    alice, _, repo = world
    issue = make_issue(db, repo, 3)

    _run(db, alice, repo, commits_newest_first("Refactor parser (fixes #3)"))

    db.refresh(issue)
    assert issue.is_closed


def test_racing_reference_insert_is_rejected(db, world, monkeypatch):
    alice, _, repo = world
    issue = make_issue(db, repo, 3)
    sha = "d" * 40
    # Both pushes pass the existence check before either inserts.
    monkeypatch.setattr(issues, "_ref_comment_exists", lambda *_args: False)

    assert issues.create_ref_comment(db, alice, repo, issue, "first", sha)
    assert not issues.create_ref_comment(db, alice, repo, issue, "second", sha)
    db.commit()

    refs = _comments(db, issue, CommentType.COMMIT_REF)
    assert [c.content for c in refs] == ["first"]
    db.refresh(issue)
    assert issue.num_comments == 1
