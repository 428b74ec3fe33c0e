from pushfeed.models import ActionType
from pushfeed.services.commits import PushCommit, PushCommits
from pushfeed.services.feed_text import describe_action


def test_push_rows_list_their_commits():
    content = PushCommits(
        commits=[PushCommit("abcdef1234567890", "fix #5\n\nlong body", "a@x", "A")],
        len=3,
    ).to_json()

    text = describe_action(
        ActionType.COMMIT_REPO, content, actor="alice", repo="myorg/repo", ref="main"
    )

    assert text.splitlines() == [
        "alice pushed 3 commits to main at myorg/repo",
        "  abcdef1234 fix #5",
    ]


def test_issue_rows_use_index_and_title():
    text = describe_action(
        ActionType.MERGE_PULL_REQUEST, "8|Fix crash", actor="alice", repo="myorg/repo"
    )
    assert text == "alice merged pull request myorg/repo#8: Fix crash"


def test_simple_rows():
    assert (
        describe_action(ActionType.PUSH_TAG, "", actor="alice", repo="o/r", ref="v1")
        == "alice pushed tag v1 to o/r"
    )
    assert (
        describe_action(ActionType.RENAME_REPO, "old", actor="alice", repo="o/new")
        == "alice renamed repository from old to o/new"
    )


def test_unknown_type_and_bad_content_do_not_raise():
    assert describe_action(99, "", actor="alice", repo="o/r") == "alice did something to o/r"
    assert describe_action(ActionType.COMMIT_REPO, "{not json", actor="a", repo="o/r", ref="m") == (
        "a pushed 0 commits to m at o/r"
    )
