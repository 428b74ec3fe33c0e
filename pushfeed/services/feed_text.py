"""Plain-text summaries for feed rows."""

from __future__ import annotations

import json
from typing import Any, Callable, Mapping

from pushfeed.models import ActionType

MAX_LINE = 120

Handler = Callable[[str, str, str, str], str]


def _first_line(text: str | None, limit: int = MAX_LINE) -> str:
    if not text:
        return ""
    return text.splitlines()[0][:limit]


def _issue_infos(content: str) -> tuple[str, str]:
    index, _, rest = (content or "").partition("|")
    return index, rest


def _describe_push(actor: str, repo: str, ref: str, content: str) -> str:
    try:
        data: Mapping[str, Any] = json.loads(content) if content else {}
    except ValueError:
        data = {}
    commits = data.get("commits") or []
    count = int(data.get("len") or len(commits))
    plural = "commit" if count == 1 else "commits"
    lines = [f"{actor} pushed {count} {plural} to {ref} at {repo}"]
    for c in commits:
        sha = (c.get("sha1") or "")[:10]
        lines.append(f"  {sha} {_first_line(c.get('message'))}")
    return "\n".join(lines)


def _describe_issue(verb: str) -> Handler:
    def handler(actor: str, repo: str, _ref: str, content: str) -> str:
        index, rest = _issue_infos(content)
        line = f"{actor} {verb} {repo}#{index}"
        return f"{line}: {_first_line(rest)}" if rest else line

    return handler


HANDLERS: dict[ActionType, Handler] = {
    ActionType.CREATE_REPO: lambda a, r, _ref, _c: f"{a} created repository {r}",
    ActionType.RENAME_REPO: lambda a, r, _ref, c: f"{a} renamed repository from {c} to {r}",
    ActionType.STAR_REPO: lambda a, r, _ref, _c: f"{a} starred {r}",
    ActionType.FOLLOW_REPO: lambda a, r, _ref, _c: f"{a} started watching {r}",
    ActionType.COMMIT_REPO: _describe_push,
    ActionType.CREATE_ISSUE: _describe_issue("opened issue"),
    ActionType.CREATE_PULL_REQUEST: _describe_issue("created pull request"),
    ActionType.TRANSFER_REPO: lambda a, r, _ref, c: f"{a} transferred repository {c} to {r}",
    ActionType.PUSH_TAG: lambda a, r, ref, _c: f"{a} pushed tag {ref} to {r}",
    ActionType.COMMENT_ISSUE: _describe_issue("commented on issue"),
    ActionType.MERGE_PULL_REQUEST: _describe_issue("merged pull request"),
}


def describe_action(
    op_type: int, content: str, *, actor: str = "", repo: str = "", ref: str = ""
) -> str:
    """One feed row as text; a pure function of its type and content."""
    try:
        handler = HANDLERS.get(ActionType(op_type))
    except ValueError:
        handler = None
    if handler is None:
        return f"{actor} did something to {repo}".strip()
    return handler(actor, repo, ref, content or "")
