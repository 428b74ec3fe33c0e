"""Keyword grammars that link commit messages to issues."""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from re import Pattern
from typing import Iterable

# Same as GitHub, see https://help.github.com/articles/closing-issues-via-commit-messages
ISSUE_CLOSE_KEYWORDS: tuple[str, ...] = (
    "close",
    "closes",
    "closed",
    "fix",
    "fixes",
    "fixed",
    "resolve",
    "resolves",
    "resolved",
)
ISSUE_REOPEN_KEYWORDS: tuple[str, ...] = ("reopen", "reopens", "reopened")

_TRAILING_NON_DIGITS = re.compile(r"\D+$")


def assemble_keywords_pattern(words: Iterable[str]) -> str:
    """``(?:w1|w2|...) \\S+``: a keyword on a word boundary, then the next token."""
    alternation = "|".join(re.escape(w) for w in words)
    return rf"\b(?:{alternation}) \S+"


@dataclass(frozen=True)
class KeywordPatterns:
    """Compiled reference, close and reopen patterns."""

    reference: Pattern[str]
    close: Pattern[str]
    reopen: Pattern[str]

    @classmethod
    def from_keywords(
        cls,
        close_keywords: Iterable[str] = ISSUE_CLOSE_KEYWORDS,
        reopen_keywords: Iterable[str] = ISSUE_REOPEN_KEYWORDS,
    ) -> "KeywordPatterns":
        return cls(
            # Every token is a candidate; resolution narrows it down.
            reference=re.compile(r"(?<!\S)\S+"),
            close=re.compile(assemble_keywords_pattern(close_keywords), re.IGNORECASE),
            reopen=re.compile(assemble_keywords_pattern(reopen_keywords), re.IGNORECASE),
        )


@lru_cache(maxsize=1)
def default_patterns() -> KeywordPatterns:
    return KeywordPatterns.from_keywords()


def trim_issue_index(token: str) -> str:
    """Strip trailing non-digits: ``#12.`` -> ``#12``."""
    return _TRAILING_NON_DIGITS.sub("", token)


def find_refs(pattern: Pattern[str], message: str) -> list[str]:
    """
    Candidate issue tokens matched by ``pattern`` in ``message``.

    Keeps the text after the first space of each match, trimmed of trailing
    non-digits; empty candidates are dropped.
    """
    refs: list[str] = []
    for match in pattern.finditer(message or ""):
        token = trim_issue_index(match.group(0).split(" ", 1)[-1])
        if token:
            refs.append(token)
    return refs
