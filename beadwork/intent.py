"""Replaying structured commit-message intents against an issue store."""

from __future__ import annotations

import re
from typing import Callable, Iterable, Optional, Protocol, Sequence

__all__ = ["IssueStore", "ReplayError", "parse_intent", "extract_quoted", "replay"]


class IssueStore(Protocol):
    """The operations an issue store must offer for intents to be replayed.

    Each operation raises an exception when it cannot be carried out.
    """

    def create(self, title: str, *, priority: Optional[int] = None, issue_type: str = ""):
        """Create an issue with the given title, priority and type."""

    def close(self, issue_id: str, reason: str):
        """Close an issue."""

    def reopen(self, issue_id: str):
        """Reopen a closed issue."""

    def update(self, issue_id: str, **changes):
        """Change fields of an issue: status, assignee, priority, type, title, parent."""

    def link(self, blocker_id: str, blocked_id: str) -> None:
        """Record that one issue blocks another."""

    def unlink(self, blocker_id: str, blocked_id: str) -> None:
        """Remove a blocking relationship."""

    def label(self, issue_id: str, add: Sequence[str], remove: Sequence[str]):
        """Add and remove labels on an issue."""

    def delete(self, issue_id: str):
        """Delete an issue."""

    def comment(self, issue_id: str, text: str, author: str):
        """Add a comment to an issue."""

    def set_config(self, key: str, value: str) -> None:
        """Set a repository configuration value."""

    def commit(self, message: str) -> None:
        """Commit pending changes with the given message."""


class ReplayError(Exception):
    """An intent that could not be replayed."""

    def __init__(self, intent: str, cause: BaseException) -> None:
        super().__init__(f'replay "{intent}": {cause}')
        self.intent = intent
        self.cause = cause
        self.__cause__ = cause


_LEADING_INT = re.compile(r"[+-]?\d+")


def _scan_int(text: str) -> int:
    match = _LEADING_INT.match(text.lstrip())
    return int(match.group()) if match else 0


def parse_intent(raw: str) -> list[str]:
    """Split an intent on spaces, keeping double-quoted runs together.

    Quote characters themselves are dropped.
    """
    parts: list[str] = []
    current: list[str] = []
    in_quote = False
    for ch in raw:
        if ch == '"':
            in_quote = not in_quote
        elif ch == " " and not in_quote:
            if current:
                parts.append("".join(current))
                current = []
        else:
            current.append(ch)
    if current:
        parts.append("".join(current))
    return parts


def extract_quoted(raw: str) -> str:
    """Return the text between the first pair of double quotes, or ''."""
    start = raw.find('"')
    if start == -1:
        return ""
    end = raw.find('"', start + 1)
    if end == -1:
        return ""
    return raw[start + 1 : end]


def _split_key_value(kv: str) -> Optional[tuple[str, str]]:
    key, sep, value = kv.partition("=")
    return (key, value) if sep else None


def _replay_create(store: IssueStore, args: list[str], raw: str) -> None:
    # create <id> p<n> <type> "<title>"
    if len(args) < 4:
        raise ValueError("malformed create intent")
    priority = _scan_int(args[1][1:]) if args[1].startswith("p") else None
    title = extract_quoted(raw) or " ".join(args[3:])
    store.create(title, priority=priority, issue_type=args[2])
    store.commit(raw)


def _replay_close(store: IssueStore, args: list[str], raw: str) -> None:
    if not args:
        raise ValueError("malformed close intent")
    store.close(args[0], "")
    store.commit(raw)


def _replay_reopen(store: IssueStore, args: list[str], raw: str) -> None:
    if not args:
        raise ValueError("malformed reopen intent")
    store.reopen(args[0])
    store.commit(raw)


_UPDATE_KEYS = {"status", "assignee", "type", "title", "parent"}


def _replay_update(store: IssueStore, args: list[str], raw: str) -> None:
    # update <id> key=value key=value ...
    if len(args) < 2:
        raise ValueError("malformed update intent")
    changes: dict[str, object] = {}
    for kv in args[1:]:
        pair = _split_key_value(kv)
        if pair is None:
            continue
        key, value = pair
        if key == "priority":
            changes["priority"] = _scan_int(value)
        elif key in _UPDATE_KEYS:
            changes[key] = value
    store.update(args[0], **changes)
    store.commit(raw)


def _replay_link(store: IssueStore, args: list[str], raw: str) -> None:
    # link <id1> blocks <id2>
    if len(args) < 3 or args[1] != "blocks":
        raise ValueError("malformed link intent")
    store.link(args[0], args[2])
    store.commit(raw)


def _replay_unlink(store: IssueStore, args: list[str], raw: str) -> None:
    if len(args) < 3 or args[1] != "blocks":
        raise ValueError("malformed unlink intent")
    store.unlink(args[0], args[2])
    store.commit(raw)


def _replay_label(store: IssueStore, args: list[str], raw: str) -> None:
    # label <id> +bug +frontend -wontfix
    if len(args) < 2:
        raise ValueError("malformed label intent")
    add = [arg[1:] for arg in args[1:] if arg.startswith("+")]
    remove = [arg[1:] for arg in args[1:] if arg.startswith("-")]
    store.label(args[0], add, remove)
    store.commit(raw)


def _replay_delete(store: IssueStore, args: list[str], raw: str) -> None:
    if not args:
        raise ValueError("malformed delete intent")
    store.delete(args[0])
    store.commit(raw)


def _replay_config(store: IssueStore, args: list[str], raw: str) -> None:
    # config key=value
    if not args:
        raise ValueError("malformed config intent")
    pair = _split_key_value(args[0])
    if pair is None:
        raise ValueError("malformed config intent: missing '='")
    store.set_config(*pair)
    store.commit(raw)


def _replay_comment(store: IssueStore, args: list[str], raw: str) -> None:
    if not args:
        raise ValueError("malformed comment intent")
    text = extract_quoted(raw)
    if not text and len(args) > 1:
        text = " ".join(args[1:])
    store.comment(args[0], text, "")
    store.commit(raw)


_Handler = Callable[[IssueStore, list, str], None]

_HANDLERS: dict[str, _Handler] = {
    "create": _replay_create,
    "close": _replay_close,
    "reopen": _replay_reopen,
    "update": _replay_update,
    "link": _replay_link,
    "unlink": _replay_unlink,
    "label": _replay_label,
    "delete": _replay_delete,
    "config": _replay_config,
    "comment": _replay_comment,
}


def replay(store: IssueStore, intents: Iterable[str]) -> list[ReplayError]:
    """Replay each intent against the store, committing each success.

    Empty, ``init`` and unknown intents are skipped. Failures do not stop the
    replay; they are collected and returned.
    """
    errors: list[ReplayError] = []
    for raw in intents:
        parts = parse_intent(raw)
        if not parts:
            continue
        handler = _HANDLERS.get(parts[0])
        if handler is None:
            continue
        try:
            handler(store, parts[1:], raw)
        except Exception as exc:  # store failures are reported, not fatal
            errors.append(ReplayError(raw, exc))
    return errors