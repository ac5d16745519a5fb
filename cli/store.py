"""Persistent CLI state: user preferences and conversation history.

Everything goes through a small key-value port so the storage backend can be
swapped.  The default :class:`JsonFileStore` keeps one JSON file per key in
``settings.cli_config_dir`` (``~/.vsearch`` unless ``VSEARCH_CLI_DIR`` is set):

    preferences.json   the user's defaults for ``sources`` / ``ask``
    history.json       past conversations, newest first
"""

from __future__ import annotations

import json
import uuid
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol

from vsearch.config import settings

PREFERENCES_KEY = "preferences"
HISTORY_KEY = "history"

DEFAULT_MAX_HISTORY = 50


class KeyValueStore(Protocol):
    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...


class JsonFileStore:
    """Store each key as ``<directory>/<key>.json``.

    Missing or corrupt files read as ``None``.  *directory* defaults to
    ``settings.cli_config_dir``, resolved on every call.
    """

    def __init__(self, directory: Path | None = None) -> None:
        self._directory = directory

    @property
    def directory(self) -> Path:
        return self._directory or settings.cli_config_dir

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Any | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return None

    def set(self, key: str, value: Any) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        self._path(key).write_text(json.dumps(value, indent=2), encoding="utf-8")

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


# ---------------------------------------------------------------------------
# Preferences
# ---------------------------------------------------------------------------

@dataclass
class Preferences:
    default_search_engine: str = "all"
    default_source_count: int = field(default_factory=lambda: settings.default_source_count)
    history_enabled: bool = True
    max_history_items: int = DEFAULT_MAX_HISTORY

    @classmethod
    def from_dict(cls, raw: Any) -> Preferences:
        """Build preferences from stored data, ignoring unknown keys."""
        if not isinstance(raw, dict):
            return cls()
        known = {f.name for f in fields(cls)}
        try:
            return cls(**{k: v for k, v in raw.items() if k in known})
        except TypeError:
            return cls()

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def load_preferences(store: KeyValueStore | None = None) -> Preferences:
    store = store or JsonFileStore()
    return Preferences.from_dict(store.get(PREFERENCES_KEY))


def save_preferences(prefs: Preferences, store: KeyValueStore | None = None) -> None:
    store = store or JsonFileStore()
    store.set(PREFERENCES_KEY, prefs.to_dict())


# ---------------------------------------------------------------------------
# Conversation history
# ---------------------------------------------------------------------------

@dataclass
class Conversation:
    id: str
    title: str
    messages: list[dict[str, str]] = field(default_factory=list)
    created_at: str = field(default_factory=_now)
    updated_at: str = field(default_factory=_now)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Conversation:
        return cls(
            id=str(raw.get("id", "")),
            title=str(raw.get("title", "")),
            messages=list(raw.get("messages", [])),
            created_at=str(raw.get("created_at", "")),
            updated_at=str(raw.get("updated_at", "")),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def get_history(store: KeyValueStore | None = None) -> list[Conversation]:
    """Return stored conversations, newest first."""
    store = store or JsonFileStore()
    raw = store.get(HISTORY_KEY)
    if not isinstance(raw, list):
        return []
    return [Conversation.from_dict(item) for item in raw if isinstance(item, dict)]


def _save_history(history: list[Conversation], store: KeyValueStore) -> None:
    store.set(HISTORY_KEY, [c.to_dict() for c in history])


def save_to_history(
    query: str,
    answer: str,
    conversation_id: str | None = None,
    store: KeyValueStore | None = None,
) -> Conversation | None:
    """Record a question/answer pair as a conversation.

    An existing conversation with the same id is replaced in place; a new one
    goes to the front.  The list is trimmed to ``max_history_items``.
    Returns ``None`` (nothing stored) for a blank query or when history is
    disabled in the preferences.
    """
    store = store or JsonFileStore()
    prefs = load_preferences(store)
    if not query.strip() or not prefs.history_enabled:
        return None

    now = _now()
    conversation = Conversation(
        id=conversation_id or uuid.uuid4().hex,
        title=query,
        messages=[
            {"role": "user", "content": query, "timestamp": now},
            {"role": "assistant", "content": answer, "timestamp": now},
        ],
        created_at=now,
        updated_at=now,
    )

    history = get_history(store)
    for index, existing in enumerate(history):
        if existing.id == conversation.id:
            conversation.created_at = existing.created_at
            history[index] = conversation
            break
    else:
        history.insert(0, conversation)

    _save_history(history[: max(prefs.max_history_items, 0)], store)
    return conversation


def add_message(
    conversation_id: str,
    role: str,
    content: str,
    store: KeyValueStore | None = None,
) -> bool:
    """Append a message to a stored conversation; ``False`` if it is unknown."""
    store = store or JsonFileStore()
    history = get_history(store)
    for conversation in history:
        if conversation.id == conversation_id:
            now = _now()
            conversation.messages.append(
                {"role": role, "content": content, "timestamp": now}
            )
            conversation.updated_at = now
            _save_history(history, store)
            return True
    return False


def find_conversation(
    id_prefix: str, store: KeyValueStore | None = None
) -> Conversation | None:
    """Return the conversation whose id starts with *id_prefix*, if unique."""
    matches = [c for c in get_history(store) if c.id.startswith(id_prefix)]
    return matches[0] if len(matches) == 1 else None


def delete_conversation(conversation_id: str, store: KeyValueStore | None = None) -> bool:
    store = store or JsonFileStore()
    history = get_history(store)
    remaining = [c for c in history if c.id != conversation_id]
    if len(remaining) == len(history):
        return False
    _save_history(remaining, store)
    return True


def clear_history(store: KeyValueStore | None = None) -> None:
    store = store or JsonFileStore()
    store.delete(HISTORY_KEY)
