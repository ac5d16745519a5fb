"""Tests for cli.store (JSON key-value store, preferences, history)."""

from __future__ import annotations

import pytest

from cli.store import (
    HISTORY_KEY,
    PREFERENCES_KEY,
    JsonFileStore,
    Preferences,
    add_message,
    clear_history,
    delete_conversation,
    find_conversation,
    get_history,
    load_preferences,
    save_preferences,
    save_to_history,
)


@pytest.fixture
def store(tmp_path) -> JsonFileStore:
    return JsonFileStore(tmp_path / "state")


# ---------------------------------------------------------------------------
# JsonFileStore
# ---------------------------------------------------------------------------

class TestJsonFileStore:
    def test_missing_key_is_none(self, store) -> None:
        assert store.get("anything") is None

    def test_set_get_delete(self, store) -> None:
        store.set("k", {"a": [1, 2]})
        assert store.get("k") == {"a": [1, 2]}
        assert (store.directory / "k.json").exists()

        store.delete("k")
        assert store.get("k") is None
        store.delete("k")

    def test_corrupt_file_reads_as_none(self, store) -> None:
        store.directory.mkdir(parents=True)
        (store.directory / "k.json").write_text("{not json", encoding="utf-8")
        assert store.get("k") is None

    def test_default_directory_follows_settings(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setattr("cli.store.settings.cli_config_dir", tmp_path / "cfg")
        JsonFileStore().set("k", 1)
        assert (tmp_path / "cfg" / "k.json").exists()


# ---------------------------------------------------------------------------
# Preferences
# ---------------------------------------------------------------------------

class TestPreferences:
    def test_defaults_when_nothing_stored(self, store) -> None:
        prefs = load_preferences(store)
        assert prefs.default_search_engine == "all"
        assert prefs.default_source_count == 4
        assert prefs.history_enabled is True
        assert prefs.max_history_items == 50

    def test_roundtrip_through_store(self, store) -> None:
        save_preferences(Preferences(default_search_engine="bing", max_history_items=5), store)
        prefs = load_preferences(store)
        assert prefs.default_search_engine == "bing"
        assert prefs.max_history_items == 5

    def test_unknown_keys_ignored(self, store) -> None:
        store.set(PREFERENCES_KEY, {"default_search_engine": "google", "theme": "dark"})
        assert load_preferences(store).default_search_engine == "google"

    def test_garbage_falls_back_to_defaults(self, store) -> None:
        store.set(PREFERENCES_KEY, ["not", "a", "dict"])
        assert load_preferences(store) == Preferences()


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------

class TestHistory:
    def test_newest_first(self, store) -> None:
        save_to_history("one", "a1", store=store)
        save_to_history("two", "a2", store=store)

        titles = [c.title for c in get_history(store)]
        assert titles == ["two", "one"]

    def test_conversation_shape(self, store) -> None:
        conversation = save_to_history("question", "answer", store=store)

        assert conversation.id
        assert [m["role"] for m in conversation.messages] == ["user", "assistant"]
        assert conversation.messages[1]["content"] == "answer"
        assert conversation.created_at.endswith("Z")

    def test_trimmed_to_max_items(self, store) -> None:
        save_preferences(Preferences(max_history_items=2), store)
        for i in range(4):
            save_to_history(f"q{i}", "a", store=store)

        assert [c.title for c in get_history(store)] == ["q3", "q2"]

    def test_disabled_history_stores_nothing(self, store) -> None:
        save_preferences(Preferences(history_enabled=False), store)
        assert save_to_history("q", "a", store=store) is None
        assert store.get(HISTORY_KEY) is None

    def test_blank_query_stores_nothing(self, store) -> None:
        assert save_to_history("   ", "a", store=store) is None
        assert get_history(store) == []

    def test_same_id_replaces_in_place(self, store) -> None:
        first = save_to_history("q1", "a1", conversation_id="c1", store=store)
        save_to_history("q2", "a2", store=store)
        updated = save_to_history("q1 again", "a1 again", conversation_id="c1", store=store)

        history = get_history(store)
        assert [c.id for c in history][1] == "c1"
        assert len(history) == 2
        assert history[1].title == "q1 again"
        assert updated.created_at == first.created_at

    def test_add_message(self, store) -> None:
        conversation = save_to_history("q", "a", store=store)

        assert add_message(conversation.id, "user", "follow-up", store=store) is True
        assert add_message("missing", "user", "x", store=store) is False

        [stored] = get_history(store)
        assert stored.messages[-1]["content"] == "follow-up"
        assert len(stored.messages) == 3

    def test_find_by_unique_prefix(self, store) -> None:
        save_to_history("q1", "a", conversation_id="abc123", store=store)
        save_to_history("q2", "a", conversation_id="abd456", store=store)

        assert find_conversation("abc", store).title == "q1"
        assert find_conversation("ab", store) is None
        assert find_conversation("zzz", store) is None

    def test_delete_and_clear(self, store) -> None:
        save_to_history("q1", "a", conversation_id="c1", store=store)
        save_to_history("q2", "a", conversation_id="c2", store=store)

        assert delete_conversation("c1", store) is True
        assert delete_conversation("c1", store) is False
        assert [c.id for c in get_history(store)] == ["c2"]

        clear_history(store)
        assert get_history(store) == []

    def test_corrupt_entries_skipped(self, store) -> None:
        store.set(HISTORY_KEY, [{"id": "c1", "title": "ok"}, "junk", 3])
        assert [c.id for c in get_history(store)] == ["c1"]
