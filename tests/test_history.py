"""Tests for bounded per-user conversation history."""

import pytest

from notebot.session.history import ConversationHistoryManager


def _user(i: int) -> dict:
    return {"role": "user", "content": f"m{i}"}


def test_get_creates_empty_history():
    manager = ConversationHistoryManager()
    assert manager.get("u") == []
    assert manager.users == ["u"]


def test_system_prompt_inserted_then_overwritten():
    manager = ConversationHistoryManager()
    manager.push("u", _user(0))
    manager.ensure_system_prompt("u", "prompt v1")
    manager.ensure_system_prompt("u", "prompt v2")

    history = manager.get("u")
    assert history[0] == {"role": "system", "content": "prompt v2"}
    assert history[1] == _user(0)
    assert len(history) == 2


def test_push_never_exceeds_max_and_keeps_prompt():
    manager = ConversationHistoryManager(max_history=5)
    manager.push("u", _user(0))
    manager.ensure_system_prompt("u", "prompt")
    for i in range(1, 10):
        manager.push("u", _user(i))

    history = manager.get("u")
    assert len(history) == 5
    assert history[0]["role"] == "system"
    assert [m["content"] for m in history[1:]] == ["m6", "m7", "m8", "m9"]


def test_eviction_without_prompt_drops_oldest():
    manager = ConversationHistoryManager(max_history=3)
    for i in range(4):
        manager.push("u", _user(i))
    assert [m["content"] for m in manager.get("u")] == ["m1", "m2", "m3"]


def test_prompt_insert_on_full_history_stays_bounded():
    manager = ConversationHistoryManager(max_history=3)
    for i in range(3):
        manager.push("u", _user(i))
    manager.ensure_system_prompt("u", "prompt")

    history = manager.get("u")
    assert len(history) == 3
    assert history[0]["role"] == "system"
    assert [m["content"] for m in history[1:]] == ["m1", "m2"]


def test_histories_are_per_user_and_clearable():
    manager = ConversationHistoryManager()
    manager.push("a", _user(1))
    manager.push("b", _user(2))
    manager.clear("a")
    assert manager.get("a") == []
    assert manager.get("b") == [_user(2)]


def test_rejects_tiny_limit():
    with pytest.raises(ValueError):
        ConversationHistoryManager(max_history=1)
