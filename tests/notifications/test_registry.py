"""Tests for HandlerRegistry — pluggy-backed handler registration."""

from __future__ import annotations

from typing import Any

import pytest

from lendctl.notifications.registry import HandlerRegistry, handler_label


def record_one(payload: Any) -> None:
    pass


def record_two(payload: Any) -> None:
    pass


class TestHandlerRegistry:
    def test_attach_and_count(self) -> None:
        registry = HandlerRegistry()
        registry.attach("NEW_REQUEST", record_one)
        registry.attach("NEW_REQUEST", record_two)
        registry.attach("OVERDUE", record_one)
        assert registry.count("NEW_REQUEST") == 2
        assert registry.count("OVERDUE") == 1
        assert registry.count("BOOK_AVAILABLE") == 0

    def test_attach_same_handler_twice_is_noop(self) -> None:
        registry = HandlerRegistry()
        first = registry.attach("NEW_REQUEST", record_one)
        second = registry.attach("NEW_REQUEST", record_one)
        assert first == second
        assert registry.count("NEW_REQUEST") == 1

    def test_name_includes_type_and_label(self) -> None:
        registry = HandlerRegistry()
        name = registry.attach("OVERDUE", record_one)
        assert name == f"OVERDUE:{handler_label(record_one)}"

    def test_lambdas_get_distinct_names(self) -> None:
        registry = HandlerRegistry()
        a = registry.attach("OVERDUE", lambda p: None)
        b = registry.attach("OVERDUE", lambda p: None)
        assert a != b
        assert registry.count("OVERDUE") == 2

    def test_detach(self) -> None:
        registry = HandlerRegistry()
        registry.attach("OVERDUE", record_one)
        assert registry.detach("OVERDUE", record_one)
        assert not registry.detach("OVERDUE", record_one)
        assert registry.count("OVERDUE") == 0

    def test_detach_only_affects_one_type(self) -> None:
        registry = HandlerRegistry()
        registry.attach("OVERDUE", record_one)
        registry.attach("DUE_DATE_REMINDER", record_one)
        registry.detach("OVERDUE", record_one)
        assert registry.count("DUE_DATE_REMINDER") == 1

    def test_get_handler_by_name(self) -> None:
        calls: list[Any] = []
        registry = HandlerRegistry()
        name = registry.attach("OVERDUE", calls.append)
        fn = registry.get_handler("OVERDUE", name)
        assert fn is not None
        fn("payload")
        assert calls == ["payload"]
        assert registry.get_handler("OVERDUE", "missing") is None

    def test_unknown_type_rejected(self) -> None:
        registry = HandlerRegistry()
        with pytest.raises(ValueError):
            registry.attach("SOMETHING_ELSE", record_one)

    def test_reset(self) -> None:
        registry = HandlerRegistry()
        registry.attach("OVERDUE", record_one)
        registry.attach("NEW_REQUEST", record_two)
        registry.reset()
        assert registry.count("OVERDUE") == 0
        assert registry.count("NEW_REQUEST") == 0

    def test_registries_are_isolated(self) -> None:
        a = HandlerRegistry()
        b = HandlerRegistry()
        a.attach("OVERDUE", record_one)
        assert b.count("OVERDUE") == 0

    def test_load_entrypoints_without_plugins(self) -> None:
        registry = HandlerRegistry()
        registry.attach("OVERDUE", record_one)
        names = registry.load_entrypoints()
        assert f"OVERDUE:{handler_label(record_one)}" in names
