"""Tests for retrace.core.cell: StateCell primary state."""

from __future__ import annotations

from retrace.core.cell import ChangeNotice, PrimaryState, StateCell


class TestStateCell:
    def test_initial_value(self):
        cell = StateCell(5)
        assert cell.get() == 5
        assert cell.version == 0

    def test_set_bumps_version(self):
        cell = StateCell(5)
        cell.set(6)
        cell.set(6)
        assert cell.get() == 6
        assert cell.version == 2

    def test_satisfies_protocol(self):
        assert isinstance(StateCell(0), PrimaryState)

    def test_notifies_every_set(self):
        cell = StateCell("a")
        notices: list[ChangeNotice] = []
        cell.subscribe(notices.append)
        cell.set("b")
        cell.set("b")
        assert [(n.value, n.version) for n in notices] == [("b", 1), ("b", 2)]

    def test_origin_passed_through(self):
        cell = StateCell("a")
        notices: list[ChangeNotice] = []
        cell.subscribe(notices.append)
        cell.set("b", origin="undo-1")
        assert notices[0].origin == "undo-1"

    def test_default_origin_is_none(self):
        cell = StateCell("a")
        notices: list[ChangeNotice] = []
        cell.subscribe(notices.append)
        cell.set("b")
        assert notices[0].origin is None

    def test_unsubscribe(self):
        cell = StateCell("a")
        notices: list[ChangeNotice] = []
        unsubscribe = cell.subscribe(notices.append)
        assert cell.subscriber_count == 1
        unsubscribe()
        unsubscribe()
        assert cell.subscriber_count == 0
        cell.set("b")
        assert notices == []

    def test_failing_subscriber_does_not_block_others(self, caplog):
        cell = StateCell("a")
        got = []

        def bad(notice):
            raise RuntimeError("boom")

        cell.subscribe(bad)
        cell.subscribe(lambda n: got.append(n.value))
        cell.set("b")
        assert got == ["b"]
        assert "StateCell subscriber failed" in caplog.text

    def test_reentrant_set_from_subscriber(self):
        cell = StateCell(0)

        def clamp(notice):
            if notice.value > 10:
                cell.set(10)

        cell.subscribe(clamp)
        cell.set(42)
        assert cell.get() == 10

    def test_repr(self):
        assert "version=0" in repr(StateCell(1))
