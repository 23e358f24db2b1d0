"""
Unit tests for the task scheduler.
"""

import pytest

from src.drill.scheduling import TaskScheduler


class TestVirtualScheduler:
    def test_runs_when_due(self, scheduler):
        ran = []
        scheduler.call_later(100, lambda: ran.append("a"))

        scheduler.advance(99)
        assert ran == []

        scheduler.advance(1)
        assert ran == ["a"]

    def test_due_order_then_schedule_order(self, scheduler):
        ran = []
        scheduler.call_later(200, lambda: ran.append("late"))
        scheduler.call_later(100, lambda: ran.append("first"))
        scheduler.call_later(100, lambda: ran.append("second"))

        scheduler.advance(500)

        assert ran == ["first", "second", "late"]

    def test_cancelled_task_never_runs(self, scheduler):
        ran = []
        task = scheduler.call_later(100, lambda: ran.append("x"))
        task.cancel()

        scheduler.advance(1000)

        assert ran == []
        assert not task.active

    def test_task_scheduled_by_task_runs_in_same_advance(self, scheduler):
        ran = []

        def first():
            ran.append(("first", scheduler.now_ms()))
            scheduler.call_later(50, lambda: ran.append(("second", scheduler.now_ms())))

        scheduler.call_later(100, first)
        scheduler.advance(200)

        assert ran == [("first", 100), ("second", 150)]
        assert scheduler.now_ms() == 200

    def test_raising_callback_is_isolated(self, scheduler):
        ran = []

        def broken():
            raise RuntimeError("boom")

        scheduler.call_later(10, broken)
        scheduler.call_later(20, lambda: ran.append("ok"))

        scheduler.advance(100)

        assert ran == ["ok"]

    def test_next_due_excludes_owner(self, scheduler):
        scheduler.call_later(1000, lambda: None, owner="countdown")
        scheduler.call_later(300, lambda: None, owner="Solution")

        assert scheduler.next_due() == 300
        assert scheduler.next_due(exclude_owner="Solution") == 1000
        assert scheduler.has_pending("countdown")

    def test_cancel_all_by_owner(self, scheduler):
        ran = []
        scheduler.call_later(10, lambda: ran.append("a"), owner="a")
        scheduler.call_later(10, lambda: ran.append("b"), owner="b")

        scheduler.cancel_all("a")
        scheduler.advance(10)

        assert ran == ["b"]
        assert not scheduler.has_pending()


class TestRealClockScheduler:
    def test_run_pending_uses_clock(self):
        now = [1.0]
        scheduler = TaskScheduler(clock=lambda: now[0])
        ran = []
        scheduler.call_later(500, lambda: ran.append("x"))

        assert scheduler.run_pending() == 0
        now[0] = 1.5
        assert scheduler.run_pending() == 1
        assert ran == ["x"]

    def test_advance_requires_virtual_clock(self):
        scheduler = TaskScheduler(clock=lambda: 0.0)
        with pytest.raises(RuntimeError):
            scheduler.advance(10)
