"""Tests for the recurrence calculator."""

from datetime import UTC, datetime, timedelta

import pytest

from pushcron.scheduler.models import CycleConfig, Task
from pushcron.scheduler.recurrence import add_months, add_period, advance, is_expired

T0 = datetime(2025, 6, 1, 9, 0, tzinfo=UTC)


def _make_task(task_type: str = "cycle", period: str | None = "day", end_time=None) -> Task:
    cycle = CycleConfig(period=period, end_time=end_time) if period is not None else None
    return Task(
        id="task1",
        name="Test",
        content="hi",
        channel="server_chan",
        type=task_type,
        execute_time=T0,
        cycle_config=cycle,
    )


# -- add_months / add_period ---------------------------------------------------


@pytest.mark.parametrize(
    ("start", "expected"),
    [
        (datetime(2024, 1, 31, 8, tzinfo=UTC), datetime(2024, 2, 29, 8, tzinfo=UTC)),
        (datetime(2023, 1, 31, 8, tzinfo=UTC), datetime(2023, 2, 28, 8, tzinfo=UTC)),
        (datetime(2024, 12, 15, 8, tzinfo=UTC), datetime(2025, 1, 15, 8, tzinfo=UTC)),
        (datetime(2024, 3, 31, 8, tzinfo=UTC), datetime(2024, 4, 30, 8, tzinfo=UTC)),
    ],
)
def test_add_months_clamps_day(start: datetime, expected: datetime) -> None:
    assert add_months(start) == expected


def test_add_period_day_and_week() -> None:
    assert add_period(T0, "day") == T0 + timedelta(days=1)
    assert add_period(T0, "week") == T0 + timedelta(days=7)


def test_add_period_unknown() -> None:
    assert add_period(T0, "fortnight") is None


# -- advance -------------------------------------------------------------------


def test_single_task_finishes_without_moving() -> None:
    task = _make_task(task_type="single", period=None)
    outcome = advance(task, T0 + timedelta(minutes=3))
    assert outcome.still_active is False
    assert outcome.next_execute_time == T0


@pytest.mark.parametrize(
    ("period", "expected"),
    [
        ("day", T0 + timedelta(days=1)),
        ("week", T0 + timedelta(days=7)),
        ("month", datetime(2025, 7, 1, 9, 0, tzinfo=UTC)),
    ],
)
def test_cycle_task_moves_one_period(period: str, expected: datetime) -> None:
    outcome = advance(_make_task(period=period), T0)
    assert outcome.still_active is True
    assert outcome.next_execute_time == expected


def test_cycle_task_advances_from_current_time() -> None:
    late = T0 + timedelta(hours=5)
    outcome = advance(_make_task(period="day"), late)
    assert outcome.next_execute_time == late + timedelta(days=1)
    assert outcome.next_execute_time > late


def test_cycle_task_with_future_end_time_keeps_going() -> None:
    outcome = advance(_make_task(end_time=T0 + timedelta(days=10)), T0)
    assert outcome.still_active is True
    assert outcome.next_execute_time == T0 + timedelta(days=1)


def test_cycle_task_past_end_time_finishes() -> None:
    outcome = advance(_make_task(end_time=T0 - timedelta(days=1)), T0)
    assert outcome.still_active is False
    assert outcome.next_execute_time == T0


def test_cycle_task_end_time_equal_to_now_finishes() -> None:
    outcome = advance(_make_task(end_time=T0), T0)
    assert outcome.still_active is False


def test_unknown_period_stalls() -> None:
    outcome = advance(_make_task(period="hourly"), T0 + timedelta(minutes=1))
    assert outcome.still_active is True
    assert outcome.next_execute_time == T0


def test_cycle_without_config_stalls() -> None:
    outcome = advance(_make_task(period=None), T0)
    assert outcome.still_active is True
    assert outcome.next_execute_time == T0


def test_unknown_type_stalls() -> None:
    outcome = advance(_make_task(task_type="sometimes"), T0)
    assert outcome.still_active is True
    assert outcome.next_execute_time == T0


# -- is_expired ----------------------------------------------------------------


def test_is_expired() -> None:
    assert is_expired(_make_task(end_time=T0), T0) is True
    assert is_expired(_make_task(end_time=T0 + timedelta(seconds=1)), T0) is False
    assert is_expired(_make_task(), T0) is False
    assert is_expired(_make_task(task_type="single", end_time=T0), T0) is False
