"""Clock capability used wherever a default date or time is filled in."""
from __future__ import annotations

from datetime import date, datetime
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...

    def today(self) -> date: ...


class SystemClock:
    """Local wall clock."""

    def now(self) -> datetime:
        return datetime.now()

    def today(self) -> date:
        return self.now().date()


class FixedClock:
    """Clock pinned to a single moment, for tests and replays."""

    def __init__(self, moment: datetime) -> None:
        self.moment = moment

    def now(self) -> datetime:
        return self.moment

    def today(self) -> date:
        return self.moment.date()

    def advance_to(self, moment: datetime) -> None:
        self.moment = moment


def now_hhmm(clock: Clock) -> str:
    return clock.now().strftime("%H:%M")
