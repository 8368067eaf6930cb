"""Five-field cron expressions (minute hour day month weekday).

Weekday 0 is Sunday. Each field accepts ``*``, an integer, a range ``a-b``,
a step ``*/n`` or ``base/n``, or a comma list of any of those.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from recall.errors import ScheduleError, ValidationError

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

# Two days of minutes
MAX_LOOKAHEAD_MINUTES = 2880

FIELD_NAMES = ("minute", "hour", "day", "month", "weekday")


def _parse_int(text: str, expression: str) -> int:
    try:
        return int(text)
    except ValueError:
        msg = f"Invalid cron value {text!r} in {expression!r}"
        raise ValidationError(msg) from None


def _parse_part(part: str, expression: str) -> Callable[[int], bool]:
    if part == "*":
        return lambda value: True

    if "/" in part:
        base_text, _, step_text = part.partition("/")
        step = _parse_int(step_text, expression)
        if step <= 0:
            msg = f"Cron step must be positive in {expression!r}"
            raise ValidationError(msg)
        if base_text == "*":
            return lambda value: value % step == 0
        base = _parse_int(base_text, expression)
        return lambda value: value % step == base % step

    if "-" in part:
        low_text, _, high_text = part.partition("-")
        low = _parse_int(low_text, expression)
        high = _parse_int(high_text, expression)
        return lambda value: low <= value <= high

    exact = _parse_int(part, expression)
    return lambda value: value == exact


def _parse_field(field: str, expression: str) -> Callable[[int], bool]:
    parts = field.split(",")
    if any(not p for p in parts):
        msg = f"Empty cron list item in {expression!r}"
        raise ValidationError(msg)
    matchers = [_parse_part(p, expression) for p in parts]
    if len(matchers) == 1:
        return matchers[0]
    return lambda value: any(m(value) for m in matchers)


class CronExpression:
    """A parsed cron expression.

    Raises ``ValidationError`` on construction if the expression is malformed.
    """

    def __init__(self, expression: str) -> None:
        fields = expression.split()
        if len(fields) != len(FIELD_NAMES):
            msg = f"Cron expression must have 5 fields, got {len(fields)}: {expression!r}"
            raise ValidationError(msg)
        self.expression = expression
        self._minute, self._hour, self._day, self._month, self._weekday = (
            _parse_field(f, expression) for f in fields
        )

    def __repr__(self) -> str:
        return f"CronExpression({self.expression!r})"

    def is_match(self, dt: datetime) -> bool:
        weekday = (dt.weekday() + 1) % 7  # Monday=0 -> Sunday=0
        return (
            self._minute(dt.minute)
            and self._hour(dt.hour)
            and self._day(dt.day)
            and self._month(dt.month)
            and self._weekday(weekday)
        )

    def get_next_run(self, after: datetime) -> datetime:
        """First matching minute strictly after *after*.

        Raises ``ScheduleError`` if nothing matches within two days.
        """
        candidate = after.replace(second=0, microsecond=0) + timedelta(minutes=1)
        for _ in range(MAX_LOOKAHEAD_MINUTES):
            if self.is_match(candidate):
                return candidate
            candidate += timedelta(minutes=1)
        msg = f"No run of {self.expression!r} within {MAX_LOOKAHEAD_MINUTES} minutes of {after}"
        raise ScheduleError(msg)
