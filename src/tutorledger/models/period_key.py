"""Period addressing shared by lesson-based and week-based progress."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

LESSON_PREFIX = "lesson:"
WEEK_PREFIX = "week:"


@dataclass(frozen=True)
class PeriodKey:
    """Identifies one progress slot, either by lesson name or by week number.

    Exactly one of ``lesson`` and ``week`` is set. The canonical stored form is
    ``lesson:<name>`` or ``week:<n>``.
    """

    lesson: Optional[str] = None
    week: Optional[int] = None

    def __post_init__(self) -> None:
        if (self.lesson is None) == (self.week is None):
            raise ValueError("PeriodKey needs exactly one of lesson or week")
        if self.lesson is not None and not self.lesson.strip():
            raise ValueError("Lesson name must not be blank")
        if self.week is not None and (isinstance(self.week, bool) or self.week < 1):
            raise ValueError("Week number must be a positive integer")

    @classmethod
    def by_name(cls, lesson: str) -> PeriodKey:
        return cls(lesson=lesson.strip())

    @classmethod
    def by_number(cls, week: int) -> PeriodKey:
        return cls(week=int(week))

    @classmethod
    def parse(cls, value: Union[str, PeriodKey]) -> PeriodKey:
        """Build a key from its canonical string form."""

        if isinstance(value, PeriodKey):
            return value
        if value.startswith(LESSON_PREFIX):
            return cls.by_name(value[len(LESSON_PREFIX):])
        if value.startswith(WEEK_PREFIX):
            return cls.by_number(int(value[len(WEEK_PREFIX):]))
        raise ValueError(f"Unrecognised period key {value!r}")

    @property
    def is_week(self) -> bool:
        return self.week is not None

    def encode(self) -> str:
        if self.week is not None:
            return f"{WEEK_PREFIX}{self.week}"
        return f"{LESSON_PREFIX}{self.lesson}"

    def sort_key(self) -> tuple:
        return (0, self.week, "") if self.week is not None else (1, 0, self.lesson)

    def __str__(self) -> str:
        return self.encode()
