"""
Date helpers for batch jobs.

Dates travel as strings written with Java/Joda-style patterns (``yyyyMMdd``,
``yyMMdd``, ``ddMMMyy``, ``HH:mm``), which is what job schedulers and folder
layouts on the cluster use. Patterns are translated to ``strftime`` directives
and every parse is checked by formatting the value back, so ``20170229`` or
``170228`` are rejected under ``yyyyMMdd``.

The default format is carried by each ``DateHelper`` instance instead of being
shared module state:

    dates = DateHelper(default_format="yyyyMMdd")
    dates.reformat("20170327", "yyyyMMdd", "yyMMdd")  # "170327"
    dates.nbr_of_days_between("20170327", "20170401")  # 5
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

DEFAULT_DATE_FORMAT = "yyyyMMdd"
DEFAULT_NOW_FORMAT = "yyyyMMdd_HHmm"

_PATTERN_CACHE: Dict[str, str] = {}


def _directive(letter: str, count: int) -> str:
    if letter == "y":
        return "%y" if count == 2 else "%Y"
    if letter == "M":
        if count >= 4:
            return "%B"
        if count == 3:
            return "%b"
        return "%m"
    if letter == "E":
        return "%A" if count >= 4 else "%a"
    simple = {
        "d": "%d",
        "D": "%j",
        "H": "%H",
        "h": "%I",
        "m": "%M",
        "s": "%S",
        "a": "%p",
        "Z": "%z",
    }
    if letter in simple:
        return simple[letter]
    raise ValueError(f"Unsupported date pattern token: {letter * count!r}")


def to_strftime(pattern: str) -> str:
    """Translate a Joda-style date pattern into a ``strftime`` format."""
    cached = _PATTERN_CACHE.get(pattern)
    if cached is not None:
        return cached
    out: List[str] = []
    i = 0
    n = len(pattern)
    while i < n:
        ch = pattern[i]
        if ch == "'":
            if i + 1 < n and pattern[i + 1] == "'":
                out.append("'")
                i += 2
                continue
            end = pattern.find("'", i + 1)
            if end == -1:
                raise ValueError(f"Unterminated quote in date pattern: {pattern!r}")
            out.append(pattern[i + 1 : end].replace("%", "%%"))
            i = end + 1
        elif ch.isalpha():
            j = i
            while j < n and pattern[j] == ch:
                j += 1
            out.append(_directive(ch, j - i))
            i = j
        else:
            out.append("%%" if ch == "%" else ch)
            i += 1
    result = "".join(out)
    _PATTERN_CACHE[pattern] = result
    return result


def format_duration(delta: timedelta) -> str:
    """Render a duration as ``HH:MM:SS``; hours keep counting past a day."""
    total = max(0, int(delta.total_seconds()))
    hours, rem = divmod(total, 3600)
    minutes, seconds = divmod(rem, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


class DateHelper:
    """Date arithmetic on formatted date strings."""

    def __init__(
        self,
        default_format: str = DEFAULT_DATE_FORMAT,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        to_strftime(default_format)
        self.default_format = default_format
        self.clock = clock

    def _fmt(self, fmt: Optional[str]) -> str:
        return fmt or self.default_format

    def format(self, moment: datetime, fmt: Optional[str] = None) -> str:
        return moment.strftime(to_strftime(self._fmt(fmt)))

    def parse(self, value: str, fmt: Optional[str] = None) -> datetime:
        pattern = self._fmt(fmt)
        parsed = datetime.strptime(value, to_strftime(pattern))
        # strptime accepts unpadded fields, so "170228" would pass as 1702-02-08.
        if self.format(parsed, pattern).lower() != value.lower():
            raise ValueError(f"Date {value!r} does not match format {pattern!r}")
        return parsed

    def is_compliant(self, value: str, fmt: str) -> bool:
        try:
            self.parse(value, fmt)
        except (TypeError, ValueError):
            return False
        return True

    def reformat(self, value: str, input_format: str, output_format: str) -> str:
        return self.format(self.parse(value, input_format), output_format)

    def now(self, fmt: str = DEFAULT_NOW_FORMAT, utc: bool = False) -> str:
        moment = self.clock()
        if utc:
            moment = moment.astimezone(timezone.utc)
        return self.format(moment, fmt)

    def today(self, fmt: Optional[str] = None) -> str:
        return self.format(self.clock(), fmt)

    def nbr_of_days_between(self, first: str, last: str, fmt: Optional[str] = None) -> int:
        start = self.parse(first, fmt).date()
        end = self.parse(last, fmt).date()
        return (end - start).days

    def date_from_timestamp(self, seconds: float, fmt: Optional[str] = None) -> str:
        return self.format(datetime.fromtimestamp(seconds, tz=timezone.utc), fmt)

    def days_since_timestamp(self, millis: int) -> int:
        now = self.clock()
        then = datetime.fromtimestamp(millis / 1000.0, tz=now.tzinfo)
        return (now - then).days
