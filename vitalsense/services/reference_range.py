"""Reference range parsing and result classification.

Ranges arrive as free text copied from the lab report ("4.0 - 5.6", "< 200",
"> 40 mg/dL"). Parsing is best-effort: anything that does not fit one of the
known grammars is treated as unparseable and the result is classified as
NORMAL, so one odd range never blocks a whole report.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass

from vitalsense.schemas.lab_report import Status

_NUMBER = r"(\d+\.?\d*)"


@dataclass(frozen=True)
class ParsedRange:
    min_value: float | None
    max_value: float | None

    @property
    def is_bounded(self) -> bool:
        return self.min_value is not None and self.max_value is not None


def _bounded(match: re.Match) -> ParsedRange:
    return ParsedRange(min_value=float(match.group(1)), max_value=float(match.group(2)))


def _upper_only(match: re.Match) -> ParsedRange:
    return ParsedRange(min_value=None, max_value=float(match.group(1)))


def _lower_only(match: re.Match) -> ParsedRange:
    return ParsedRange(min_value=float(match.group(1)), max_value=None)


# Tried in order, first match wins. "< 5.6 - 6.0" reads as bounded, not upper-only.
RANGE_GRAMMARS: list[tuple[str, re.Pattern, Callable[[re.Match], ParsedRange]]] = [
    ("bounded", re.compile(_NUMBER + r"\s*-\s*" + _NUMBER), _bounded),
    ("upper_only", re.compile(r"<\s*" + _NUMBER), _upper_only),
    ("lower_only", re.compile(r">\s*" + _NUMBER), _lower_only),
]


def parse_reference_range(range_text: str | None) -> ParsedRange | None:
    if not range_text:
        return None
    cleaned = range_text.strip()
    for _, pattern, build in RANGE_GRAMMARS:
        match = pattern.search(cleaned)
        if match:
            # An inverted interval (min > max) is returned untouched.
            return build(match)
    return None


def classify_status(value: float, range_text: str | None) -> Status:
    parsed = parse_reference_range(range_text)
    if parsed is None:
        return Status.NORMAL
    if parsed.min_value is not None and value < parsed.min_value:
        return Status.LOW
    if parsed.max_value is not None and value > parsed.max_value:
        return Status.HIGH
    return Status.NORMAL


def is_abnormal(status: Status | str | None) -> bool:
    return status not in (None, "", Status.NORMAL)
