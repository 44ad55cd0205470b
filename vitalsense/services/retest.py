# Rule-based retest suggestions. General wellness intervals only, not medical advice.
import re
from collections.abc import Iterable
from dataclasses import dataclass

from vitalsense.schemas.lab_report import Status, TestResult
from vitalsense.services.reference_range import is_abnormal

RETEST_FALLBACK_MESSAGE = (
    "Based on general wellness guidelines, please consult your healthcare provider "
    "for the recommended retest interval."
)
DEFAULT_INTERVAL_MONTHS = 12.0


@dataclass(frozen=True)
class RetestRule:
    pattern: re.Pattern
    interval: str
    abnormal_only: bool = False


RETEST_RULES: list[RetestRule] = [
    RetestRule(re.compile(r"hba1c", re.IGNORECASE), "3 months"),
    RetestRule(re.compile(r"(total cholesterol|ldl|hdl|triglycerides|lipid profile)", re.IGNORECASE), "6 months"),
    RetestRule(re.compile(r"vitamin d", re.IGNORECASE), "2–3 months"),
    RetestRule(re.compile(r"creatinine", re.IGNORECASE), "3 months", abnormal_only=True),
]

_RANGE_MONTHS = re.compile(r"(\d+(?:\.\d+)?)\s*[–-]\s*(\d+(?:\.\d+)?)")
_MONTHS = re.compile(r"\d+(?:\.\d+)?")


def interval_for(test_name: str | None, status: Status | str | None = None) -> str | None:
    if not test_name or not str(test_name).strip():
        return None
    for rule in RETEST_RULES:
        if rule.pattern.search(str(test_name)):
            if rule.abnormal_only and not is_abnormal(status):
                return None
            return rule.interval
    return None


def interval_to_months(interval: str) -> float:
    """Turn "3 months" into 3.0 and "2–3 months" into 2.5."""
    spread = _RANGE_MONTHS.search(interval)
    if spread:
        return (float(spread.group(1)) + float(spread.group(2))) / 2
    single = _MONTHS.search(interval)
    if single:
        return float(single.group(0))
    return DEFAULT_INTERVAL_MONTHS


def recommend(results: Iterable[TestResult]) -> str | None:
    intervals: list[str] = []
    for result in results or []:
        interval = interval_for(result.test_name, result.status)
        if interval and interval not in intervals:
            intervals.append(interval)
    if not intervals:
        return None
    # the most time-sensitive test governs the report
    return min(intervals, key=interval_to_months)
