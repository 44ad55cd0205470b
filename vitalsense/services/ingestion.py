import logging
import math
import re
from collections.abc import Iterable

from vitalsense.schemas.lab_report import RawTestResult, TestResult
from vitalsense.services.reference_range import classify_status

logger = logging.getLogger(__name__)

UNIT_ALIASES = {
    "mg/dl": "mg/dL",
    "g/dl": "g/dL",
    "mmol/l": "mmol/L",
    "iu/l": "IU/L",
    "u/l": "U/L",
}

# Leading number only, so "130 mg/dL" reads as 130 and "5.6%" as 5.6.
_LEADING_NUMBER = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def normalize_unit(unit: str) -> str:
    return UNIT_ALIASES.get(unit.strip().lower(), unit.strip())


def to_float(value) -> float | None:
    """Coerce an extracted value to a finite float, or None when it has no usable number."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        match = _LEADING_NUMBER.match(str(value))
        if not match:
            return None
        number = float(match.group(1))
    return number if math.isfinite(number) else None


def process_results(raw_results: Iterable[RawTestResult]) -> list[TestResult]:
    """Validate, normalise and classify extracted results, dropping unusable rows."""
    processed: list[TestResult] = []
    for raw in raw_results:
        test_name = str(raw.test_name).strip() if raw.test_name is not None else ""
        if not test_name or raw.value is None or not raw.unit or not raw.reference_range:
            logger.warning("Skipping incomplete extracted result: %s", raw.model_dump())
            continue
        value = to_float(raw.value)
        if value is None:
            logger.warning("Invalid value for %s: %r", test_name, raw.value)
            continue
        reference_range = str(raw.reference_range).strip()
        processed.append(
            TestResult(
                test_name=test_name,
                value=value,
                unit=normalize_unit(str(raw.unit)),
                reference_range=reference_range,
                status=classify_status(value, reference_range),
            )
        )
    return processed
