"""Per-test trend series and narrative summaries built from a user's reports."""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime

from vitalsense.config import settings
from vitalsense.models.lab_report import LabReportRecord
from vitalsense.schemas.lab_report import Status
from vitalsense.schemas.trend import (
    AbnormalFinding,
    DoctorSummary,
    TrendAnalysis,
    TrendPoint,
    TrendSeries,
    TrendSummary,
)
from vitalsense.services.reference_range import is_abnormal

INCREASING = "increasing"
DECREASING = "decreasing"
STABLE = "stable"


@dataclass(frozen=True)
class NarrativeTemplate:
    direction: str | None
    status: Status | None
    text: str


# First matching (direction, latest status) wins; None matches anything.
NARRATIVE_TEMPLATES: list[NarrativeTemplate] = [
    NarrativeTemplate(
        DECREASING,
        Status.NORMAL,
        "Your {test_name} decreased from {first} to {last} {unit} ({percent}% decrease), "
        "current lifestyle changes are working.",
    ),
    NarrativeTemplate(
        INCREASING,
        Status.HIGH,
        "Your {test_name} increased from {first} to {last} {unit} ({percent}% increase), "
        "consider consulting your doctor.",
    ),
    NarrativeTemplate(STABLE, None, "Your {test_name} has remained relatively stable around {last} {unit}."),
    NarrativeTemplate(None, None, "Your {test_name} shows a {direction} trend. Current value: {last} {unit}."),
]

SINGLE_POINT_TEMPLATE = "Current {test_name} value: {last} {unit}. Upload more reports to see trends."
NO_POINTS_TEMPLATE = "No {test_name} results recorded yet. Upload reports to see trends."

DOCTOR_SUMMARY_REPORT_LIMIT = 5
DOCTOR_SUMMARY_FINDING_LIMIT = 10
DOCTOR_SUMMARY_FOLLOW_UPS = [
    "Review all abnormal values with healthcare provider",
    "Monitor trends over time",
    "Consider lifestyle modifications",
    "Schedule follow-up consultation",
]


def compute_delta(prev: float | None, curr: float | None) -> float | None:
    if prev is None or curr is None or prev == 0:
        return None
    return ((curr - prev) / prev) * 100.0


def classify_direction(percent_change: float, stable_threshold: float) -> str:
    if abs(percent_change) < stable_threshold:
        return STABLE
    return INCREASING if percent_change > 0 else DECREASING


def format_value(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def _select_template(direction: str, status: Status) -> NarrativeTemplate:
    for template in NARRATIVE_TEMPLATES:
        if template.direction not in (None, direction):
            continue
        if template.status not in (None, status):
            continue
        return template
    raise LookupError(f"No narrative template for ({direction}, {status})")


def analyze_trend(
    points: Sequence[TrendPoint],
    test_name: str = "",
    unit: str | None = None,
    stable_threshold: float | None = None,
) -> TrendAnalysis:
    """Summarise a date-ascending series of results for one test.

    The change is measured between the first and last point only. A first
    value of zero yields a 0% change and a stable direction.
    """
    threshold = settings.trend_stable_threshold_percent if stable_threshold is None else stable_threshold
    label = test_name or "result"

    if not points:
        return TrendAnalysis(direction=STABLE, percent_change=0.0, narrative=NO_POINTS_TEMPLATE.format(test_name=label))

    first, last = points[0], points[-1]
    display_unit = unit if unit is not None else last.unit

    if len(points) == 1:
        narrative = SINGLE_POINT_TEMPLATE.format(test_name=label, last=format_value(last.value), unit=display_unit)
        return TrendAnalysis(direction=STABLE, percent_change=0.0, narrative=narrative)

    percent_change = compute_delta(first.value, last.value) or 0.0
    direction = classify_direction(percent_change, threshold)

    percent = round(percent_change, 1)
    if direction == DECREASING:
        percent = abs(percent)
    template = _select_template(direction, Status(last.status))
    narrative = template.text.format(
        test_name=label,
        first=format_value(first.value),
        last=format_value(last.value),
        unit=display_unit,
        percent=f"{percent:.1f}",
        direction=direction,
    )
    return TrendAnalysis(direction=direction, percent_change=percent_change, narrative=narrative)


def _matches(name: str | None, wanted: str) -> bool:
    return (name or "").strip().lower() == wanted


def _sorted_reports(reports: Iterable[LabReportRecord]) -> list[LabReportRecord]:
    return sorted(reports, key=lambda r: (r.report_date, r.created_at or datetime.min))


def build_trend_series(reports: Iterable[LabReportRecord], test_name: str) -> TrendSeries:
    wanted = test_name.strip().lower()
    points = []
    for report in _sorted_reports(reports):
        result = next((r for r in report.results if _matches(r.test_name, wanted)), None)
        if result is None:
            continue
        points.append(
            TrendPoint(
                date=report.report_date,
                value=result.value,
                unit=result.unit,
                status=Status(result.status),
                reference_range=result.reference_range,
                report_id=report.id,
            )
        )
    return TrendSeries(test_name=test_name.strip(), points=points)


def build_all_trends(
    reports: Iterable[LabReportRecord],
    stable_threshold: float | None = None,
) -> list[TrendSummary]:
    ordered = _sorted_reports(reports)
    names: dict[str, str] = {}
    for report in ordered:
        for result in report.results:
            names.setdefault(result.test_name.strip().lower(), result.test_name.strip())

    summaries = []
    for display_name in names.values():
        series = build_trend_series(ordered, display_name)
        latest = series.points[-1] if series.points else None
        summaries.append(
            TrendSummary(
                test_name=display_name,
                points=series.points,
                latest_value=latest.value if latest else None,
                latest_status=latest.status if latest else None,
                analysis=analyze_trend(series.points, test_name=display_name, stable_threshold=stable_threshold),
            )
        )
    return summaries


def summarize_for_doctor(reports: Sequence[LabReportRecord]) -> DoctorSummary:
    """Non-normal results across reports given newest first, with fixed follow-up points."""
    findings = [
        AbnormalFinding(
            test_name=result.test_name,
            value=result.value,
            unit=result.unit,
            status=Status(result.status),
            report_date=report.report_date,
        )
        for report in reports
        for result in report.results
        if is_abnormal(result.status)
    ]
    summary = [
        f"Found {len(findings)} abnormal biomarker(s) across {len(reports)} report(s)",
        *DOCTOR_SUMMARY_FOLLOW_UPS,
    ]
    return DoctorSummary(
        summary=summary,
        report_count=len(reports),
        abnormal_count=len(findings),
        abnormal_biomarkers=findings[:DOCTOR_SUMMARY_FINDING_LIMIT],
    )
