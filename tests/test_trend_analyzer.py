from datetime import date, datetime

import pytest

from vitalsense.models.lab_report import LabReportRecord, TestResultRecord
from vitalsense.schemas.lab_report import Status
from vitalsense.schemas.trend import TrendPoint
from vitalsense.services.trend_analyzer import (
    analyze_trend,
    build_all_trends,
    build_trend_series,
    classify_direction,
    compute_delta,
    format_value,
    summarize_for_doctor,
)


def _point(day: int, value: float, status: Status = Status.NORMAL, unit: str = "mg/dL") -> TrendPoint:
    return TrendPoint(date=date(2025, 1, day), value=value, unit=unit, status=status)


def _report(report_id: str, report_date: date, *results: tuple, created_at: datetime | None = None) -> LabReportRecord:
    return LabReportRecord(
        id=report_id,
        user_id="user-1",
        report_date=report_date,
        created_at=created_at or datetime(2025, 1, 1),
        results=[
            TestResultRecord(
                position=i,
                test_name=name,
                value=value,
                unit="mg/dL",
                reference_range="70 - 100",
                status=status,
            )
            for i, (name, value, status) in enumerate(results)
        ],
    )


def test_single_point_is_stable_with_invitation():
    analysis = analyze_trend([_point(1, 100)], test_name="Glucose")
    assert analysis.direction == "stable"
    assert analysis.percent_change == 0
    assert analysis.narrative == "Current Glucose value: 100 mg/dL. Upload more reports to see trends."


def test_no_points_is_stable():
    analysis = analyze_trend([], test_name="Glucose")
    assert analysis.direction == "stable"
    assert analysis.percent_change == 0
    assert "No Glucose results" in analysis.narrative


def test_ten_percent_rise_is_increasing():
    analysis = analyze_trend([_point(1, 100), _point(2, 110)], test_name="Glucose")
    assert analysis.percent_change == pytest.approx(10)
    assert analysis.direction == "increasing"


def test_change_inside_noise_floor_is_stable():
    analysis = analyze_trend([_point(1, 100), _point(2, 103)], test_name="Glucose")
    assert analysis.direction == "stable"
    assert analysis.narrative == "Your Glucose has remained relatively stable around 103 mg/dL."


def test_only_first_and_last_points_count():
    points = [_point(1, 100), _point(2, 500), _point(3, 101)]
    assert analyze_trend(points).direction == "stable"


def test_zero_first_value_is_stable():
    analysis = analyze_trend([_point(1, 0), _point(2, 50)], test_name="CRP")
    assert analysis.percent_change == 0
    assert analysis.direction == "stable"


def test_threshold_is_configurable():
    points = [_point(1, 100), _point(2, 103)]
    assert analyze_trend(points, stable_threshold=2.0).direction == "increasing"


def test_increase_to_high_narrative():
    points = [_point(1, 95), _point(2, 130, Status.HIGH)]
    analysis = analyze_trend(points, test_name="Glucose")
    assert analysis.percent_change == pytest.approx(36.84, abs=0.01)
    assert analysis.narrative == (
        "Your Glucose increased from 95 to 130 mg/dL (36.8% increase), consider consulting your doctor."
    )


def test_decrease_to_normal_narrative_uses_absolute_percent():
    points = [_point(1, 130, Status.HIGH), _point(2, 90)]
    analysis = analyze_trend(points, test_name="Glucose")
    assert analysis.direction == "decreasing"
    assert analysis.narrative == (
        "Your Glucose decreased from 130 to 90 mg/dL (30.8% decrease), current lifestyle changes are working."
    )


def test_fallback_narrative_for_other_combinations():
    points = [_point(1, 12.0), _point(2, 9.5, Status.LOW)]
    analysis = analyze_trend(points, test_name="Hemoglobin", unit="g/dL")
    assert analysis.direction == "decreasing"
    assert analysis.narrative == "Your Hemoglobin shows a decreasing trend. Current value: 9.5 g/dL."


def test_helpers():
    assert compute_delta(0, 10) is None
    assert compute_delta(200, 100) == -50
    assert classify_direction(-4.99, 5.0) == "stable"
    assert classify_direction(-5.0, 5.0) == "decreasing"
    assert format_value(95.0) == "95"
    assert format_value(5.7) == "5.7"


def test_build_trend_series_matches_names_case_insensitively_and_sorts():
    reports = [
        _report("r2", date(2025, 2, 1), ("GLUCOSE ", 130.0, "HIGH")),
        _report("r1", date(2025, 1, 1), ("Glucose", 95.0, "NORMAL"), ("HbA1c", 5.4, "NORMAL")),
        _report("r3", date(2025, 3, 1), ("HbA1c", 5.9, "HIGH")),
    ]
    series = build_trend_series(reports, " glucose")
    assert series.test_name == "glucose"
    assert [p.value for p in series.points] == [95.0, 130.0]
    assert [p.report_id for p in series.points] == ["r1", "r2"]
    assert series.points[-1].status == Status.HIGH


def test_build_trend_series_breaks_date_ties_by_creation_time():
    reports = [
        _report("late", date(2025, 1, 1), ("Glucose", 110.0, "HIGH"), created_at=datetime(2025, 1, 1, 12)),
        _report("early", date(2025, 1, 1), ("Glucose", 90.0, "NORMAL"), created_at=datetime(2025, 1, 1, 8)),
    ]
    series = build_trend_series(reports, "Glucose")
    assert [p.report_id for p in series.points] == ["early", "late"]


def test_build_all_trends_deduplicates_names():
    reports = [
        _report("r1", date(2025, 1, 1), ("Glucose", 95.0, "NORMAL"), ("LDL", 120.0, "HIGH")),
        _report("r2", date(2025, 2, 1), ("glucose", 130.0, "HIGH")),
    ]
    summaries = build_all_trends(reports)
    by_name = {s.test_name: s for s in summaries}
    assert set(by_name) == {"Glucose", "LDL"}
    assert by_name["Glucose"].latest_value == 130.0
    assert by_name["Glucose"].latest_status == Status.HIGH
    assert by_name["Glucose"].analysis.direction == "increasing"
    assert by_name["LDL"].analysis.direction == "stable"


def test_doctor_summary_lists_non_normal_results_in_report_order():
    reports = [
        _report("r2", date(2025, 2, 1), ("Glucose", 130.0, "HIGH"), ("HDL", 55.0, "NORMAL")),
        _report("r1", date(2025, 1, 1), ("HDL", 35.0, "LOW")),
    ]
    summary = summarize_for_doctor(reports)

    assert summary.report_count == 2
    assert summary.abnormal_count == 2
    assert [(f.test_name, f.status, f.report_date) for f in summary.abnormal_biomarkers] == [
        ("Glucose", Status.HIGH, date(2025, 2, 1)),
        ("HDL", Status.LOW, date(2025, 1, 1)),
    ]
    assert summary.summary == [
        "Found 2 abnormal biomarker(s) across 2 report(s)",
        "Review all abnormal values with healthcare provider",
        "Monitor trends over time",
        "Consider lifestyle modifications",
        "Schedule follow-up consultation",
    ]


def test_doctor_summary_without_reports():
    summary = summarize_for_doctor([])
    assert summary.report_count == 0
    assert summary.abnormal_biomarkers == []
    assert summary.summary[0] == "Found 0 abnormal biomarker(s) across 0 report(s)"
