from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from vitalsense.config import settings
from vitalsense.database import get_db
from vitalsense.models.lab_report import LabReportRecord
from vitalsense.routers.deps import get_user_id
from vitalsense.schemas.trend import DoctorSummary, TrendSummary
from vitalsense.services.trend_analyzer import (
    DOCTOR_SUMMARY_REPORT_LIMIT,
    analyze_trend,
    build_all_trends,
    build_trend_series,
    summarize_for_doctor,
)

router = APIRouter(prefix="/api/trends", tags=["trends"])


def _user_reports(db: Session, user_id: str) -> list[LabReportRecord]:
    return (
        db.query(LabReportRecord)
        .filter(LabReportRecord.user_id == user_id)
        .order_by(LabReportRecord.report_date.asc(), LabReportRecord.created_at.asc())
        .all()
    )


@router.get("", response_model=list[TrendSummary])
def all_trends(db: Session = Depends(get_db), user_id: str = Depends(get_user_id)):
    summaries = build_all_trends(_user_reports(db, user_id), stable_threshold=settings.trend_stable_threshold_percent)
    summaries.sort(key=lambda s: abs(s.analysis.percent_change), reverse=True)
    return summaries


@router.get("/summary/doctor", response_model=DoctorSummary)
def doctor_summary(db: Session = Depends(get_db), user_id: str = Depends(get_user_id)):
    recent = (
        db.query(LabReportRecord)
        .filter(LabReportRecord.user_id == user_id)
        .order_by(LabReportRecord.report_date.desc(), LabReportRecord.created_at.desc())
        .limit(DOCTOR_SUMMARY_REPORT_LIMIT)
        .all()
    )
    return summarize_for_doctor(recent)


@router.get("/{test_name}")
def trend_for_test(test_name: str, db: Session = Depends(get_db), user_id: str = Depends(get_user_id)):
    name = test_name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="testName is required")

    series = build_trend_series(_user_reports(db, user_id), name)
    analysis = analyze_trend(series.points, test_name=name, stable_threshold=settings.trend_stable_threshold_percent)
    return {
        "test_name": name,
        "points": [point.model_dump(mode="json") for point in series.points],
        "direction": analysis.direction,
        "percent_change": round(analysis.percent_change, 2),
        "insight": analysis.narrative,
    }
