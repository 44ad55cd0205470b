from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func
from sqlalchemy.orm import Session

from vitalsense.database import get_db
from vitalsense.models.lab_report import LabReportRecord, TestResultRecord
from vitalsense.routers.deps import get_user_id
from vitalsense.schemas.lab_report import ReportCreate, ReportDetailResponse, ReportListItem, TestResult
from vitalsense.services.ingestion import process_results
from vitalsense.services.retest import RETEST_FALLBACK_MESSAGE, recommend

router = APIRouter(prefix="/api/reports", tags=["reports"])


def _get_owned_report(db: Session, report_id: str, user_id: str) -> LabReportRecord:
    report = (
        db.query(LabReportRecord)
        .filter(LabReportRecord.id == report_id, LabReportRecord.user_id == user_id)
        .first()
    )
    if not report:
        raise HTTPException(status_code=404, detail="Report not found")
    return report


def _results_of(report: LabReportRecord) -> list[TestResult]:
    return [
        TestResult(
            test_name=r.test_name,
            value=r.value,
            unit=r.unit,
            reference_range=r.reference_range,
            status=r.status,
        )
        for r in report.results
    ]


def _detail(report: LabReportRecord) -> ReportDetailResponse:
    return ReportDetailResponse(
        id=report.id,
        report_date=report.report_date.isoformat(),
        file_name=report.file_name,
        file_type=report.file_type,
        retest_recommendation=report.retest_recommendation,
        processed_at=report.processed_at,
        results=_results_of(report),
    )


@router.post("", status_code=201)
def create_report(payload: ReportCreate, db: Session = Depends(get_db), user_id: str = Depends(get_user_id)):
    if not payload.results:
        raise HTTPException(status_code=400, detail="No biomarkers found in report")

    results = process_results(payload.results)
    if not results:
        raise HTTPException(status_code=400, detail="Could not process biomarker data from the report")

    report = LabReportRecord(
        user_id=user_id,
        report_date=payload.report_date or date.today(),
        file_name=payload.file_name,
        file_type=payload.file_type,
        retest_recommendation=recommend(results),
    )
    db.add(report)
    db.flush()

    for position, result in enumerate(results):
        db.add(
            TestResultRecord(
                report_id=report.id,
                position=position,
                test_name=result.test_name,
                value=result.value,
                unit=result.unit,
                reference_range=result.reference_range,
                status=result.status.value,
            )
        )
    db.commit()
    db.refresh(report)
    return {
        "statusCode": 201,
        "message": "Report processed successfully",
        "data": {
            **_detail(report).model_dump(mode="json"),
            "skipped_results": len(payload.results) - len(results),
        },
    }


@router.get("")
def list_reports(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
):
    offset = (page - 1) * limit
    total = db.query(func.count(LabReportRecord.id)).filter(LabReportRecord.user_id == user_id).scalar() or 0
    rows = (
        db.query(LabReportRecord)
        .filter(LabReportRecord.user_id == user_id)
        .order_by(LabReportRecord.report_date.desc(), LabReportRecord.created_at.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )

    reports = [
        ReportListItem(
            id=report.id,
            report_date=report.report_date.isoformat(),
            file_name=report.file_name,
            total_tests=len(report.results),
            abnormal_tests=sum(1 for r in report.results if r.status != "NORMAL"),
            created_at=report.created_at.isoformat(),
        ).model_dump()
        for report in rows
    ]
    return {
        "statusCode": 200,
        "message": "Success",
        "data": {
            "reports": reports,
            "total": total,
            "page": page,
            "limit": limit,
        },
    }


@router.get("/{report_id}")
def get_report(report_id: str, db: Session = Depends(get_db), user_id: str = Depends(get_user_id)):
    report = _get_owned_report(db, report_id, user_id)
    return {
        "statusCode": 200,
        "message": "Success",
        "data": _detail(report).model_dump(mode="json"),
    }


@router.get("/{report_id}/retest")
def get_retest_recommendation(report_id: str, db: Session = Depends(get_db), user_id: str = Depends(get_user_id)):
    report = _get_owned_report(db, report_id, user_id)
    recommendation = report.retest_recommendation or recommend(_results_of(report))
    if recommendation:
        message = f"Based on general wellness guidelines, you might consider retesting after {recommendation}."
    else:
        message = RETEST_FALLBACK_MESSAGE
    return {
        "statusCode": 200,
        "message": "Success",
        "data": {"recommendation": recommendation, "message": message},
    }


@router.delete("/{report_id}")
def delete_report(report_id: str, db: Session = Depends(get_db), user_id: str = Depends(get_user_id)):
    report = _get_owned_report(db, report_id, user_id)
    db.delete(report)
    db.commit()
    return {
        "statusCode": 200,
        "message": "Report deleted",
        "data": None,
    }
