from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from vitalsense.database import get_db
from vitalsense.models.lab_report import LabReportRecord, TestResultRecord
from vitalsense.routers.deps import get_embedding_provider, get_knowledge_retriever, get_user_id
from vitalsense.services.embeddings import EmbeddingProvider
from vitalsense.services.knowledge import KnowledgeRetriever, retrieve_context
from vitalsense.services.reference_range import is_abnormal

router = APIRouter(prefix="/api/biomarkers", tags=["biomarkers"])


@router.get("/abnormal")
def abnormal(db: Session = Depends(get_db), user_id: str = Depends(get_user_id)):
    rows = (
        db.query(TestResultRecord, LabReportRecord)
        .join(LabReportRecord, TestResultRecord.report_id == LabReportRecord.id)
        .filter(LabReportRecord.user_id == user_id, TestResultRecord.status != "NORMAL")
        .order_by(LabReportRecord.report_date.desc(), LabReportRecord.created_at.desc(), TestResultRecord.position.asc())
        .all()
    )
    return [
        {
            "test_name": test.test_name,
            "value": test.value,
            "unit": test.unit,
            "reference_range": test.reference_range,
            "status": test.status,
            "report_id": report.id,
            "report_date": report.report_date.isoformat(),
        }
        for test, report in rows
    ]


@router.get("/details")
def details(
    test_name: str = Query(..., min_length=1),
    report_id: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
    provider: EmbeddingProvider = Depends(get_embedding_provider),
    retriever: KnowledgeRetriever = Depends(get_knowledge_retriever),
):
    report = (
        db.query(LabReportRecord)
        .filter(LabReportRecord.id == report_id, LabReportRecord.user_id == user_id)
        .first()
    )
    if not report:
        raise HTTPException(status_code=404, detail="Report not found")

    wanted = test_name.strip().lower()
    test = next((r for r in report.results if r.test_name.strip().lower() == wanted), None)
    if not test:
        raise HTTPException(status_code=404, detail="Biomarker not found in report")

    context = None
    if is_abnormal(test.status):
        context = retrieve_context(test.test_name, provider, retriever).model_dump()

    return {
        "biomarker": {
            "test_name": test.test_name,
            "value": test.value,
            "unit": test.unit,
            "reference_range": test.reference_range,
            "status": test.status,
        },
        "report_date": report.report_date.isoformat(),
        "knowledge_context": context,
    }
