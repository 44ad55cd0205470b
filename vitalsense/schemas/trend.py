from datetime import date

from pydantic import BaseModel

from vitalsense.schemas.lab_report import Status


class TrendPoint(BaseModel):
    date: date
    value: float
    unit: str = ""
    status: Status = Status.NORMAL
    reference_range: str | None = None
    report_id: str | None = None


class TrendSeries(BaseModel):
    test_name: str
    points: list[TrendPoint]


class TrendAnalysis(BaseModel):
    direction: str
    percent_change: float
    narrative: str


class TrendSummary(BaseModel):
    test_name: str
    points: list[TrendPoint]
    latest_value: float | None
    latest_status: Status | None
    analysis: TrendAnalysis


class AbnormalFinding(BaseModel):
    test_name: str
    value: float
    unit: str
    status: Status
    report_date: date


class DoctorSummary(BaseModel):
    summary: list[str]
    report_count: int
    abnormal_count: int
    abnormal_biomarkers: list[AbnormalFinding]
