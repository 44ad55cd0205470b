from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Status(str, Enum):
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    LOW = "LOW"


class RawTestResult(BaseModel):
    """Test result as returned by the extraction step, before any validation."""
    test_name: str | None = Field(default=None, description="Name of the lab test")
    value: Any = Field(default=None, description="Test result value, usually numeric")
    unit: str | None = Field(default=None, description="Unit of measurement")
    reference_range: str | None = Field(default=None, description="Reference range as printed on the report")


class TestResult(BaseModel):
    """Validated, classified lab test result."""
    __test__ = False
    model_config = ConfigDict(frozen=True)

    test_name: str
    value: float
    unit: str
    reference_range: str
    status: Status = Status.NORMAL


class ReportCreate(BaseModel):
    report_date: date | None = None
    file_name: str | None = None
    file_type: str | None = None
    results: list[RawTestResult]


class ReportListItem(BaseModel):
    id: str
    report_date: str
    file_name: str | None
    total_tests: int
    abnormal_tests: int
    created_at: str


class ReportDetailResponse(BaseModel):
    id: str
    report_date: str
    file_name: str | None
    file_type: str | None
    retest_recommendation: str | None
    processed_at: datetime
    results: list[TestResult]
