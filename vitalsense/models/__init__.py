from vitalsense.models.knowledge import KnowledgeItemRecord
from vitalsense.models.lab_report import LabReportRecord, TestResultRecord

__all__ = [
    "KnowledgeItemRecord",
    "LabReportRecord",
    "TestResultRecord",
]
