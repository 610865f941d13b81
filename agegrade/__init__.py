from __future__ import annotations

from .engine import AgeGrade, AgeGradeEngine, QueryResult, compute_age_grade, derive_equivalent_time
from .loader import StandardsRepository
from .standards import DataUnavailableError, StandardsTable, compute_peak_table

__version__ = "0.1.0"

__all__ = [
    "AgeGrade",
    "AgeGradeEngine",
    "DataUnavailableError",
    "QueryResult",
    "StandardsRepository",
    "StandardsTable",
    "compute_age_grade",
    "compute_peak_table",
    "derive_equivalent_time",
]
