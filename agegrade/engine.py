from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from .config import (
    DEFAULT_MESSAGE,
    LOAD_ERROR_MESSAGE,
    NO_AGE_MESSAGE,
    NOT_FOUND_MESSAGE,
    PLACEHOLDER,
    TARGETS,
)
from .loader import StandardsRepository
from .standards import DataUnavailableError, Edition, PeakTable, StandardsTable, pick_default_event
from .util import (
    format_input_time,
    format_percent,
    normalize_sex,
    other_sex,
    parse_age,
    parse_time_to_seconds,
    seconds_to_time,
    sex_label,
)


logger = logging.getLogger(__name__)

STATUS_OK = "ok"
STATUS_NO_TIME = "no_time"
STATUS_NO_AGE = "no_age"
STATUS_NOT_FOUND = "not_found"
STATUS_UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class AgeGrade:
    grade_percent: float
    performance_factor: float


@dataclass(frozen=True)
class EquivalentRow:
    event: str
    seconds: Optional[float]

    @property
    def time(self) -> str:
        return seconds_to_time(self.seconds)


@dataclass(frozen=True)
class EquivalentSection:
    target: str
    title: str
    rows: tuple[EquivalentRow, ...]


@dataclass(frozen=True)
class QueryResult:
    status: str
    note: str
    sex: str
    event: str
    age: Optional[int] = None
    time_seconds: Optional[float] = None
    edition_label: Optional[str] = None
    grade_percent: Optional[float] = None
    performance_factor: Optional[float] = None
    other_sex_seconds: Optional[float] = None
    peak_same_sex_seconds: Optional[float] = None
    peak_other_sex_seconds: Optional[float] = None
    sections: tuple[EquivalentSection, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK

    @property
    def grade_text(self) -> str:
        return format_percent(self.grade_percent)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "note": self.note,
            "edition": self.edition_label,
            "sex": self.sex,
            "age": self.age,
            "event": self.event,
            "time_seconds": self.time_seconds,
            "grade_percent": self.grade_percent,
            "grade_text": self.grade_text,
            "performance_factor": self.performance_factor,
            "equivalents": {
                "other_sex": _time_dict(self.other_sex_seconds),
                "peak_same_sex": _time_dict(self.peak_same_sex_seconds),
                "peak_other_sex": _time_dict(self.peak_other_sex_seconds),
            },
            "sections": [
                {
                    "target": s.target,
                    "title": s.title,
                    "rows": [{"event": r.event, "seconds": r.seconds, "time": r.time} for r in s.rows],
                }
                for s in self.sections
            ],
        }


def compute_age_grade(table: StandardsTable, *, event: str, age: int, actual_seconds: float) -> Optional[AgeGrade]:
    """Age grade of a finish time against one table; None when no standard exists."""
    if not actual_seconds or actual_seconds <= 0:
        raise ValueError(f"actual_seconds must be positive, got {actual_seconds!r}")
    standard = table.standard(event, age)
    if standard is None:
        return None
    factor = standard / float(actual_seconds)
    return AgeGrade(grade_percent=factor * 100, performance_factor=factor)


def derive_equivalent_time(target_standard: Optional[float], performance_factor: float) -> Optional[float]:
    """Project a performance onto another standard using the same performance factor."""
    if target_standard is None or target_standard <= 0:
        return None
    if not math.isfinite(performance_factor) or performance_factor <= 0:
        return None
    return target_standard / performance_factor


class AgeGradeEngine:
    """Age grading and equivalent times over the standards in a StandardsRepository."""

    def __init__(self, repository: Optional[StandardsRepository] = None) -> None:
        self.repository = repository or StandardsRepository()

    def editions(self) -> list[Edition]:
        return list(self.repository.manifest().editions)

    def table(self, edition_id: object, sex: str) -> StandardsTable:
        edition = self.repository.edition(edition_id)
        return self.repository.table(edition, normalize_sex(sex))

    def peak_table(self, edition_id: object, sex: str) -> PeakTable:
        edition = self.repository.edition(edition_id)
        return self.repository.peak(edition, normalize_sex(sex))

    def events(self, edition_id: object, sex: str) -> list[str]:
        return list(self.table(edition_id, sex).events)

    def default_event(self, edition_id: object, sex: str) -> Optional[str]:
        return pick_default_event(self.events(edition_id, sex))

    def age_grade(self, edition_id: object, sex: str, age: int, event: str, actual_seconds: float) -> Optional[AgeGrade]:
        return compute_age_grade(self.table(edition_id, sex), event=event, age=age, actual_seconds=actual_seconds)

    def compute(
        self,
        edition_id: object,
        sex: str,
        age: object,
        event: Optional[str],
        time_text: Optional[str],
        targets: Iterable[str] = (),
        *,
        custom_sex: str = "M",
        custom_age: object = None,
    ) -> QueryResult:
        sex = normalize_sex(sex)
        requested = _validate_targets(targets)
        custom_sex_n = normalize_sex(custom_sex) if "custom" in requested else "M"
        age_n = parse_age(age)
        seconds = parse_time_to_seconds(time_text)
        event_name = (event or "").strip()

        try:
            edition = self.repository.edition(edition_id)
            tables = {s: self.repository.table(edition, s) for s in ("M", "F")}
            peaks = {s: self.repository.peak(edition, s) for s in ("M", "F")}
        except DataUnavailableError as exc:
            logger.warning("Standards unavailable for edition %r: %s", edition_id, exc)
            return QueryResult(status=STATUS_UNAVAILABLE, note=LOAD_ERROR_MESSAGE, sex=sex, event=event_name, age=age_n)

        own = tables[sex]
        if not event_name:
            event_name = pick_default_event(own.events) or ""

        base = dict(sex=sex, event=event_name, age=age_n, edition_label=edition.label)
        if seconds is None or seconds <= 0:
            return QueryResult(status=STATUS_NO_TIME, note=DEFAULT_MESSAGE, **base)
        if age_n is None:
            return QueryResult(status=STATUS_NO_AGE, note=NO_AGE_MESSAGE, time_seconds=seconds, **base)

        grade = compute_age_grade(own, event=event_name, age=age_n, actual_seconds=seconds)
        if grade is None:
            return QueryResult(status=STATUS_NOT_FOUND, note=NOT_FOUND_MESSAGE, time_seconds=seconds, **base)

        factor = grade.performance_factor
        os_ = other_sex(sex)
        note = f"{format_input_time(time_text)} {event_name}, {sex_label(sex)}, Age {age_n}, WMA {edition.label}"

        sections = tuple(
            self._section(
                target,
                tables=tables,
                peaks=peaks,
                factor=factor,
                age=age_n,
                custom_sex=custom_sex_n,
                custom_age=parse_age(custom_age),
            )
            for target in requested
        )

        return QueryResult(
            status=STATUS_OK,
            note=note,
            time_seconds=seconds,
            grade_percent=grade.grade_percent,
            performance_factor=factor,
            other_sex_seconds=derive_equivalent_time(tables[os_].standard(event_name, age_n), factor),
            peak_same_sex_seconds=derive_equivalent_time(peaks[sex].get(event_name), factor),
            peak_other_sex_seconds=derive_equivalent_time(peaks[os_].get(event_name), factor),
            sections=sections,
            **base,
        )

    def _section(
        self,
        target: str,
        *,
        tables: dict[str, StandardsTable],
        peaks: dict[str, PeakTable],
        factor: float,
        age: int,
        custom_sex: str,
        custom_age: Optional[int],
    ) -> EquivalentSection:
        if target in {"peak_m", "peak_f"}:
            s = "M" if target == "peak_m" else "F"
            rows = [EquivalentRow(ev, derive_equivalent_time(peaks[s].get(ev), factor)) for ev in tables[s].events]
            return EquivalentSection(target=target, title=f"Peak Age {sex_label(s)} Equivalents", rows=tuple(rows))

        if target in {"age_m", "age_f"}:
            s = "M" if target == "age_m" else "F"
            table = tables[s]
            rows = [EquivalentRow(ev, derive_equivalent_time(table.standard(ev, age), factor)) for ev in table.events]
            return EquivalentSection(target=target, title=f"Age {age} {sex_label(s)} Equivalents", rows=tuple(rows))

        table = tables[custom_sex]
        rows = [EquivalentRow(ev, derive_equivalent_time(table.standard(ev, custom_age), factor)) for ev in table.events]
        age_text = PLACEHOLDER if custom_age is None else str(custom_age)
        return EquivalentSection(
            target=target,
            title=f"Custom Target ({sex_label(custom_sex)}, age {age_text})",
            rows=tuple(rows),
        )


def _validate_targets(targets: Iterable[str]) -> list[str]:
    out: list[str] = []
    for raw in targets or ():
        target = (raw or "").strip().lower()
        if not target:
            continue
        if target not in TARGETS:
            raise ValueError(f"Unknown target: {raw!r} (expected one of {', '.join(TARGETS)})")
        if target not in out:
            out.append(target)
    return out


def _time_dict(seconds: Optional[float]) -> dict[str, Any]:
    return {"seconds": seconds, "time": seconds_to_time(seconds)}
