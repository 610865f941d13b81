from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, Optional

from .config import PREFERRED_DEFAULT_EVENTS
from .util import parse_time_to_seconds


# Wrapper keys seen in the published JSON files, in order of preference.
TABLE_WRAPPER_KEYS = ("AgeStdSec", "AgeStdHMS")

PeakTable = dict[str, Optional[float]]


class DataUnavailableError(Exception):
    """Manifest or standards data could not be loaded."""


class StandardsFormatError(DataUnavailableError):
    """A manifest or standards file was fetched but has an unusable shape."""


class EditionNotFoundError(DataUnavailableError):
    """The requested edition is not listed in the manifest."""


@dataclass(frozen=True)
class Edition:
    index: int
    label: str
    year: Optional[int]
    base: str
    male: str
    female: str

    def filename(self, sex: str) -> str:
        return self.male if sex == "M" else self.female

    def to_dict(self) -> dict[str, Any]:
        return {"index": self.index, "label": self.label, "year": self.year}


@dataclass(frozen=True)
class Manifest:
    editions: tuple[Edition, ...]

    def default_edition(self) -> Edition:
        if not self.editions:
            raise StandardsFormatError("Manifest has no standards sets")
        # Newest by default
        return self.editions[-1]

    def find(self, edition_id: object = None) -> Edition:
        """Resolve an edition by index, year or label. None selects the default."""
        if edition_id is None or str(edition_id).strip() == "":
            return self.default_edition()

        text = str(edition_id).strip()
        if text.lstrip("-").isdigit():
            n = int(text)
            for edition in self.editions:
                if edition.year == n:
                    return edition
            if 0 <= n < len(self.editions):
                return self.editions[n]

        for edition in self.editions:
            if edition.label == text:
                return edition
        for edition in self.editions:
            if text in edition.label:
                return edition
        raise EditionNotFoundError(f"Standards set not found in manifest: {edition_id!r}")


@dataclass(frozen=True)
class StandardsTable:
    """Standard seconds per event and integer age for one edition and sex.

    Only defined (positive) standards are stored; a missing age means "no standard".
    """

    events: tuple[str, ...]
    standards: Mapping[str, Mapping[int, float]] = field(default_factory=dict)

    def standard(self, event: str, age: Optional[int]) -> Optional[float]:
        if age is None:
            return None
        by_age = self.standards.get(event)
        if not by_age:
            return None
        return by_age.get(int(age))


def table_from_json(payload: Any) -> StandardsTable:
    """Normalise either JSON variant into a StandardsTable."""
    if not isinstance(payload, dict):
        raise StandardsFormatError("Standards file is not a JSON object")

    for key in TABLE_WRAPPER_KEYS:
        wrapper = payload.get(key)
        if not isinstance(wrapper, dict):
            continue
        raw = wrapper.get("standards_seconds")
        if isinstance(raw, dict):
            return _build_table(events=wrapper.get("events"), raw=raw, value_fn=_seconds_value)
        raw = wrapper.get("standards_hms")
        if isinstance(raw, dict):
            return _build_table(events=wrapper.get("events"), raw=raw, value_fn=_hms_value)

    raise StandardsFormatError("No usable standards table found in JSON")


def table_to_json(table: StandardsTable, *, wrapper_key: str = "AgeStdSec") -> dict[str, Any]:
    return {
        wrapper_key: {
            "events": list(table.events),
            "standards_seconds": {
                event: {str(age): secs for age, secs in sorted(table.standards.get(event, {}).items())}
                for event in table.events
            },
        }
    }


def manifest_from_json(payload: Any) -> Manifest:
    if not isinstance(payload, dict) or not isinstance(payload.get("sets"), list):
        raise StandardsFormatError("Manifest must be an object with a 'sets' list")

    editions: list[Edition] = []
    for i, entry in enumerate(payload["sets"]):
        if not isinstance(entry, dict):
            raise StandardsFormatError(f"Manifest entry {i} is not an object")
        try:
            male = str(entry["male"])
            female = str(entry["female"])
        except KeyError as exc:
            raise StandardsFormatError(f"Manifest entry {i} is missing {exc.args[0]!r}") from exc
        year = _parse_year(entry.get("year"))
        label = str(entry.get("label") or (year if year is not None else i))
        editions.append(
            Edition(index=i, label=label, year=year, base=str(entry.get("base") or ""), male=male, female=female)
        )
    return Manifest(editions=tuple(editions))


def compute_peak_table(table: StandardsTable) -> PeakTable:
    """Fastest (minimum) defined standard per event; None when an event has none."""
    peak: PeakTable = {}
    for event in table.events:
        best: Optional[float] = None
        for value in table.standards.get(event, {}).values():
            if value > 0 and (best is None or value < best):
                best = value
        peak[event] = best
    return peak


def pick_default_event(events: Iterable[str], preferred: Iterable[str] = PREFERRED_DEFAULT_EVENTS) -> Optional[str]:
    names = list(events)
    for candidate in preferred:
        if candidate in names:
            return candidate
    return names[0] if names else None


def _build_table(*, events: Any, raw: dict[str, Any], value_fn: Callable[[Any], Optional[float]]) -> StandardsTable:
    if isinstance(events, list):
        event_names = tuple(str(e) for e in events)
    else:
        event_names = tuple(str(k) for k in raw)

    standards: dict[str, dict[int, float]] = {}
    for event in event_names:
        by_age_raw = raw.get(event)
        by_age: dict[int, float] = {}
        if isinstance(by_age_raw, dict):
            for age_key, raw_value in by_age_raw.items():
                age = _parse_age_key(age_key)
                if age is None:
                    continue
                value = value_fn(raw_value)
                if value is not None:
                    by_age[age] = value
        standards[event] = by_age
    return StandardsTable(events=event_names, standards=standards)


def _seconds_value(raw_value: Any) -> Optional[float]:
    if raw_value is None or isinstance(raw_value, bool):
        return None
    try:
        value = float(raw_value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value) or value <= 0:
        return None
    return value


def _hms_value(raw_value: Any) -> Optional[float]:
    if isinstance(raw_value, str):
        text = raw_value.strip()
        value = parse_time_to_seconds(text) if ":" in text else _seconds_value(text)
        return value if value is not None and value > 0 else None
    return _seconds_value(raw_value)


def _parse_age_key(key: Any) -> Optional[int]:
    try:
        return int(str(key).strip())
    except ValueError:
        return None


def _parse_year(value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None
