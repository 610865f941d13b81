from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from pathlib import Path
from typing import Iterable, Optional

import openpyxl

from .standards import TABLE_WRAPPER_KEYS, StandardsFormatError, StandardsTable, table_to_json
from .util import parse_time_to_seconds


logger = logging.getLogger(__name__)

_HEADER_LABELS = {"age", "event", "age/event", "event/age"}
_AGE_RE = re.compile(r"^\s*(\d{1,3})(?:\.0+)?\s*$")


@dataclass(frozen=True)
class ImportSummary:
    sheet: str
    events: int
    ages: int
    standards: int
    out_path: Path


def import_workbook(*, xlsx_path: Path, out_path: Path, sheet_name: Optional[str] = None) -> ImportSummary:
    """Convert an age-standards workbook into the JSON standards file format.

    Reads the AgeStdSec sheet (seconds), falling back to AgeStdHMS (h:mm:ss cells).
    The header row starts with "Age" or "Event" and lists event names across; each
    following row starting with an integer age holds that age's standards.
    """
    if not xlsx_path.exists():
        raise FileNotFoundError(f"Workbook not found: {xlsx_path}")

    wb = openpyxl.load_workbook(xlsx_path, data_only=True, read_only=True)
    try:
        sheet = _pick_sheet(wb, sheet_name)
        table = read_standards_sheet(sheet.iter_rows(values_only=True), hms=sheet.title == "AgeStdHMS")
        title = sheet.title
    finally:
        wb.close()

    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(json.dumps(table_to_json(table), ensure_ascii=False, indent=1), encoding="utf-8")

    ages = {age for by_age in table.standards.values() for age in by_age}
    count = sum(len(by_age) for by_age in table.standards.values())
    logger.info("Imported %s from %s: %d events, %d standards", title, xlsx_path, len(table.events), count)
    return ImportSummary(sheet=title, events=len(table.events), ages=len(ages), standards=count, out_path=out_path)


def read_standards_sheet(rows: Iterable[tuple[object, ...]], *, hms: bool = False) -> StandardsTable:
    header: Optional[list[Optional[str]]] = None
    standards: dict[str, dict[int, float]] = {}

    for row in rows:
        if not row:
            continue
        first = row[0]
        if header is None:
            if str(first or "").strip().lower() in _HEADER_LABELS:
                header = [_none_if_empty(cell) for cell in row[1:]]
                for name in header:
                    if name is not None:
                        standards.setdefault(name, {})
            continue

        age = _parse_age_cell(first)
        if age is None:
            # Rows like "Distance" or "OC sec" between the header and the age rows.
            continue
        for name, cell in zip(header, row[1:]):
            if name is None:
                continue
            value = _cell_seconds(cell, hms=hms)
            if value is not None:
                standards[name][age] = value

    if header is None:
        raise StandardsFormatError("No header row (starting with 'Age' or 'Event') found in sheet")

    events = tuple(name for name in dict.fromkeys(header) if name is not None)
    return StandardsTable(events=events, standards=standards)


def _pick_sheet(wb: openpyxl.Workbook, sheet_name: Optional[str]):
    if sheet_name:
        if sheet_name not in wb.sheetnames:
            raise StandardsFormatError(f"Sheet {sheet_name!r} not in workbook (has {wb.sheetnames})")
        return wb[sheet_name]
    for name in TABLE_WRAPPER_KEYS:
        if name in wb.sheetnames:
            return wb[name]
    raise StandardsFormatError(f"Workbook has none of the sheets {list(TABLE_WRAPPER_KEYS)}")


def _none_if_empty(value: object) -> Optional[str]:
    text = str(value or "").strip()
    return text or None


def _parse_age_cell(value: object) -> Optional[int]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    m = _AGE_RE.match(str(value))
    return int(m.group(1)) if m else None


def _cell_seconds(value: object, *, hms: bool) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None

    seconds: Optional[float]
    if isinstance(value, timedelta):
        seconds = value.total_seconds()
    elif isinstance(value, datetime):
        seconds = _time_seconds(value.time())
    elif isinstance(value, time):
        seconds = _time_seconds(value)
    elif isinstance(value, (int, float)):
        # Excel stores times as fractions of a day.
        seconds = float(value) * 86400 if hms and value < 1 else float(value)
    else:
        text = str(value).strip()
        if ":" in text:
            seconds = parse_time_to_seconds(text)
        else:
            try:
                seconds = float(text.replace(",", "."))
            except ValueError:
                return None

    if seconds is None or not math.isfinite(seconds) or seconds <= 0:
        return None
    return round(seconds, 3)


def _time_seconds(value: time) -> float:
    return value.hour * 3600 + value.minute * 60 + value.second + value.microsecond / 1_000_000
