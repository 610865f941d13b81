from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from .config import TARGETS, default_log_level, default_manifest_location
from .engine import AgeGradeEngine, QueryResult
from .loader import StandardsRepository
from .standards import DataUnavailableError, pick_default_event
from .util import other_sex, seconds_to_time, sex_label
from .webapp import run_web
from .workbook import import_workbook


SEX_CHOICES = ["M", "F"]


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="python -m agegrade", description="Age grade calculator (WMA road standards)")
    parser.add_argument(
        "--manifest",
        type=str,
        default=default_manifest_location(),
        help="Manifest file or URL listing the standards sets",
    )
    parser.add_argument("--log-level", type=str, default=default_log_level(), help="Logging level, e.g. INFO or DEBUG")
    sub = parser.add_subparsers(dest="cmd", required=True)

    sub.add_parser("editions", help="List the standards sets in the manifest")

    events = sub.add_parser("events", help="List the events of a standards set")
    events.add_argument("--edition", type=str, default=None, help="Index, year or label (default: newest)")
    events.add_argument("--sex", choices=SEX_CHOICES, default="M", help="Sex")

    grade = sub.add_parser("grade", help="Age grade a finish time and show equivalent times")
    grade.add_argument("--edition", type=str, default=None, help="Index, year or label (default: newest)")
    grade.add_argument("--sex", choices=SEX_CHOICES, required=True, help="Sex")
    grade.add_argument("--age", type=str, required=True, help="Age in years")
    grade.add_argument("--event", type=str, default=None, help="Event, e.g. '5 km' (default: 5 km or first event)")
    grade.add_argument("--time", type=str, required=True, help="Finish time, mm:ss or hh:mm:ss")
    grade.add_argument(
        "--target",
        nargs="+",
        choices=list(TARGETS),
        default=[],
        help="Equivalent tables to include",
    )
    grade.add_argument("--custom-sex", choices=SEX_CHOICES, default="M", help="Sex for the custom target")
    grade.add_argument("--custom-age", type=str, default=None, help="Age for the custom target")
    grade.add_argument("--json", action="store_true", help="Print the result as JSON")

    peaks = sub.add_parser("peaks", help="Show the peak-age standard per event")
    peaks.add_argument("--edition", type=str, default=None, help="Index, year or label (default: newest)")
    peaks.add_argument("--sex", choices=SEX_CHOICES, default="M", help="Sex")

    imp = sub.add_parser("import-xlsx", help="Convert a standards workbook to a JSON standards file")
    imp.add_argument("--xlsx", type=Path, required=True, help="Source workbook (*.xlsx)")
    imp.add_argument("--out", type=Path, required=True, help="Output JSON file")
    imp.add_argument("--sheet", type=str, default=None, help="Sheet name (default: AgeStdSec, then AgeStdHMS)")

    web = sub.add_parser("web", help="Start the local JSON API")
    web.add_argument("--host", type=str, default="127.0.0.1", help="Host, e.g. 127.0.0.1")
    web.add_argument("--port", type=int, default=8000, help="Port, e.g. 8000")

    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    if args.cmd == "import-xlsx":
        res = import_workbook(xlsx_path=args.xlsx, out_path=args.out, sheet_name=args.sheet)
        print(
            "Import done:",
            f"sheet={res.sheet}",
            f"events={res.events}",
            f"ages={res.ages}",
            f"standards={res.standards}",
            f"out={res.out_path}",
            sep=" ",
        )
        return 0

    engine = AgeGradeEngine(StandardsRepository(args.manifest))

    if args.cmd == "web":
        run_web(engine=engine, host=args.host, port=int(args.port))
        return 0

    if args.cmd == "grade":
        result = engine.compute(
            args.edition,
            args.sex,
            args.age,
            args.event,
            args.time,
            args.target,
            custom_sex=args.custom_sex,
            custom_age=args.custom_age,
        )
        if args.json:
            print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
        else:
            _print_result(result)
        return 0 if result.status != "unavailable" else 1

    try:
        if args.cmd == "editions":
            for edition in engine.editions():
                print(f"{edition.index}\t{edition.year if edition.year is not None else '-'}\t{edition.label}")
            return 0

        if args.cmd == "events":
            names = engine.events(args.edition, args.sex)
            default = pick_default_event(names)
            for name in names:
                print(f"{name}{'  (default)' if name == default else ''}")
            return 0

        if args.cmd == "peaks":
            for name, secs in engine.peak_table(args.edition, args.sex).items():
                print(f"{name}\t{seconds_to_time(secs)}")
            return 0
    except DataUnavailableError as exc:
        print(f"Couldn't load standards data: {exc}")
        return 1

    parser.error("Unknown command")
    return 2


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _print_result(result: QueryResult) -> None:
    print(f"Age grade: {result.grade_text}")
    print(result.note)
    if not result.ok:
        return

    os_label = sex_label(other_sex(result.sex))
    same_label = sex_label(result.sex)
    print(f"Equivalent {os_label} {result.event} Time: {seconds_to_time(result.other_sex_seconds)}")
    print(f"Equivalent Peak Age {same_label} {result.event} Time: {seconds_to_time(result.peak_same_sex_seconds)}")
    print(f"Equivalent Peak Age {os_label} {result.event} Time: {seconds_to_time(result.peak_other_sex_seconds)}")

    for section in result.sections:
        print()
        print(section.title)
        width = max((len(r.event) for r in section.rows), default=0)
        for row in section.rows:
            print(f"  {row.event.ljust(width)}  {row.time}")
