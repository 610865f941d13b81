"""
Shared fixtures: a small two-edition standards dataset written to tmp_path.

The 2020 edition uses the seconds-based wrapper (AgeStdSec) for men and the
HMS-based wrapper (AgeStdHMS) for women, so every engine test also goes
through both normalisation paths.
"""

import json
from pathlib import Path

import pytest

from agegrade.engine import AgeGradeEngine
from agegrade.loader import StandardsRepository


MALE_2020 = {
    "5 km": {"20": 780.0, "25": 770.0, "30": 900.0, "45": 1000.0, "90": None},
    "10 km": {"20": 1600.0, "30": 1700.0, "45": 1900.0},
    "Marathon": {"30": 7300.0},
    "Mile": {},
}

FEMALE_2020_HMS = {
    "5 km": {"20": "14:30", "30": "16:30", "45": "18:00"},
    "10 km": {"30": "30:00", "45": "33:20"},
    "Marathon": {"30": "2:20:00", "25": "2:15:00"},
    "Mile": {"30": None},
}


def _write_json(path: Path, payload: object) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload), encoding="utf-8")


@pytest.fixture
def standards_dir(tmp_path: Path) -> Path:
    root = tmp_path / "age_grade_standards"
    _write_json(
        root / "manifest.json",
        {
            "sets": [
                {"label": "2010", "year": 2010, "base": "2010", "male": "male.json", "female": "female.json"},
                {"label": "2020", "year": 2020, "base": "2020", "male": "male.json", "female": "female.json"},
            ]
        },
    )
    _write_json(
        root / "2010" / "male.json",
        {"AgeStdSec": {"events": ["10 km", "parkrun"], "standards_seconds": {"10 km": {"30": 1650}, "parkrun": {"30": 880}}}},
    )
    _write_json(
        root / "2010" / "female.json",
        {"AgeStdSec": {"events": ["10 km", "parkrun"], "standards_seconds": {"10 km": {"30": 1800}, "parkrun": {"30": 970}}}},
    )
    _write_json(
        root / "2020" / "male.json",
        {"AgeStdSec": {"events": list(MALE_2020), "standards_seconds": MALE_2020}},
    )
    _write_json(
        root / "2020" / "female.json",
        {"AgeStdHMS": {"events": list(FEMALE_2020_HMS), "standards_hms": FEMALE_2020_HMS}},
    )
    return root


@pytest.fixture
def manifest_path(standards_dir: Path) -> Path:
    return standards_dir / "manifest.json"


@pytest.fixture
def repository(manifest_path: Path) -> StandardsRepository:
    return StandardsRepository(manifest_path)


@pytest.fixture
def engine(repository: StandardsRepository) -> AgeGradeEngine:
    return AgeGradeEngine(repository)
