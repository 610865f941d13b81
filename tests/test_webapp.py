"""Tests for the JSON HTTP API, run against a server on an ephemeral port."""

import threading

import pytest
import requests

from agegrade.engine import AgeGradeEngine
from agegrade.loader import StandardsRepository
from agegrade.webapp import make_server


@pytest.fixture
def base_url(engine):
    server = make_server(engine=engine, host="127.0.0.1", port=0)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{server.server_address[1]}"
    finally:
        server.shutdown()
        server.server_close()


def test_index(base_url):
    resp = requests.get(f"{base_url}/", timeout=5)
    assert resp.status_code == 200
    assert "/api/compute" in resp.json()["endpoints"]


def test_editions(base_url):
    data = requests.get(f"{base_url}/api/editions", timeout=5).json()
    assert [e["label"] for e in data["editions"]] == ["2010", "2020"]
    assert data["default"] == 1


def test_events(base_url):
    data = requests.get(f"{base_url}/api/events", params={"edition": "2010", "sex": "F"}, timeout=5).json()
    assert data == {"sex": "F", "events": ["10 km", "parkrun"], "default_event": "parkrun"}


def test_peaks(base_url):
    data = requests.get(f"{base_url}/api/peaks", params={"sex": "M"}, timeout=5).json()
    assert data["peaks"][0] == {"event": "5 km", "seconds": 770.0}
    assert data["peaks"][-1] == {"event": "Mile", "seconds": None}


def test_compute(base_url):
    params = [("sex", "M"), ("age", "30"), ("event", "5 km"), ("time", "16:40"), ("target", "age_f"), ("target", "peak_m")]
    data = requests.get(f"{base_url}/api/compute", params=params, timeout=5).json()
    assert data["status"] == "ok"
    assert data["grade_text"] == "90.00%"
    assert data["equivalents"]["other_sex"]["time"] == "18:20"
    assert [s["title"] for s in data["sections"]] == ["Age 30 Female Equivalents", "Peak Age Male Equivalents"]


def test_compute_not_found_is_not_an_error(base_url):
    params = {"sex": "M", "age": "90", "event": "5 km", "time": "16:40"}
    resp = requests.get(f"{base_url}/api/compute", params=params, timeout=5)
    assert resp.status_code == 200
    assert resp.json()["status"] == "not_found"


def test_compute_without_time(base_url):
    data = requests.get(f"{base_url}/api/compute", params={"sex": "F", "age": "30"}, timeout=5).json()
    assert data["status"] == "no_time"
    assert data["event"] == "5 km"


@pytest.mark.parametrize(
    "params",
    [
        {"age": "30", "time": "16:40"},
        {"sex": "X", "age": "30", "time": "16:40"},
        {"sex": "M", "age": "30", "time": "16:40", "target": "nope"},
    ],
)
def test_compute_bad_params(base_url, params):
    resp = requests.get(f"{base_url}/api/compute", params=params, timeout=5)
    assert resp.status_code == 400
    assert "error" in resp.json()


def test_unknown_edition(base_url):
    resp = requests.get(f"{base_url}/api/events", params={"edition": "1999", "sex": "M"}, timeout=5)
    assert resp.status_code == 404


def test_unknown_endpoint(base_url):
    assert requests.get(f"{base_url}/api/nope", timeout=5).status_code == 404
    assert requests.get(f"{base_url}/other", timeout=5).status_code == 404


def test_data_unavailable(tmp_path):
    engine = AgeGradeEngine(StandardsRepository(tmp_path / "missing.json"))
    server = make_server(engine=engine, host="127.0.0.1", port=0)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        url = f"http://127.0.0.1:{server.server_address[1]}"
        assert requests.get(f"{url}/api/editions", timeout=5).status_code == 503
        data = requests.get(f"{url}/api/compute", params={"sex": "M", "age": "30", "time": "16:40"}, timeout=5).json()
        assert data["status"] == "unavailable"
    finally:
        server.shutdown()
        server.server_close()
