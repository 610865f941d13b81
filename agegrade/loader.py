from __future__ import annotations

import json
import logging
import threading
from concurrent.futures import Future
from pathlib import Path
from typing import Any, Callable, Hashable, Optional, TypeVar
from urllib.parse import urljoin

import requests

from .config import FETCH_TIMEOUT_S, USER_AGENT, default_manifest_location
from .standards import (
    DataUnavailableError,
    Edition,
    Manifest,
    PeakTable,
    StandardsTable,
    compute_peak_table,
    manifest_from_json,
    table_from_json,
)


logger = logging.getLogger(__name__)

T = TypeVar("T")


class LoadCache:
    """Process-lifetime cache where concurrent loads of one key share a single in-flight future.

    Successful values are kept forever. A failed load is dropped so the next caller retries.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._values: dict[Hashable, Any] = {}
        self._inflight: dict[Hashable, Future] = {}

    def get_or_load(self, key: Hashable, load: Callable[[], T]) -> T:
        with self._lock:
            if key in self._values:
                logger.debug("cache hit: %s", key)
                return self._values[key]
            fut = self._inflight.get(key)
            owner = fut is None
            if owner:
                fut = Future()
                self._inflight[key] = fut

        if not owner:
            logger.debug("waiting for in-flight load: %s", key)
            return fut.result()

        try:
            value = load()
        except BaseException as exc:
            with self._lock:
                self._inflight.pop(key, None)
            fut.set_exception(exc)
            raise

        with self._lock:
            self._values[key] = value
            self._inflight.pop(key, None)
        fut.set_result(value)
        return value

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._values


class StandardsRepository:
    """Loads the manifest and per-edition standards tables, from disk or over HTTP."""

    def __init__(
        self,
        manifest_location: Optional[str | Path] = None,
        *,
        session: Optional[requests.Session] = None,
        timeout_s: float = FETCH_TIMEOUT_S,
        cache: Optional[LoadCache] = None,
    ) -> None:
        location = manifest_location if manifest_location is not None else default_manifest_location()
        self.manifest_location = str(location)
        self.timeout_s = float(timeout_s)
        self._session = session
        self._session_lock = threading.Lock()
        self.cache = cache or LoadCache()

    def manifest(self) -> Manifest:
        return self.cache.get_or_load(("manifest",), self._load_manifest)

    def edition(self, edition_id: object = None) -> Edition:
        return self.manifest().find(edition_id)

    def table(self, edition: Edition, sex: str) -> StandardsTable:
        key = ("table", edition.index, edition.year, sex)
        return self.cache.get_or_load(key, lambda: self._load_table(edition, sex))

    def peak(self, edition: Edition, sex: str) -> PeakTable:
        key = ("peak", edition.index, edition.year, sex)
        return self.cache.get_or_load(key, lambda: compute_peak_table(self.table(edition, sex)))

    def table_location(self, edition: Edition, sex: str) -> str:
        filename = edition.filename(sex)
        base = edition.base.rstrip("/")
        rel = f"{base}/{filename}" if base else filename
        return resolve_location(self.manifest_location, rel)

    def _load_manifest(self) -> Manifest:
        payload = self._fetch_json(self.manifest_location)
        manifest = manifest_from_json(payload)
        logger.info("Loaded manifest %s (%d sets)", self.manifest_location, len(manifest.editions))
        return manifest

    def _load_table(self, edition: Edition, sex: str) -> StandardsTable:
        location = self.table_location(edition, sex)
        table = table_from_json(self._fetch_json(location))
        logger.info("Loaded standards %s %s from %s (%d events)", edition.label, sex, location, len(table.events))
        return table

    def _fetch_json(self, location: str) -> Any:
        try:
            if _is_url(location):
                raw = self._fetch_url(location)
            else:
                raw = Path(location).read_bytes()
            return json.loads(raw)
        except (requests.RequestException, OSError, ValueError) as exc:
            logger.warning("Failed to load %s: %s", location, exc)
            raise DataUnavailableError(f"Failed to load {location}: {exc}") from exc

    def _fetch_url(self, url: str) -> bytes:
        sess = self._get_session()
        headers = {"User-Agent": USER_AGENT}
        resp = sess.get(url, headers=headers, timeout=self.timeout_s)
        resp.raise_for_status()
        return resp.content

    def _get_session(self) -> requests.Session:
        with self._session_lock:
            if self._session is None:
                self._session = requests.Session()
            return self._session


def resolve_location(manifest_location: str, rel: str) -> str:
    """Resolve a standards file path relative to the manifest (URL or filesystem)."""
    if _is_url(rel):
        return rel
    if _is_url(manifest_location):
        return urljoin(manifest_location, rel)
    path = Path(rel)
    if path.is_absolute():
        return str(path)
    return str(Path(manifest_location).parent / path)


def _is_url(location: str) -> bool:
    return location.startswith(("http://", "https://"))
