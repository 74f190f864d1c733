"""Project manifests: the latest run of every analysis stream of a project.

A manifest only references runs by id; run and finding data live in the
finding store. Saves use optimistic concurrency: a manifest carries the
version it was loaded at, and saving it over a newer stored version fails
with ``ManifestConflictError``.
"""

import sqlite3
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Protocol

from diskcache import Cache, Timeout

from .exceptions import ErrorCode, ManifestConflictError, StorageError
from .logging_config import get_logger

logger = get_logger(__name__)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class ProjectManifest:
    """Per-project pointer table: analysis id -> most recent run id.

    ``version`` is 0 for a manifest that has never been saved.
    """

    project_id: str
    version: int = 0
    analyses: dict[str, str] = field(default_factory=dict)
    latest_run_id: Optional[str] = None
    updated_at: Optional[str] = None

    def record_run(self, analysis_id: str, run_id: str) -> None:
        self.analyses[analysis_id] = run_id
        self.latest_run_id = run_id

    def to_dict(self) -> dict[str, Any]:
        return {
            "project_id": self.project_id,
            "version": self.version,
            "analyses": dict(self.analyses),
            "latest_run_id": self.latest_run_id,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProjectManifest":
        return cls(
            project_id=data["project_id"],
            version=int(data.get("version", 0)),
            analyses=dict(data.get("analyses") or {}),
            latest_run_id=data.get("latest_run_id"),
            updated_at=data.get("updated_at"),
        )


class ManifestStore(Protocol):
    def load(self, project_id: str) -> Optional[ProjectManifest]: ...

    def save(self, project_id: str, manifest: ProjectManifest) -> ProjectManifest: ...


def _check_version(
    project_id: str, manifest: ProjectManifest, stored: Optional[dict[str, Any]]
) -> None:
    actual = None if stored is None else int(stored["version"])
    expected = manifest.version
    if (actual is None and expected != 0) or (actual is not None and actual != expected):
        raise ManifestConflictError(project_id, expected, actual)


def _next_version(
    project_id: str, manifest: ProjectManifest, clock: Callable[[], str]
) -> ProjectManifest:
    return replace(
        manifest,
        project_id=project_id,
        version=manifest.version + 1,
        analyses=dict(manifest.analyses),
        updated_at=clock(),
    )


class InMemoryManifestStore:
    """Process-local manifest store, mainly for tests and embedding."""

    def __init__(self, clock: Callable[[], str] = _utc_now) -> None:
        self._data: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def load(self, project_id: str) -> Optional[ProjectManifest]:
        with self._lock:
            stored = self._data.get(project_id)
        return ProjectManifest.from_dict(stored) if stored is not None else None

    def save(self, project_id: str, manifest: ProjectManifest) -> ProjectManifest:
        with self._lock:
            _check_version(project_id, manifest, self._data.get(project_id))
            saved = _next_version(project_id, manifest, self._clock)
            self._data[project_id] = saved.to_dict()
        return saved


class DiskManifestStore:
    """Manifest store backed by a diskcache ``Cache`` directory.

    The version check and the write run inside ``cache.transact()``, so
    concurrent processes sharing the directory cannot overwrite each other.
    """

    KEY_PREFIX = "manifest:"

    def __init__(self, directory: str, clock: Callable[[], str] = _utc_now) -> None:
        try:
            self.cache = Cache(directory)
        except (OSError, sqlite3.Error) as e:
            raise StorageError("manifest_open", f"{directory}: {e}", code=ErrorCode.FL401)
        self._clock = clock
        logger.debug("Manifest store initialized at %s", directory)

    def _key(self, project_id: str) -> str:
        return f"{self.KEY_PREFIX}{project_id}"

    def load(self, project_id: str) -> Optional[ProjectManifest]:
        try:
            stored = self.cache.get(self._key(project_id))
        except (sqlite3.Error, Timeout) as e:
            raise StorageError("manifest_load", str(e), code=ErrorCode.FL401)
        return ProjectManifest.from_dict(stored) if stored is not None else None

    def save(self, project_id: str, manifest: ProjectManifest) -> ProjectManifest:
        key = self._key(project_id)
        try:
            with self.cache.transact():
                _check_version(project_id, manifest, self.cache.get(key))
                saved = _next_version(project_id, manifest, self._clock)
                self.cache.set(key, saved.to_dict())
        except (sqlite3.Error, Timeout) as e:
            raise StorageError("manifest_save", str(e), code=ErrorCode.FL401)
        return saved

    def close(self) -> None:
        self.cache.close()


def update_manifest(
    store: ManifestStore,
    project_id: str,
    analysis_id: str,
    run_id: str,
    retries: int = 3,
) -> ProjectManifest:
    """Point ``analysis_id`` of ``project_id`` at ``run_id``.

    Load-modify-save, reloading and retrying when another writer got there
    first. Raises ``ManifestConflictError`` once ``retries`` are exhausted.
    """
    attempt = 0
    while True:
        manifest = store.load(project_id) or ProjectManifest(project_id=project_id)
        manifest.record_run(analysis_id, run_id)
        try:
            saved = store.save(project_id, manifest)
        except ManifestConflictError:
            if attempt >= retries:
                raise
            attempt += 1
            logger.debug("Manifest conflict for %s, retry %d/%d", project_id, attempt, retries)
            continue
        logger.debug("Manifest for %s now at version %d", project_id, saved.version)
        return saved
