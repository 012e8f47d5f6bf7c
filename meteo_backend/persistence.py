"""
Best-effort JSON persistence of the latest payload and the history.

Two independent documents live in the data directory:
- latest-state.json: the last raw payload, replayed at boot.
- history.json: ``{today, days}`` without derived fields.

Writes go to a temporary file in the same directory and are moved into
place with ``os.replace``, so readers never see a half-written document.
Nothing here raises: a missing volume or a corrupt file is logged and the
service keeps serving from memory.

CHANGELOG:
- 2026-10-16: Drop out-of-order writes using the store revision (STORY-010)
- 2026-10-15: Initial creation (STORY-010)

TODO:
- None
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import os
import tempfile
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError

from meteo_backend.models import Memory

if TYPE_CHECKING:
    from meteo_backend.store import StateStore

logger = logging.getLogger(__name__)

LATEST_FILENAME = "latest-state.json"
HISTORY_FILENAME = "history.json"


@dataclass(frozen=True)
class LoadedPayload:
    """Latest payload read back from disk.

    Attributes:
        payload: Decoded JSON document.
        bytes: Size of the document in bytes.
        saved_at_ms: File modification time in epoch milliseconds.
    """

    payload: object
    bytes: int
    saved_at_ms: int


class PersistenceGateway:
    """Saves and loads the two state documents.

    Args:
        data_dir: Directory for the JSON documents. Accepts str or Path.
        persist_history: Whether history.json is written.
    """

    def __init__(self, data_dir: str | Path, *, persist_history: bool = True) -> None:
        self.data_dir = Path(data_dir)
        self.persist_history = persist_history
        self._lock = threading.Lock()
        self._last_revision = -1

    @property
    def latest_path(self) -> Path:
        return self.data_dir / LATEST_FILENAME

    @property
    def history_path(self) -> Path:
        return self.data_dir / HISTORY_FILENAME

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------

    def save(self, latest_json: str, history_json: str | None, revision: int) -> bool:
        """Write both documents atomically.

        Called outside the state lock with pre-serialised documents. A
        *revision* older than one already written is skipped, so a slow
        writer never overwrites newer state.

        Args:
            latest_json: Serialised latest payload.
            history_json: Serialised history, or ``None`` to skip it.
            revision: Store revision the documents were taken at.

        Returns:
            True if the documents were written (or already superseded),
            False if a write failed.
        """
        with self._lock:
            if revision <= self._last_revision:
                logger.debug("Skipping stale persist revision %d", revision)
                return True
            try:
                self.data_dir.mkdir(parents=True, exist_ok=True)
                _atomic_write(self.latest_path, latest_json)
                if self.persist_history and history_json is not None:
                    _atomic_write(self.history_path, history_json)
            except OSError:
                logger.warning(
                    "Persist skipped (no volume at %s?)", self.data_dir, exc_info=True
                )
                return False
            self._last_revision = revision
            return True

    # ------------------------------------------------------------------
    # Load
    # ------------------------------------------------------------------

    def load_latest(self) -> LoadedPayload | None:
        """Read latest-state.json; ``None`` on a cold start."""
        try:
            raw = self.latest_path.read_text(encoding="utf-8")
            payload = json.loads(raw)
            mtime = self.latest_path.stat().st_mtime
        except (OSError, ValueError):
            logger.info("No usable %s yet (cold start)", LATEST_FILENAME)
            return None
        logger.info("Loaded %s", LATEST_FILENAME)
        return LoadedPayload(
            payload=payload,
            bytes=len(raw.encode("utf-8")),
            saved_at_ms=int(mtime * 1000),
        )

    def load_history(self) -> Memory | None:
        """Read history.json; ``None`` when absent, unparsable or disabled."""
        if not self.persist_history:
            return None
        try:
            raw = self.history_path.read_text(encoding="utf-8")
            memory = Memory.model_validate_json(raw)
        except (OSError, ValidationError):
            logger.info("No usable %s yet (cold start)", HISTORY_FILENAME)
            return None
        logger.info("Loaded %s (today=%s)", HISTORY_FILENAME, memory.today.key)
        return memory


def _atomic_write(path: Path, content: str) -> None:
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(content)
        os.replace(tmp_name, path)
    except Exception:
        with contextlib.suppress(OSError):
            os.unlink(tmp_name)
        raise


# ---------------------------------------------------------------------------
# Request-path helpers
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PersistDocuments:
    """Serialised state taken under the store lock, written after release."""

    latest_json: str
    history_json: str | None
    revision: int


def snapshot_documents(store: StateStore) -> PersistDocuments | None:
    """Serialise the latest payload and history. Call with the lock held."""
    if store.latest_payload is None:
        return None
    return PersistDocuments(
        latest_json=json.dumps(store.latest_payload),
        history_json=json.dumps(store.export_history()),
        revision=store.revision,
    )


async def persist_documents(
    store: StateStore,
    gateway: PersistenceGateway,
    docs: PersistDocuments,
) -> bool:
    """Write *docs* off the event loop; failures only bump a counter.

    Returns:
        True if the write succeeded.
    """
    try:
        ok = await asyncio.to_thread(
            gateway.save, docs.latest_json, docs.history_json, docs.revision
        )
    except Exception:
        logger.warning("Persist failed unexpectedly", exc_info=True)
        ok = False

    if not ok:
        async with store.lock:
            store.persist_failures += 1
            store.record_event(
                "persist",
                "Persist failed, serving from memory",
                level="warning",
                detail={"revision": docs.revision},
            )
    return ok
