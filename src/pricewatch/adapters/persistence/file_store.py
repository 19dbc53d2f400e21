# src/pricewatch/adapters/persistence/file_store.py
"""
File Store - Observation History and Subscription Persistence

This module implements the DocumentStore boundary on top of JSON files:
one file per instrument series (oldest first) and one file per subscription.
Every write goes through a temp file + atomic rename, so a crash never
leaves a half-written document behind. Corrupt files are backed up next to
the original with a ".corrupt" suffix and treated as empty.

Files that USE this module:
- pricewatch.app (creates the FileDocumentStore under settings.data_dir)
- tests.test_file_store (unit tests)

Files that this module USES:
- pricewatch.domain.models (Instrument, Observation, Subscription)
- pricewatch.domain.errors (PersistenceError)
"""
from __future__ import annotations

import json
import logging
import os
import re
import shutil
import tempfile
import threading
from pathlib import Path
from typing import Any, List, Optional

from pricewatch.domain.errors import PersistenceError
from pricewatch.domain.models import Instrument, Observation, Subscription

log = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


class FileDocumentStore:
    """
    JSON-file document store.

    Layout under data_dir:
        observations/<instrument slug>.json  {"instrument": key, "observations": [...]}
        subscriptions/<user id>.json         Subscription.to_json()
    """

    def __init__(self, data_dir: Path):
        """
        Args:
            data_dir: Root directory; created if missing
        """
        self.data_dir = Path(data_dir)
        self.observations_dir = self.data_dir / "observations"
        self.subscriptions_dir = self.data_dir / "subscriptions"
        self._lock = threading.RLock()
        try:
            self.observations_dir.mkdir(parents=True, exist_ok=True)
            self.subscriptions_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(f"Cannot create data directory {self.data_dir}: {e}") from e

    # ---------- low-level helpers ----------

    def _series_path(self, instrument: Instrument) -> Path:
        return self.observations_dir / f"{instrument.slug}.json"

    def _subscription_path(self, user_id: str) -> Path:
        return self.subscriptions_dir / f"{_UNSAFE_CHARS.sub('_', str(user_id))}.json"

    def _write_json(self, path: Path, payload: Any) -> None:
        """
        Write JSON using temp file + atomic rename.

        Raises:
            PersistenceError: If the file cannot be written
        """
        temp_fd, temp_path = tempfile.mkstemp(suffix=".json.tmp", dir=str(path.parent), text=True)
        try:
            with os.fdopen(temp_fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, ensure_ascii=False, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, str(path))
        except (OSError, TypeError, ValueError) as e:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise PersistenceError(f"Failed to write {path.name}: {e}") from e

    def _read_json(self, path: Path) -> Optional[Any]:
        """
        Read a JSON document.

        Returns:
            Parsed document, or None if the file is missing or was corrupt

        Raises:
            PersistenceError: If the file exists but cannot be read
        """
        if not path.exists():
            return None
        try:
            with path.open("r", encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            self._quarantine(path, e)
            return None
        except OSError as e:
            raise PersistenceError(f"Failed to read {path.name}: {e}") from e

    def _quarantine(self, path: Path, error: Exception) -> None:
        backup_path = path.with_suffix(".json.corrupt")
        try:
            shutil.copy2(path, backup_path)
            path.unlink()
            log.warning("Corrupt file %s backed up to %s: %s", path.name, backup_path, error)
        except OSError as backup_error:
            log.error("Failed to back up corrupt file %s: %s", path, backup_error)

    def _load_series(self, instrument: Instrument) -> List[Observation]:
        data = self._read_json(self._series_path(instrument))
        if not data:
            return []
        series = []
        for raw in data.get("observations", []):
            try:
                series.append(Observation.from_json(raw))
            except (KeyError, ValueError, TypeError) as e:
                log.warning("Skipping malformed observation for %s: %s", instrument, e)
        series.sort(key=lambda o: o.observed_at)
        return series

    def _save_series(self, instrument: Instrument, series: List[Observation]) -> None:
        self._write_json(
            self._series_path(instrument),
            {"instrument": instrument.key, "observations": [o.to_json() for o in series]},
        )

    # ---------- observations ----------

    def insert_observation(self, observation: Observation) -> None:
        with self._lock:
            series = self._load_series(observation.instrument)
            series.append(observation)
            series.sort(key=lambda o: o.observed_at)
            self._save_series(observation.instrument, series)

    def query_latest(self, instrument: Instrument) -> Optional[Observation]:
        with self._lock:
            series = self._load_series(instrument)
        return series[-1] if series else None

    def query_history(self, instrument: Instrument, limit: int) -> List[Observation]:
        if limit <= 0:
            return []
        with self._lock:
            series = self._load_series(instrument)
        return list(reversed(series[-limit:]))

    def delete_older_than_top_k(self, instrument: Instrument, k: int) -> int:
        with self._lock:
            series = self._load_series(instrument)
            excess = len(series) - max(k, 0)
            if excess <= 0:
                return 0
            self._save_series(instrument, series[excess:])
        log.debug("Pruned %d observations for %s", excess, instrument)
        return excess

    def list_instruments(self) -> List[Instrument]:
        instruments = []
        with self._lock:
            for path in sorted(self.observations_dir.glob("*.json")):
                data = self._read_json(path)
                if not data or "instrument" not in data:
                    continue
                try:
                    instruments.append(Instrument.parse(data["instrument"]))
                except ValueError as e:
                    log.warning("Unknown instrument in %s: %s", path.name, e)
        return instruments

    # ---------- subscriptions ----------

    def find_subscription(self, user_id: str) -> Optional[Subscription]:
        with self._lock:
            data = self._read_json(self._subscription_path(user_id))
        if not data:
            return None
        try:
            return Subscription.from_json(data)
        except (KeyError, ValueError, TypeError) as e:
            raise PersistenceError(f"Malformed subscription {user_id}: {e}") from e

    def find_enabled_subscriptions(self, require_token: bool = True) -> List[Subscription]:
        subscriptions = []
        with self._lock:
            paths = sorted(self.subscriptions_dir.glob("*.json"))
            for path in paths:
                data = self._read_json(path)
                if not data:
                    continue
                try:
                    subscription = Subscription.from_json(data)
                except (KeyError, ValueError, TypeError) as e:
                    log.warning("Skipping malformed subscription file %s: %s", path.name, e)
                    continue
                if not subscription.cooldown.enabled:
                    continue
                if require_token and not subscription.delivery_token:
                    continue
                subscriptions.append(subscription)
        return subscriptions

    def save_subscription(self, subscription: Subscription) -> None:
        with self._lock:
            self._write_json(self._subscription_path(subscription.user_id), subscription.to_json())
