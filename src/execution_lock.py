#!/usr/bin/env python
"""
Import lock
Keeps a single importer writing to one Pohoda company at a time
"""

import hashlib
import json
import os
import sys
import tempfile
import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from abo_models import ImporterError


class LockError(ImporterError):
    pass


class ImportLock:
    """File based single-writer lock keyed on the target ledger.

    The duplicate check and the following submit are not atomic on the
    ledger side, so two importers running against the same company could
    both pass the check and import a transaction twice.
    """

    def __init__(self, ledger_key: str, lock_dir: str = ".", timeout: int = 3600):
        """
        Args:
            ledger_key: ledger identification, e.g. "<url>|<ico>"
            lock_dir: directory holding the lock file
            timeout: age in seconds after which a lock counts as stale
        """
        self.ledger_key = ledger_key
        self.timeout = timeout
        digest = hashlib.sha1(ledger_key.encode("utf-8")).hexdigest()[:12]
        self.lock_dir = lock_dir
        self.lock_file = os.path.join(lock_dir, f".abo_import_{digest}_lock.json")

    def acquire_lock(self, process_id: str, metadata: Dict[str, Any]) -> bool:
        """Take the lock; False when another live importer holds it"""
        existing_lock = self._load_lock()

        if existing_lock is not None:
            if not self._is_stale(self.lock_file, existing_lock):
                return False
            if not self._take_over_stale():
                return False
            print(f"⏰ Stale import lock removed: {existing_lock.get('process_id')}", file=sys.stderr)

        lock_data = {
            "process_id": process_id,
            "ledger": self.ledger_key,
            "timestamp": datetime.now().isoformat(),
            "timeout": self.timeout,
            "metadata": metadata,
        }
        if not self._save_lock(lock_data):
            return False
        print(f"🔒 Import lock acquired: {process_id}", file=sys.stderr)
        return True

    def release_lock(self, process_id: str) -> bool:
        existing_lock = self._load_lock()

        if existing_lock is None:
            print(f"⚠️ No import lock to release: {process_id}", file=sys.stderr)
            return False

        if existing_lock.get("process_id") != process_id:
            print(f"❌ Import lock is held by another process: {existing_lock.get('process_id')}", file=sys.stderr)
            return False

        self._remove_lock()
        print(f"🔓 Import lock released: {process_id}", file=sys.stderr)
        return True

    def get_lock_info(self) -> Optional[Dict[str, Any]]:
        return self._load_lock()

    def _load_lock(self, path: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """Lock content; {} for a lock file that exists but cannot be parsed"""
        try:
            with open(path or self.lock_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, ValueError):
            return {}
        return data if isinstance(data, dict) else {}

    def _is_stale(self, path: str, lock_data: Dict[str, Any]) -> bool:
        try:
            lock_time = datetime.fromisoformat(lock_data.get("timestamp", ""))
        except (TypeError, ValueError):
            # no readable timestamp yet, e.g. the holder is still writing: use the file age
            try:
                lock_time = datetime.fromtimestamp(os.path.getmtime(path))
            except FileNotFoundError:
                return True
        return datetime.now() - lock_time >= timedelta(seconds=self.timeout)

    def _take_over_stale(self) -> bool:
        """Move the stale lock aside under a unique name, then delete it.

        If another importer replaced the lock in the meantime, the moved
        file is fresh: it is put back and the takeover is abandoned.
        """
        aside = f"{self.lock_file}.stale-{uuid.uuid4().hex}"
        try:
            os.rename(self.lock_file, aside)
        except FileNotFoundError:
            return True

        if not self._is_stale(aside, self._load_lock(aside) or {}):
            try:
                os.link(aside, self.lock_file)
            except FileExistsError:
                pass
            os.remove(aside)
            return False

        os.remove(aside)
        return True

    def _save_lock(self, lock_data: Dict[str, Any]) -> bool:
        # the lock file appears fully written or not at all; link() refuses to overwrite
        fd, tmp_path = tempfile.mkstemp(prefix=".abo_import_", suffix=".tmp", dir=self.lock_dir)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(lock_data, f, ensure_ascii=False, indent=2)
            os.link(tmp_path, self.lock_file)
        except FileExistsError:
            return False
        finally:
            os.remove(tmp_path)
        return True

    def _remove_lock(self):
        try:
            os.remove(self.lock_file)
        except FileNotFoundError:
            pass

    def __enter__(self):
        process_id = f"{os.getpid()}@{datetime.now().strftime('%Y%m%d%H%M%S')}"
        if not self.acquire_lock(process_id, {"pid": os.getpid()}):
            info = self.get_lock_info() or {}
            raise LockError(f"Another import is running against this ledger (lock held by {info.get('process_id', 'unknown')})")
        self._process_id = process_id
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release_lock(self._process_id)
        return False
