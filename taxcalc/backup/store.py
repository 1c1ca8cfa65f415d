"""SQLite-backed store of named, password-protected backups.

Each backup bundles projects and calculations under a human-chosen name. The
password is kept only as a SHA-256 digest and checked before any read or
write of an existing backup. Every public method returns a result dict
(``{"success": True, ...}`` or ``{"success": False, "error": ..., "code": ...}``)
and never raises.
"""
from __future__ import annotations

import datetime
import functools
import hashlib
import hmac
import json
import logging
import os
import sqlite3
import threading
from contextlib import closing
from typing import Any, Dict, Iterable, List, Mapping

from ..data_model import CalculationEntry, Project, TaxInputs, TaxResults, identity

logger = logging.getLogger(__name__)

SCHEMA_PATH = os.path.join(os.path.dirname(__file__), "schema.sql")
DEFAULT_MIN_PASSWORD_LENGTH = 6


class BackupError(Exception):
    """Aborts a backup operation; ``code`` classifies the failure for callers."""

    def __init__(self, message: str, code: str = "error") -> None:
        super().__init__(message)
        self.code = code


def hash_password(password: str) -> str:
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


def verify_password(password: str, password_hash: str) -> bool:
    return hmac.compare_digest(hash_password(password), password_hash or "")


def _now() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


def _restore_id(value: Any) -> int | str:
    text = identity(value)
    if text.lstrip("-").isdigit():
        return int(text)
    return text


def _as_entry(item: CalculationEntry | Mapping[str, Any]) -> CalculationEntry:
    return item if isinstance(item, CalculationEntry) else CalculationEntry.from_dict(item)


def _as_project(item: Project | Mapping[str, Any]) -> Project:
    return item if isinstance(item, Project) else Project.from_dict(item)


def _failure(exc: Exception, code: str = "error") -> Dict[str, Any]:
    return {"success": False, "error": str(exc), "code": code}


def _exclusive(method):
    """Run at most one backup operation at a time; a second caller gets ``busy``."""

    @functools.wraps(method)
    def wrapper(self: "BackupStore", *args, **kwargs):
        if not self._lock.acquire(blocking=False):
            return _failure(BackupError("Another backup operation is already in progress."), "busy")
        try:
            return method(self, *args, **kwargs)
        except BackupError as exc:
            logger.warning("Backup %s failed: %s", method.__name__, exc)
            return _failure(exc, exc.code)
        except (sqlite3.Error, ValueError) as exc:
            logger.exception("Backup %s failed", method.__name__)
            return _failure(exc)
        finally:
            self._lock.release()

    return wrapper


class BackupStore:
    def __init__(self, db_path: str, min_password_length: int = DEFAULT_MIN_PASSWORD_LENGTH):
        self.db_path = db_path
        self.min_password_length = min_password_length
        self._lock = threading.Lock()

    def ensure_db(self) -> None:
        """Create the DB file and schema if missing."""
        folder = os.path.dirname(self.db_path)
        if folder:
            os.makedirs(folder, exist_ok=True)
        with open(SCHEMA_PATH, "r", encoding="utf-8") as f:
            sql = f.read()
        with closing(sqlite3.connect(self.db_path)) as conn:
            conn.executescript(sql)
            conn.commit()

    def _connect(self) -> sqlite3.Connection:
        self.ensure_db()
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def _authenticate(self, conn: sqlite3.Connection, name: str, password: str) -> sqlite3.Row:
        backup = conn.execute("SELECT * FROM named_backups WHERE backup_name = ?", (name,)).fetchone()
        if backup is None:
            raise BackupError("Backup not found", "not_found")
        if not verify_password(password, backup["password_hash"]):
            raise BackupError("Incorrect password", "unauthorized")
        return backup

    @staticmethod
    def _require_credentials(name: str, password: str) -> str:
        name = (name or "").strip()
        if not name or not password:
            raise BackupError("Backup name and password are required", "invalid")
        return name

    @_exclusive
    def save(
        self,
        name: str,
        password: str,
        history: Iterable[CalculationEntry | Mapping[str, Any]],
        projects: Iterable[Project | Mapping[str, Any]],
    ) -> Dict[str, Any]:
        name = self._require_credentials(name, password)
        if len(password) < self.min_password_length:
            raise BackupError(f"Password must be at least {self.min_password_length} characters", "invalid")
        entries = [_as_entry(item) for item in history]
        project_list = [_as_project(item) for item in projects]

        with closing(self._connect()) as conn:
            with conn:
                existing = conn.execute(
                    "SELECT * FROM named_backups WHERE backup_name = ?", (name,)
                ).fetchone()
                if existing is not None:
                    if not verify_password(password, existing["password_hash"]):
                        raise BackupError("Incorrect password for this backup name", "unauthorized")
                    backup_id = existing["id"]
                else:
                    now = _now()
                    try:
                        cur = conn.execute(
                            "INSERT INTO named_backups(backup_name, password_hash, created_at, updated_at) VALUES (?,?,?,?)",
                            (name, hash_password(password), now, now),
                        )
                    except sqlite3.IntegrityError:
                        raise BackupError(
                            "This backup name is already taken. Please choose a different name.", "conflict"
                        ) from None
                    backup_id = cur.lastrowid

                known_projects = {
                    row["project_id"]
                    for row in conn.execute("SELECT project_id FROM backup_projects WHERE backup_id = ?", (backup_id,))
                }
                known_calcs = {
                    row["calculation_id"]
                    for row in conn.execute(
                        "SELECT calculation_id FROM backup_calculations WHERE backup_id = ?", (backup_id,)
                    )
                }

                new_projects = 0
                for project in project_list:
                    key = identity(project.id)
                    if key in known_projects:
                        continue
                    conn.execute(
                        "INSERT INTO backup_projects(backup_id, project_id, name, created_at) VALUES (?,?,?,?)",
                        (backup_id, key, project.name, project.created_at or None),
                    )
                    known_projects.add(key)
                    new_projects += 1

                new_calcs = 0
                for entry in entries:
                    key = identity(entry.id)
                    if key in known_calcs:
                        continue
                    conn.execute(
                        "INSERT INTO backup_calculations(backup_id, calculation_id, project_id, project_name, abc, "
                        "expenses_vat_inc, expenses_non_vat, net_income_after_tax, inputs, results, timestamp) "
                        "VALUES (?,?,?,?,?,?,?,?,?,?,?)",
                        (
                            backup_id,
                            key,
                            entry.inputs.project_id or None,
                            entry.inputs.project_name or None,
                            entry.inputs.abc,
                            entry.inputs.expenses_vat_inc,
                            entry.inputs.expenses_non_vat,
                            entry.results.net_income_after_tax,
                            json.dumps(entry.inputs.to_dict(), ensure_ascii=False),
                            json.dumps(entry.results.to_dict(), ensure_ascii=False),
                            entry.timestamp,
                        ),
                    )
                    known_calcs.add(key)
                    new_calcs += 1

                conn.execute("UPDATE named_backups SET updated_at = ? WHERE id = ?", (_now(), backup_id))

        is_new = existing is None
        if is_new:
            message = f'Created new backup "{name}" with {len(entries)} calculations.'
        else:
            message = f'Updated backup "{name}". Added {new_calcs} new calculations.'
        logger.info(message)
        return {
            "success": True,
            "message": message,
            "isNewBackup": is_new,
            "newCalculationsAdded": new_calcs,
            "newProjectsAdded": new_projects,
        }

    @_exclusive
    def import_backup(self, name: str, password: str) -> Dict[str, Any]:
        name = self._require_credentials(name, password)
        with closing(self._connect()) as conn:
            backup = self._authenticate(conn, name, password)
            project_rows = conn.execute(
                "SELECT * FROM backup_projects WHERE backup_id = ? ORDER BY id", (backup["id"],)
            ).fetchall()
            calc_rows = conn.execute(
                "SELECT * FROM backup_calculations WHERE backup_id = ? ORDER BY timestamp DESC, id DESC",
                (backup["id"],),
            ).fetchall()

        projects = [
            Project(id=_restore_id(row["project_id"]), name=row["name"], created_at=row["created_at"] or "")
            for row in project_rows
        ]
        history = [self._row_to_entry(row) for row in calc_rows]
        logger.info("Imported backup %r: %d projects, %d calculations", name, len(projects), len(history))
        return {
            "success": True,
            "data": {
                "projects": [project.to_dict() for project in projects],
                "history": [entry.to_dict() for entry in history],
                "backupInfo": {
                    "name": backup["backup_name"],
                    "createdAt": backup["created_at"],
                    "updatedAt": backup["updated_at"],
                },
            },
        }

    @staticmethod
    def _row_to_entry(row: sqlite3.Row) -> CalculationEntry:
        if row["inputs"]:
            inputs = TaxInputs.from_dict(json.loads(row["inputs"]))
        else:
            inputs = TaxInputs.from_dict(
                {
                    "abc": row["abc"],
                    "expensesVatInc": row["expenses_vat_inc"],
                    "expensesNonVat": row["expenses_non_vat"],
                    "projectId": row["project_id"],
                    "projectName": row["project_name"],
                    "retentionPercent": 0,
                    "undeclaredExpenses": 0,
                }
            )
        return CalculationEntry(
            id=_restore_id(row["calculation_id"]),
            timestamp=row["timestamp"] or "",
            inputs=inputs,
            results=TaxResults.from_dict(json.loads(row["results"])),
        )

    @_exclusive
    def list_backups(self) -> Dict[str, Any]:
        with closing(self._connect()) as conn:
            rows = conn.execute(
                "SELECT backup_name, created_at, updated_at FROM named_backups ORDER BY updated_at DESC"
            ).fetchall()
        data: List[Dict[str, Any]] = [
            {"name": row["backup_name"], "createdAt": row["created_at"], "updatedAt": row["updated_at"]}
            for row in rows
        ]
        return {"success": True, "data": data}

    @_exclusive
    def delete(self, name: str, password: str) -> Dict[str, Any]:
        name = self._require_credentials(name, password)
        with closing(self._connect()) as conn:
            with conn:
                backup = self._authenticate(conn, name, password)
                conn.execute("DELETE FROM backup_calculations WHERE backup_id = ?", (backup["id"],))
                conn.execute("DELETE FROM backup_projects WHERE backup_id = ?", (backup["id"],))
                conn.execute("DELETE FROM named_backups WHERE id = ?", (backup["id"],))
        logger.info("Deleted backup %r", name)
        return {"success": True, "message": f'Backup "{name}" deleted successfully'}
