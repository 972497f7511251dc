"""
Audit Logger for Folio.

Append-only JSONL record of filesystem operations. Public operations only
report True/False, so this log is where the reason for a failure ends up.
"""

import csv
import io
import json
from dataclasses import dataclass, asdict, field, fields
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional
from enum import Enum


class Operation(Enum):
    """Kinds of filesystem operations that can be logged."""
    READ = "read"
    WRITE = "write"
    DELETE = "delete"
    COPY = "copy"
    MOVE = "move"
    CREATE = "create"
    HASH = "hash"


class OperationStatus(Enum):
    """Outcome of an operation."""
    EXECUTED = "executed"
    FAILED = "failed"
    SKIPPED = "skipped"


EXPORT_COLUMNS = ("timestamp", "operation", "target", "status", "result", "metadata")


@dataclass
class AuditEntry:
    """One logged operation. Enum fields are stored by value."""
    operation: str
    target: str
    status: str = OperationStatus.EXECUTED.value
    result: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())

    @property
    def failed(self) -> bool:
        return self.status == OperationStatus.FAILED.value

    @classmethod
    def parse(cls, line: str) -> Optional["AuditEntry"]:
        """Parse one JSONL line; None if it is blank or not an entry."""
        line = line.strip()
        if not line:
            return None
        try:
            data = json.loads(line)
        except json.JSONDecodeError:
            return None
        if not isinstance(data, dict):
            return None

        known = {f.name for f in fields(cls)}
        if not {"operation", "target"} <= data.keys() or not data.keys() <= known:
            return None
        return cls(**data)

    def to_json(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)


class AuditLogger:
    """
    Append-only audit logger.

    The log file and its directory are created on construction. Entries
    are never rewritten; `rotate` moves the whole file aside instead.
    """

    def __init__(self, log_path: str = "data/audit_log.jsonl"):
        """
        Args:
            log_path: Path to the JSONL log file
        """
        self.log_path = Path(log_path)
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        self.log_path.touch(exist_ok=True)

    def log_operation(
        self,
        operation: Operation,
        target: str,
        status: OperationStatus = OperationStatus.EXECUTED,
        result: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> AuditEntry:
        """
        Append an entry for one operation.

        Raises:
            OSError: If the log file cannot be written
        """
        entry = AuditEntry(
            operation=operation.value,
            target=target,
            status=status.value,
            result=result,
            metadata=metadata or {}
        )
        with open(self.log_path, "a", encoding="utf-8") as f:
            f.write(entry.to_json() + "\n")
        return entry

    def entries(self) -> Iterator[AuditEntry]:
        """Yield entries oldest first, skipping lines that do not parse."""
        if not self.log_path.exists():
            return
        with open(self.log_path, "r", encoding="utf-8") as f:
            for line in f:
                entry = AuditEntry.parse(line)
                if entry is not None:
                    yield entry

    def query(
        self,
        operation: Optional[Operation] = None,
        failed_only: bool = False,
        limit: int = 100
    ) -> List[AuditEntry]:
        """
        Most recent matching entries, newest first.

        Args:
            operation: Only entries of this kind
            failed_only: Only failed entries
            limit: Maximum number of entries to return
        """
        matches = [
            e for e in self.entries()
            if (operation is None or e.operation == operation.value)
            and (not failed_only or e.failed)
        ]
        matches.reverse()
        return matches[:limit]

    def get_recent(self, limit: int = 100) -> List[AuditEntry]:
        return self.query(limit=limit)

    def export(self, format: str = "json") -> str:
        """
        Export the whole log, oldest first.

        Args:
            format: "json" or "csv"

        Raises:
            ValueError: For any other format
        """
        entries = list(self.entries())

        if format == "json":
            return json.dumps([asdict(e) for e in entries], indent=2, ensure_ascii=False)
        if format == "csv":
            buffer = io.StringIO()
            writer = csv.writer(buffer)
            writer.writerow(EXPORT_COLUMNS)
            for e in entries:
                writer.writerow([
                    e.timestamp, e.operation, e.target, e.status,
                    e.result or "", json.dumps(e.metadata, ensure_ascii=False),
                ])
            return buffer.getvalue()
        raise ValueError(f"Unsupported export format: {format}")

    def rotate(self) -> Optional[Path]:
        """
        Move the current log to a timestamped backup and start a fresh one.

        Returns:
            The backup path, or None if the log was already empty
        """
        if not self.log_path.exists() or self.log_path.stat().st_size == 0:
            return None

        stamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        backup_path = self.log_path.with_name(f"{self.log_path.stem}.backup.{stamp}{self.log_path.suffix}")
        self.log_path.rename(backup_path)
        self.log_path.touch()
        return backup_path
