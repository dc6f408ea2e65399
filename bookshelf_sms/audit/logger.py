"""JSON Lines audit trail for security-relevant SMS events."""

from __future__ import annotations

import fcntl
import logging
import os
from pathlib import Path

from bookshelf_sms.models import AuditEvent, AuditEventType, RiskLevel

logger = logging.getLogger(__name__)

DEFAULT_MAX_BYTES = 10_485_760
DEFAULT_BACKUP_COUNT = 5


def read_events(log_path: Path) -> list[AuditEvent]:
    """Load every event from one audit file, oldest first."""
    if not log_path.exists():
        return []
    return [
        AuditEvent.model_validate_json(line)
        for line in log_path.read_text().splitlines()
        if line.strip()
    ]


class AuditLogger:
    """Append-only audit log with size-based rotation.

    Writers in other processes are serialized through a sidecar lock file,
    and rotation happens under the same lock so no line is lost.
    """

    def __init__(
        self,
        log_path: str | Path,
        max_bytes: int = DEFAULT_MAX_BYTES,
        backup_count: int = DEFAULT_BACKUP_COUNT,
    ) -> None:
        self.log_path = Path(log_path)
        self._max_bytes = max_bytes
        self._backup_count = backup_count

    @classmethod
    def from_env(cls, log_path: str | Path) -> AuditLogger:
        max_bytes = int(os.environ.get("AUDIT_LOG_MAX_BYTES", str(DEFAULT_MAX_BYTES)))
        backup_count = int(os.environ.get("AUDIT_LOG_BACKUP_COUNT", str(DEFAULT_BACKUP_COUNT)))
        return cls(log_path, max_bytes=max_bytes, backup_count=backup_count)

    def _backup(self, index: int) -> Path:
        return self.log_path.with_name(f"{self.log_path.name}.{index}")

    def _rotate_if_needed(self) -> None:
        if not self.log_path.exists() or self.log_path.stat().st_size < self._max_bytes:
            return
        self._backup(self._backup_count).unlink(missing_ok=True)
        for index in range(self._backup_count - 1, 0, -1):
            if self._backup(index).exists():
                self._backup(index).rename(self._backup(index + 1))
        self.log_path.rename(self._backup(1))

    def log(self, event: AuditEvent) -> None:
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        line = event.model_dump_json()
        lock_path = self.log_path.with_name(f".{self.log_path.name}.lock")
        with open(lock_path, "w") as lock:
            fcntl.flock(lock, fcntl.LOCK_EX)
            try:
                self._rotate_if_needed()
                with open(self.log_path, "a") as f:
                    f.write(line + "\n")
            finally:
                fcntl.flock(lock, fcntl.LOCK_UN)

    def record(
        self,
        event_type: AuditEventType,
        *,
        action: str,
        result: str,
        risk_level: RiskLevel,
        sender: str | None = None,
        message_sid: str | None = None,
        details: dict[str, object] | None = None,
    ) -> None:
        """Build and write an event. Write failures are logged, not raised."""
        event = AuditEvent(
            event_type=event_type,
            sender=sender,
            message_sid=message_sid or None,
            action=action,
            result=result,
            risk_level=risk_level,
            details=details,
        )
        try:
            self.log(event)
        except OSError as exc:
            logger.error("Failed to write audit event %s: %s", event_type.value, exc)
