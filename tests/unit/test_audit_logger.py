"""Tests for the JSONL audit logger."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from bookshelf_sms.audit.logger import AuditLogger, read_events
from bookshelf_sms.models import AuditEvent, AuditEventType, RiskLevel


def _event(action: str = "help") -> AuditEvent:
    return AuditEvent(
        event_type=AuditEventType.MESSAGE_PROCESSED,
        sender="***4567",
        action=action,
        result="success",
        risk_level=RiskLevel.INFO,
    )


def test_log_appends_json_lines(tmp_path: Path) -> None:
    log_path = tmp_path / "audit" / "sms.jsonl"
    logger = AuditLogger(log_path)
    logger.log(_event("one"))
    logger.log(_event("two"))

    lines = log_path.read_text().splitlines()
    assert len(lines) == 2
    first = json.loads(lines[0])
    assert first["event_type"] == "message_processed"
    assert first["action"] == "one"
    assert first["timestamp"]


def test_record_builds_event(tmp_path: Path) -> None:
    log_path = tmp_path / "audit.jsonl"
    AuditLogger(log_path).record(
        AuditEventType.SENDER_UNAUTHORIZED,
        action="authorize_sender",
        result="blocked",
        risk_level=RiskLevel.MEDIUM,
        sender="***6543",
        message_sid="",
        details={"reason": "not listed"},
    )
    [event] = read_events(log_path)
    assert event.event_type == AuditEventType.SENDER_UNAUTHORIZED
    assert event.message_sid is None
    assert event.details == {"reason": "not listed"}


def test_record_swallows_write_errors(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("")
    logger = AuditLogger(blocker / "audit.jsonl")
    logger.record(
        AuditEventType.RATE_LIMITED, action="rate_limit", result="blocked",
        risk_level=RiskLevel.LOW,
    )
    assert "Failed to write audit event" in caplog.text


def test_read_events_missing_file(tmp_path: Path) -> None:
    assert read_events(tmp_path / "missing.jsonl") == []


def test_rotation_keeps_backups(tmp_path: Path) -> None:
    log_path = tmp_path / "audit.jsonl"
    logger = AuditLogger(log_path, max_bytes=1, backup_count=2)
    for action in ("a", "b", "c", "d"):
        logger.log(_event(action))

    assert [e.action for e in read_events(log_path)] == ["d"]
    assert [e.action for e in read_events(tmp_path / "audit.jsonl.1")] == ["c"]
    assert [e.action for e in read_events(tmp_path / "audit.jsonl.2")] == ["b"]
    assert not (tmp_path / "audit.jsonl.3").exists()


def test_no_rotation_under_limit(tmp_path: Path) -> None:
    log_path = tmp_path / "audit.jsonl"
    logger = AuditLogger(log_path, max_bytes=1_000_000)
    for action in ("a", "b"):
        logger.log(_event(action))
    assert len(read_events(log_path)) == 2
    assert not (tmp_path / "audit.jsonl.1").exists()


def test_from_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AUDIT_LOG_MAX_BYTES", "1")
    monkeypatch.setenv("AUDIT_LOG_BACKUP_COUNT", "1")
    log_path = tmp_path / "audit.jsonl"
    logger = AuditLogger.from_env(log_path)
    for action in ("a", "b", "c"):
        logger.log(_event(action))
    assert [e.action for e in read_events(tmp_path / "audit.jsonl.1")] == ["b"]
    assert not (tmp_path / "audit.jsonl.2").exists()
