"""
Tests for the core configuration and audit logging modules.
"""

import csv
import io
import json
import os
import tempfile
from pathlib import Path

import pytest
import yaml

# Add parent directory to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from folio_core.config import Settings, load_settings
from folio_core.logger import AuditEntry, AuditLogger, Operation, OperationStatus


class TestSettings:
    """Test Settings loading and saving."""

    @pytest.fixture
    def temp_config(self):
        """Create a temporary config file."""
        with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
            f.write("""folio:
  files:
    encoding: latin-1
    hash_algorithm: sha1
  directories:
    create_mode: 0700
    copy_mode: "0750"
  audit:
    enabled: true
    log_path: /tmp/folio-test/audit.jsonl
""")
        yield f.name
        os.unlink(f.name)

    def test_defaults(self):
        """Test the built-in defaults."""
        settings = Settings()

        assert settings.encoding == "utf-8"
        assert settings.hash_algorithm == "md5"
        assert settings.create_mode == 0o755
        assert settings.copy_mode == 0o777
        assert not settings.audit_enabled

    def test_missing_file_gives_defaults(self, tmp_path):
        """Test that a missing config file is not an error."""
        assert load_settings(str(tmp_path / "nope.yaml")) == Settings()

    def test_load(self, temp_config):
        """Test loading every key, including octal modes."""
        settings = load_settings(temp_config)

        assert settings.encoding == "latin-1"
        assert settings.hash_algorithm == "sha1"
        assert settings.create_mode == 0o700
        assert settings.copy_mode == 0o750
        assert settings.audit_enabled
        assert settings.audit_log_path == "/tmp/folio-test/audit.jsonl"

    def test_load_without_top_level_key(self, tmp_path):
        """Test a config document without the folio: wrapper."""
        path = tmp_path / "bare.yaml"
        path.write_text("files:\n  hash_algorithm: sha256\n")

        assert load_settings(str(path)).hash_algorithm == "sha256"

    def test_unparseable_file_gives_defaults(self, tmp_path):
        """Test that broken YAML falls back to defaults."""
        path = tmp_path / "broken.yaml"
        path.write_text("folio: [unclosed\n")

        assert load_settings(str(path)) == Settings()

    def test_invalid_hash_algorithm(self, tmp_path):
        """Test that an unknown hash algorithm is rejected."""
        path = tmp_path / "bad.yaml"
        path.write_text("folio:\n  files:\n    hash_algorithm: not-a-hash\n")

        with pytest.raises(ValueError):
            load_settings(str(path))

    @pytest.mark.parametrize("algorithm", ["shake_128", "shake_256"])
    def test_variable_length_hash_rejected(self, tmp_path, algorithm):
        """Test that digests without a fixed size are rejected."""
        path = tmp_path / "shake.yaml"
        path.write_text(f"folio:\n  files:\n    hash_algorithm: {algorithm}\n")

        with pytest.raises(ValueError):
            load_settings(str(path))
        with pytest.raises(ValueError):
            Settings(hash_algorithm=algorithm)

    def test_invalid_mode(self, tmp_path):
        """Test that a non-octal mode is rejected."""
        path = tmp_path / "bad.yaml"
        path.write_text("folio:\n  directories:\n    create_mode: rwx\n")

        with pytest.raises(ValueError):
            load_settings(str(path))

    def test_save_round_trip_keeps_other_keys(self, tmp_path):
        """Test that saving keeps unrelated keys and reloads identically."""
        path = tmp_path / "config.yaml"
        path.write_text("other:\n  keep: true\n")
        settings = Settings(hash_algorithm="sha256", create_mode=0o700)

        settings.save(str(path))

        data = yaml.safe_load(path.read_text())
        assert data["other"] == {"keep": True}
        assert load_settings(str(path)) == settings


class TestAuditEntry:
    """Test AuditEntry parsing."""

    def test_json_round_trip(self):
        """Test that a serialized entry parses back unchanged."""
        entry = AuditEntry(operation="hash", target="/tmp/a", metadata={"algorithm": "md5"})

        assert AuditEntry.parse(entry.to_json()) == entry

    @pytest.mark.parametrize("line", [
        "",
        "not json",
        "[1, 2]",
        json.dumps({"unexpected": "shape"}),
        json.dumps({"operation": "read", "target": "/a", "extra": 1}),
    ])
    def test_unparseable_lines(self, line):
        """Test that malformed lines yield None."""
        assert AuditEntry.parse(line) is None

    def test_failed_property(self):
        """Test the failed flag follows the status."""
        assert AuditEntry("read", "/a", status=OperationStatus.FAILED.value).failed
        assert not AuditEntry("read", "/a").failed


class TestAuditLogger:
    """Test AuditLogger class."""

    @pytest.fixture
    def temp_log(self):
        """Create a temporary log file."""
        with tempfile.NamedTemporaryFile(mode='w', suffix='.jsonl', delete=False) as f:
            yield f.name
        os.unlink(f.name)

    @pytest.fixture
    def logger(self, temp_log):
        """Create a logger with temp file."""
        return AuditLogger(log_path=temp_log)

    def test_log_operation(self, logger):
        """Test logging an operation."""
        entry = logger.log_operation(
            operation=Operation.WRITE,
            target="/tmp/a.txt",
            result="3 bytes written"
        )

        assert entry.target == "/tmp/a.txt"
        assert entry.status == "executed"
        assert list(logger.entries()) == [entry]

    def test_creates_missing_directory(self, tmp_path):
        """Test that the log directory is created on construction."""
        log_path = tmp_path / "nested" / "audit.jsonl"

        AuditLogger(log_path=str(log_path))

        assert log_path.exists()

    def test_write_failure_raises(self, tmp_path):
        """Test that the logger itself reports a failed append."""
        log_dir = tmp_path / "logs"
        logger = AuditLogger(log_path=str(log_dir / "audit.jsonl"))
        (log_dir / "audit.jsonl").unlink()
        log_dir.rmdir()

        with pytest.raises(OSError):
            logger.log_operation(operation=Operation.READ, target="/tmp/a")

    def test_get_recent(self, logger):
        """Test getting recent entries, most recent first."""
        for i in range(5):
            logger.log_operation(operation=Operation.READ, target=f"/tmp/{i}")

        entries = logger.get_recent(limit=3)

        assert [e.target for e in entries] == ["/tmp/4", "/tmp/3", "/tmp/2"]

    def test_skips_corrupt_lines(self, logger, temp_log):
        """Test that unreadable lines are ignored."""
        logger.log_operation(operation=Operation.READ, target="/tmp/ok")
        with open(temp_log, "a", encoding="utf-8") as f:
            f.write("not json\n")
            f.write(json.dumps({"unexpected": "shape"}) + "\n")

        assert [e.target for e in logger.get_recent()] == ["/tmp/ok"]

    def test_query_failed_only(self, logger):
        """Test filtering on failed operations."""
        logger.log_operation(operation=Operation.COPY, target="/tmp/a")
        logger.log_operation(
            operation=Operation.DELETE,
            target="/tmp/b",
            status=OperationStatus.FAILED,
            result="Error: denied"
        )

        failed = logger.query(failed_only=True)

        assert [e.target for e in failed] == ["/tmp/b"]

    def test_query_by_operation(self, logger):
        """Test filtering on operation kind, newest first."""
        logger.log_operation(operation=Operation.COPY, target="/tmp/a")
        logger.log_operation(operation=Operation.MOVE, target="/tmp/b")
        logger.log_operation(operation=Operation.COPY, target="/tmp/c")

        copies = logger.query(operation=Operation.COPY)

        assert [e.target for e in copies] == ["/tmp/c", "/tmp/a"]

    def test_export_json(self, logger):
        """Test JSON export, oldest first."""
        logger.log_operation(operation=Operation.CREATE, target="/tmp/dir")
        logger.log_operation(operation=Operation.DELETE, target="/tmp/dir")

        exported = json.loads(logger.export("json"))

        assert [e["operation"] for e in exported] == ["create", "delete"]

    def test_export_csv_quotes_awkward_paths(self, logger):
        """Test that quotes, commas and newlines in paths survive CSV export."""
        awkward = '/tmp/say "hi",\nthere.txt'
        logger.log_operation(
            operation=Operation.WRITE,
            target=awkward,
            metadata={"lock": True}
        )

        rows = list(csv.reader(io.StringIO(logger.export("csv"))))

        assert rows[0] == ["timestamp", "operation", "target", "status", "result", "metadata"]
        assert len(rows) == 2
        assert rows[1][2] == awkward
        assert json.loads(rows[1][5]) == {"lock": True}

    def test_export_unknown_format(self, logger):
        """Test that unsupported formats raise."""
        with pytest.raises(ValueError):
            logger.export("xml")

    def test_rotate_keeps_backup(self, tmp_path):
        """Test that rotation starts a fresh log and keeps the old one."""
        logger = AuditLogger(log_path=str(tmp_path / "audit.jsonl"))
        logger.log_operation(operation=Operation.READ, target="/tmp/a")

        backup = logger.rotate()

        assert backup is not None
        assert backup.name.startswith("audit.backup.")
        assert backup.suffix == ".jsonl"
        assert "/tmp/a" in backup.read_text()
        assert logger.get_recent() == []

    def test_rotate_empty_log(self, logger):
        """Test that an empty log is not rotated."""
        assert logger.rotate() is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
