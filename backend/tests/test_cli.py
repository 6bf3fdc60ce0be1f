"""
Tests for the command line
==========================
Covers:
- create-admin: created, already exists, storage failure
- sync: missing source, not authenticated, one-shot upload
- no command prints help

Run: pytest tests/test_cli.py -v
"""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
import respx
from httpx import Response

from vitalgate.cli import build_parser, main
from vitalgate.core.security import verify_password
from vitalgate.sync.records import to_epoch_ms


@pytest.fixture(autouse=True)
def _no_logging_setup():
    # main() installs a root stderr handler; keep it off pytest's capture streams
    with patch("vitalgate.cli.configure_logging"):
        yield


class TestCreateAdmin:
    def test_creates_user(self, fake_db, capsys):
        code = main([
            "create-admin",
            "--email", "Admin@Example.com",
            "--password", "s3cret!",
            "--full-name", "Admin",
            "--id", "admin-1",
        ])

        assert code == 0
        assert "Admin user created: admin@example.com" in capsys.readouterr().out
        [row] = fake_db.rows("users")
        assert row["id"] == "admin-1"
        assert row["fcm_token"] == ""
        assert verify_password("s3cret!", row["password"])

    def test_existing_user_is_not_an_error(self, fake_db, user, capsys):
        code = main([
            "create-admin",
            "--email", "jane@example.com",
            "--password", "whatever",
            "--full-name", "Jane",
        ])

        assert code == 0
        assert "User already exists: jane@example.com" in capsys.readouterr().out
        assert len(fake_db.rows("users")) == 1

    def test_storage_failure(self, fake_db, capsys):
        fake_db.fail_on = ("users", "insert")

        code = main([
            "create-admin", "--email", "a@b.co", "--password", "x", "--full-name", "A",
        ])

        assert code == 1
        assert "Failed to create admin user" in capsys.readouterr().err


class TestSync:
    def test_missing_source(self, tmp_path, capsys):
        code = main(["sync", "--source", str(tmp_path / "nope.json")])

        assert code == 1
        assert "Source file not found" in capsys.readouterr().err

    def test_not_authenticated(self, tmp_path, capsys):
        source = tmp_path / "export.json"
        source.write_text("{}", encoding="utf-8")
        log = tmp_path / "history.json"

        code = main([
            "sync", "--source", str(source), "--base-url", "", "--token", "",
            "--history-log", str(log),
        ])

        assert code == 0
        assert "Not authenticated" in capsys.readouterr().out
        assert not log.exists()

    @respx.mock
    def test_one_shot_sync(self, tmp_path, capsys):
        moment = datetime.now(timezone.utc) - timedelta(hours=3)
        record = {"id": str(uuid.uuid4()), "dataOrigin": "com.example.scale",
                  "time": to_epoch_ms(moment), "weight": 70.1}
        source = tmp_path / "export.json"
        source.write_text(json.dumps({"weight": [record]}), encoding="utf-8")
        log = tmp_path / "history.json"
        route = respx.post("http://api.test/api/v1/health/Weight").mock(
            return_value=Response(200, json={"success": True})
        )

        code = main([
            "sync", "--source", str(source), "--base-url", "http://api.test",
            "--token", "abc", "--history-log", str(log),
        ])

        assert code == 0
        assert "Sync completed: 1 uploaded, 0 failed" in capsys.readouterr().out
        assert route.call_count == 1
        [entry] = json.loads(log.read_text(encoding="utf-8"))
        assert entry["isBackgroundSync"] is False


class TestParser:
    def test_no_command_prints_help(self, capsys):
        assert main([]) == 1
        assert "usage: vitalgate" in capsys.readouterr().out

    def test_sync_defaults(self):
        args = build_parser().parse_args(["sync", "--source", "x.json"])
        assert args.watch is False
        assert args.interval is None
        assert args.batch_size is None
