from __future__ import annotations

import json
import logging
import os
from pathlib import Path

import pytest

from rankmint.env import load_dotenv_if_present
from rankmint.logging_utils import log_event


def test_dotenv_loads_without_overriding(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    p = tmp_path / ".env"
    p.write_text("RANKMINT_TEST_A=from-file\nRANKMINT_TEST_B=from-file\n", encoding="utf-8")
    # setenv first so teardown removes whatever the loader writes.
    monkeypatch.setenv("RANKMINT_TEST_A", "placeholder")
    monkeypatch.delenv("RANKMINT_TEST_A")
    monkeypatch.setenv("RANKMINT_TEST_B", "from-env")

    assert load_dotenv_if_present(str(p), force=True) is True
    assert os.environ["RANKMINT_TEST_A"] == "from-file"
    assert os.environ["RANKMINT_TEST_B"] == "from-env"

    # Second call without force is a no-op.
    assert load_dotenv_if_present(str(p)) is False


def test_dotenv_missing_file(tmp_path: Path) -> None:
    assert load_dotenv_if_present(str(tmp_path / "absent.env"), force=True) is False


def test_log_event_emits_json(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("rankmint.test")
    with caplog.at_level(logging.INFO, logger="rankmint.test"):
        log_event(logger, "issued", identifier=3, bucket=11)

    rec = json.loads(caplog.records[-1].getMessage())
    assert rec["event"] == "issued"
    assert rec["identifier"] == 3
    assert rec["bucket"] == 11
    assert isinstance(rec["ts_ms"], int)


def test_log_event_falls_back_for_unserializable_fields(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("rankmint.test")
    with caplog.at_level(logging.INFO, logger="rankmint.test"):
        log_event(logger, "odd", payload=object())

    assert caplog.records[-1].getMessage().startswith("event=odd payload=")
