"""Console entry point tests."""

from __future__ import annotations

import builtins
import json
from typing import Any

import pytest

from listbot.__main__ import main

pytestmark = pytest.mark.unit


def _feed(monkeypatch, *lines: str) -> None:
    pending = list(lines)

    def fake_input(prompt: str = "") -> str:
        del prompt
        if not pending:
            raise EOFError
        return pending.pop(0)

    monkeypatch.setattr(builtins, "input", fake_input)


def test_mock_session_echoes_and_quits(monkeypatch, capsys) -> None:
    _feed(monkeypatch, "hello", "   ", "/quit", "never read")

    assert main(["--mock"]) == 0

    out = capsys.readouterr().out
    assert "bot> echo: hello" in out
    assert out.count("bot> ") == 1


def test_mock_session_persists_to_store(monkeypatch, tmp_path: Any) -> None:
    path = tmp_path / "lists.json"
    _feed(monkeypatch, "hi")

    assert main(["--mock", "--store", str(path), "--conversation", "me"]) == 0

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["me"]["version"] == 1


def test_configuration_error_exits_with_hint(monkeypatch, capsys) -> None:
    monkeypatch.setenv("LISTBOT_MAX_CHAIN_DEPTH", "0")

    assert main(["--mock"]) == 2

    err = capsys.readouterr().err
    assert "max_chain_depth" in err
