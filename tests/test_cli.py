"""Tests for the evaluate CLI."""

import io
import json

from registration_policy.tools import evaluate


def test_prints_decision_for_request_file(tmp_path, capsys) -> None:
    path = tmp_path / "request.json"
    path.write_text(
        json.dumps(
            {
                "client_metadata": {"redirect_uris": ["https://example.com/cb"]},
                "requester": {"ip_address": "203.0.113.5", "user_agent": "curl/8.0"},
            }
        ),
        encoding="utf-8",
    )

    exit_code = evaluate.main([str(path)])

    assert exit_code == 0
    output = json.loads(capsys.readouterr().out)
    assert output["verdict"] == "flag"
    assert output["warnings"][0]["rule"] == "blocked_user_agent_pattern"


def test_reads_stdin_when_no_path(monkeypatch, capsys) -> None:
    body = {"client_metadata": {"redirect_uris": ["https://example.com/cb"]}, "requester": {}}
    monkeypatch.setattr("sys.stdin", io.StringIO(json.dumps(body)))

    assert evaluate.main([]) == 0
    assert json.loads(capsys.readouterr().out)["verdict"] == "allow"


def test_input_error_exit_code(tmp_path, capsys) -> None:
    path = tmp_path / "request.json"
    path.write_text(json.dumps({"client_metadata": {}, "requester": {"ip_address": "nope"}}))

    assert evaluate.main([str(path)]) == 2
    assert json.loads(capsys.readouterr().err)["error"]["code"] == "invalid_ip_address"


def test_unreadable_input_exit_code(tmp_path, capsys) -> None:
    assert evaluate.main([str(tmp_path / "missing.json")]) == 1
    assert "cannot read request" in capsys.readouterr().err
