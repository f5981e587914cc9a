"""
test_regression_client.py — CLI request building, with requests stubbed out.

Common examples:
  pytest -q tests/test_regression_client.py
"""

import json

import pytest

import tools.regression_client as mod


class FakeResponse:
    def __init__(self, payload, status=200):
        self.payload = payload
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise RuntimeError(f"HTTP {self.status_code}")

    def json(self):
        return self.payload


@pytest.fixture
def sent(monkeypatch):
    calls = []

    def fake_request(method, url, headers=None, json=None, timeout=None):
        calls.append({"method": method, "url": url, "headers": headers, "json": json})
        return FakeResponse({"ok": True})

    monkeypatch.setattr(mod.requests, "request", fake_request)
    return calls


def test_status_command(sent, capsys):
    assert mod.main(["--base", "http://api.local/", "status", "42"]) == 0
    assert sent == [{"method": "GET", "url": "http://api.local/regression/42",
                     "headers": {}, "json": None}]
    assert json.loads(capsys.readouterr().out) == {"ok": True}


def test_run_detection_sends_api_key(sent):
    mod.main(["--api-key", "k", "run-detection"])
    assert sent[0]["method"] == "POST"
    assert sent[0]["url"].endswith("/run-detection")
    assert sent[0]["headers"] == {"X-API-Key": "k"}


def test_settings_command_body(sent):
    mod.main(["settings", "42", "--short-form", "yes"])
    assert sent[0]["url"].endswith("/regression/42/settings")
    assert sent[0]["json"] == {"detection_disabled": None, "is_short_form": True}


def test_http_error_returns_nonzero(monkeypatch, capsys):
    monkeypatch.setattr(mod.requests, "request", lambda *a, **k: FakeResponse({}, 503))
    assert mod.main(["reset-baseline", "42"]) == 1
    assert "HTTP 503" in capsys.readouterr().err
