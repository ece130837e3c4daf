"""Tests for the text-generation runner."""

from __future__ import annotations

from types import SimpleNamespace

import anthropic
import httpx
import pytest

from docpilot.errors import (
    ConfigError,
    LLMAuthenticationError,
    LLMError,
    MissingCredentialsError,
    RateLimitError,
)
from docpilot.llm.runner import LLMRunner, check_api_key


def _status_error(cls, status: int):  # type: ignore[no-untyped-def]
    request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    response = httpx.Response(status, request=request)
    return cls("boom", response=response, body=None)


class _FakeClient:
    def __init__(self, outcome) -> None:  # type: ignore[no-untyped-def]
        self.calls = []
        self._outcome = outcome
        self.messages = SimpleNamespace(create=self._create)

    def _create(self, **kwargs):  # type: ignore[no-untyped-def]
        self.calls.append(kwargs)
        if isinstance(self._outcome, Exception):
            raise self._outcome
        return self._outcome


def _install_client(monkeypatch, outcome) -> _FakeClient:  # type: ignore[no-untyped-def]
    client = _FakeClient(outcome)
    constructed = {}

    def factory(**kwargs):  # type: ignore[no-untyped-def]
        constructed.update(kwargs)
        return client

    monkeypatch.setattr(anthropic, "Anthropic", factory)
    client.constructed = constructed  # type: ignore[attr-defined]
    return client


def test_llm_runner_constructs_request() -> None:
    captured = {}

    def fake_runner(request):  # type: ignore[no-untyped-def]
        captured["prompt"] = request.prompt
        captured["system"] = request.system
        captured["model"] = request.model
        captured["temperature"] = request.temperature
        captured["max_tokens"] = request.max_tokens
        captured["api_key"] = request.api_key
        captured["request_timeout"] = request.request_timeout
        return "response"

    runner = LLMRunner(
        model="claude-test",
        temperature=0.15,
        max_tokens=256,
        api_key="sk-ant-api03-test",
        request_timeout=42.0,
        runner=fake_runner,
    )
    result = runner.run("Hello world", system="system message")

    assert result == "response"
    assert captured == {
        "prompt": "Hello world",
        "system": "system message",
        "model": "claude-test",
        "temperature": 0.15,
        "max_tokens": 256,
        "api_key": "sk-ant-api03-test",
        "request_timeout": 42.0,
    }


def test_llm_runner_per_call_overrides() -> None:
    seen = []
    runner = LLMRunner(api_key="key", runner=lambda request: seen.append(request) or "ok")
    runner.run("connection", max_tokens=100, temperature=0.0)
    assert seen[0].max_tokens == 100
    assert seen[0].temperature == 0.0


def test_llm_runner_reads_environment(monkeypatch) -> None:  # type: ignore[no-untyped-def]
    monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-api03-from-env")
    monkeypatch.setenv("DOCPILOT_AI_MODEL", "claude-env")
    runner = LLMRunner(runner=lambda request: "ok")
    assert runner.api_key == "sk-ant-api03-from-env"
    assert runner.model == "claude-env"
    assert runner.has_credentials


def test_require_credentials_raises_without_key() -> None:
    runner = LLMRunner(api_key=None, runner=lambda request: "ok")
    assert not runner.has_credentials
    with pytest.raises(MissingCredentialsError):
        runner.require_credentials()


def test_anthropic_runner_returns_text_blocks(monkeypatch) -> None:  # type: ignore[no-untyped-def]
    response = SimpleNamespace(
        content=[
            SimpleNamespace(type="text", text="## Enhanced\n"),
            SimpleNamespace(type="tool_use", text=None),
        ]
    )
    client = _install_client(monkeypatch, response)
    runner = LLMRunner("claude-test", api_key="sk-ant-api03-test", request_timeout=5.0)

    assert runner.run("prompt", system="role") == "## Enhanced"
    assert client.calls[0]["model"] == "claude-test"
    assert client.calls[0]["system"] == "role"
    assert client.calls[0]["messages"] == [{"role": "user", "content": "prompt"}]
    assert client.constructed["max_retries"] == 0  # type: ignore[attr-defined]


def test_anthropic_runner_maps_rate_limit(monkeypatch) -> None:  # type: ignore[no-untyped-def]
    _install_client(monkeypatch, _status_error(anthropic.RateLimitError, 429))
    runner = LLMRunner(api_key="sk-ant-api03-test")
    with pytest.raises(RateLimitError):
        runner.run("prompt")


def test_anthropic_runner_maps_authentication_error(monkeypatch) -> None:  # type: ignore[no-untyped-def]
    _install_client(monkeypatch, _status_error(anthropic.AuthenticationError, 401))
    runner = LLMRunner(api_key="sk-ant-api03-test")
    with pytest.raises(LLMAuthenticationError):
        runner.run("prompt")


def test_anthropic_runner_maps_other_status_errors(monkeypatch) -> None:  # type: ignore[no-untyped-def]
    _install_client(monkeypatch, _status_error(anthropic.InternalServerError, 500))
    runner = LLMRunner(api_key="sk-ant-api03-test")
    with pytest.raises(LLMError) as excinfo:
        runner.run("prompt")
    assert not isinstance(excinfo.value, RateLimitError)


def test_anthropic_runner_rejects_empty_response(monkeypatch) -> None:  # type: ignore[no-untyped-def]
    _install_client(monkeypatch, SimpleNamespace(content=[]))
    runner = LLMRunner(api_key="sk-ant-api03-test")
    with pytest.raises(LLMError):
        runner.run("prompt")


def test_check_api_key_flags_placeholders_and_format() -> None:
    with pytest.raises(MissingCredentialsError):
        check_api_key(None)
    with pytest.raises(ConfigError):
        check_api_key("your-key-here-please-replace")
    with pytest.raises(ConfigError):
        check_api_key("short")
    assert check_api_key("sk-ant-api03-" + "x" * 40) == []
    warnings = check_api_key("sk-other-" + "x" * 40)
    assert len(warnings) == 1
    assert "sk-ant-api03-" in warnings[0]
