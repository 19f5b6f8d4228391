from __future__ import annotations

from dataclasses import replace
from types import SimpleNamespace
from typing import Any

import pytest

from amount_cli.amount_classify import llm_client
from amount_cli.amount_classify.llm_client import LLMValidator
from amount_cli.amount_classify.types import ClassifiedAmount
from amount_cli.shared.config import LLMSettings, default_config
from amount_cli.shared.exceptions import LLMClientError

AMOUNTS = [
    ClassifiedAmount(type="total_bill", value=2000.0, source="text: 'Total: 2000'"),
    ClassifiedAmount(type="paid", value=1500.0, source="text: 'Paid: 1500'"),
]


class _FakeResponses:
    def __init__(self, reply: str | Exception) -> None:
        self.reply = reply
        self.calls: list[dict[str, Any]] = []

    def create(self, **kwargs: Any) -> SimpleNamespace:
        self.calls.append(kwargs)
        if isinstance(self.reply, Exception):
            raise self.reply
        return SimpleNamespace(output_text=self.reply)


def _settings(**overrides: Any) -> LLMSettings:
    return replace(default_config().llm, **overrides)


def _install_client(monkeypatch: pytest.MonkeyPatch, reply: str | Exception) -> dict[str, Any]:
    created: dict[str, Any] = {}

    class FakeOpenAI:
        def __init__(self, api_key: str, timeout: float, max_retries: int = 2) -> None:
            created["api_key"] = api_key
            created["timeout"] = timeout
            created["max_retries"] = max_retries
            self.responses = _FakeResponses(reply)
            created["responses"] = self.responses

    monkeypatch.setattr(llm_client, "OpenAI", FakeOpenAI)
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    return created


def test_validate_parses_fenced_json(monkeypatch: pytest.MonkeyPatch, logger) -> None:
    reply = '```json\n{"valid": false, "issues": ["Due is missing"], "suggestions": ["Look for Balance"]}\n```'
    created = _install_client(monkeypatch, reply)
    validator = LLMValidator(_settings(), logger)

    verdict = validator.validate("Total: 2000\nPaid: 1500", AMOUNTS)

    assert validator.enabled is True
    assert verdict.valid is False
    assert verdict.issues == ["Due is missing"]
    assert verdict.suggestions == ["Look for Balance"]
    assert created["api_key"] == "sk-test"
    assert created["timeout"] == 10.0

    call = created["responses"].calls[0]
    assert call["model"] == "gpt-4o-mini"
    assert call["temperature"] == 0.3
    assert call["max_output_tokens"] == 500
    prompt = call["input"][1]["content"][0]["text"]
    assert "- total_bill: 2000" in prompt
    assert "- paid: 1500" in prompt


def test_non_json_reply_counts_as_valid(monkeypatch: pytest.MonkeyPatch, logger) -> None:
    _install_client(monkeypatch, "Looks fine to me.")
    verdict = LLMValidator(_settings(), logger).validate("Total: 2000", AMOUNTS)

    assert verdict.valid is True
    assert verdict.issues == []
    assert verdict.raw_response == "Looks fine to me."


def test_broken_json_raises(monkeypatch: pytest.MonkeyPatch, logger) -> None:
    _install_client(monkeypatch, "{not: json}")
    with pytest.raises(LLMClientError, match="invalid JSON"):
        LLMValidator(_settings(), logger).validate("Total: 2000", AMOUNTS)


def test_request_failures_raise_without_retrying(monkeypatch: pytest.MonkeyPatch, logger) -> None:
    created = _install_client(monkeypatch, TimeoutError("timed out"))
    with pytest.raises(LLMClientError, match="timed out"):
        LLMValidator(_settings(), logger).validate("Total: 2000", AMOUNTS)

    assert created["max_retries"] == 0
    assert len(created["responses"].calls) == 1


def test_client_disables_sdk_retries(monkeypatch: pytest.MonkeyPatch, logger) -> None:
    created = _install_client(monkeypatch, "{}")
    LLMValidator(_settings(timeout_seconds=4.0), logger)

    assert created["max_retries"] == 0
    assert created["timeout"] == 4.0


def test_missing_api_key_disables_validator(monkeypatch: pytest.MonkeyPatch, logger) -> None:
    _install_client(monkeypatch, "{}")
    monkeypatch.delenv("OPENAI_API_KEY")
    validator = LLMValidator(_settings(), logger)

    assert validator.enabled is False
    with pytest.raises(LLMClientError, match="not enabled"):
        validator.validate("Total: 2000", AMOUNTS)


def test_unsupported_provider_disables_validator(monkeypatch: pytest.MonkeyPatch, logger) -> None:
    _install_client(monkeypatch, "{}")
    assert LLMValidator(_settings(provider="anthropic"), logger).enabled is False


def test_disabled_settings_skip_client(monkeypatch: pytest.MonkeyPatch, logger) -> None:
    created = _install_client(monkeypatch, "{}")
    assert LLMValidator(_settings(enabled=False), logger).enabled is False
    assert created == {}


def test_build_prompt_accepts_mappings(logger) -> None:
    validator = LLMValidator(_settings(enabled=False), logger)
    prompt = validator.build_prompt("Due: 600", [{"type": "due", "value": 600.5}])
    assert "- due: 600.5" in prompt
    assert "TEXT:\nDue: 600" in prompt


def test_parse_response_coerces_scalar_lists(logger) -> None:
    validator = LLMValidator(_settings(enabled=False), logger)
    verdict = validator.parse_response('{"valid": true, "issues": "single issue", "suggestions": null}')
    assert verdict.to_dict() == {"valid": True, "issues": ["single issue"], "suggestions": []}
