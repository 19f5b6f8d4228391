"""Optional LLM critique of classification results."""

from __future__ import annotations

import json
import os
import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Dict, List

from amount_cli.shared.config import LLMSettings
from amount_cli.shared.exceptions import LLMClientError
from amount_cli.shared.logging import Logger, get_logger
from amount_cli.shared.utils import format_amount

from .types import ClassifiedAmount

try:  # Optional dependency
    from openai import OpenAI  # type: ignore
except ModuleNotFoundError:  # pragma: no cover - dependency optional at runtime
    OpenAI = None  # type: ignore

_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")

SYSTEM_PROMPT = (
    "You are an expert at analyzing medical bills and receipts. "
    "Validate the extracted amounts and their classifications."
)


@dataclass(slots=True)
class LLMValidation:
    """Verdict returned by the LLM for one classification run."""

    valid: bool
    issues: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)
    raw_response: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "issues": list(self.issues),
            "suggestions": list(self.suggestions),
        }


class LLMValidator:
    """Thin wrapper around the configured LLM provider."""

    def __init__(self, settings: LLMSettings, logger: Logger | None = None) -> None:
        self._settings = settings
        self._logger = logger or get_logger()
        self._model = settings.model
        self._provider = settings.provider.lower()
        self._client = self._bootstrap_client() if settings.enabled else None

    @property
    def enabled(self) -> bool:
        return self._settings.enabled and self._client is not None

    def _bootstrap_client(self) -> Any | None:
        if self._provider != "openai":
            self._logger.warning(
                f"LLM provider '{self._provider}' is not supported; disabling LLM validation."
            )
            return None
        if OpenAI is None:
            self._logger.debug(
                "openai package is not installed. Install extras with "
                "'pip install amount-detect[llm]' to enable LLM validation."
            )
            return None
        api_key = os.environ.get(self._settings.api_key_env)
        if not api_key:
            self._logger.debug(
                f"Environment variable {self._settings.api_key_env} not set. Skipping LLM validation."
            )
            return None
        # A failed request is reported on the first attempt, never re-sent.
        return OpenAI(api_key=api_key, timeout=self._settings.timeout_seconds, max_retries=0)

    def build_prompt(self, text: str, amounts: Sequence[ClassifiedAmount | Mapping[str, Any]]) -> str:
        lines = []
        for amount in amounts:
            if isinstance(amount, Mapping):
                lines.append(f"- {amount['type']}: {format_amount(float(amount['value']))}")
            else:
                lines.append(f"- {amount.type}: {format_amount(amount.value)}")
        amounts_list = "\n".join(lines)
        return (
            "Analyze this bill/receipt text and validate the extracted amounts:\n\n"
            f"TEXT:\n{text}\n\n"
            f"EXTRACTED AMOUNTS:\n{amounts_list}\n\n"
            "Please validate:\n"
            "1. Are the amounts correctly identified?\n"
            "2. Are the classifications (total_bill, paid, due, etc.) accurate?\n"
            "3. Are there any missing amounts?\n"
            "4. Are there any logical inconsistencies?\n\n"
            "Respond in JSON format:\n"
            "{\n"
            '  "valid": true/false,\n'
            '  "issues": ["list of issues found"],\n'
            '  "suggestions": ["suggestions for corrections"]\n'
            "}"
        )

    def validate(
        self, text: str, amounts: Sequence[ClassifiedAmount | Mapping[str, Any]]
    ) -> LLMValidation:
        """Ask the LLM to critique classified amounts. Raises ``LLMClientError`` on failure."""

        if not self.enabled or self._client is None:
            raise LLMClientError("LLM validation is not enabled")

        try:
            self._logger.debug(f"LLM validation request for {len(amounts)} amounts")
            response = self._client.responses.create(  # type: ignore[attr-defined]
                model=self._model,
                input=self._build_messages(self.build_prompt(text, amounts)),
                temperature=0.3,
                max_output_tokens=500,
            )
        except Exception as exc:  # pragma: no cover - network/SDK errors
            raise LLMClientError(f"LLM request failed: {exc}") from exc

        raw_output = self._extract_text(response)
        self._logger.info("LLM validation completed")
        return self.parse_response(raw_output)

    def parse_response(self, raw_output: str) -> LLMValidation:
        cleaned = self._sanitize_llm_json(raw_output)
        match = _JSON_OBJECT_RE.search(cleaned)
        if not match:
            return LLMValidation(valid=True, raw_response=raw_output)

        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError as exc:
            preview = raw_output[:500].strip()
            self._logger.warning(
                f"LLM response was not valid JSON. Preview (first 500 chars): {preview or '<empty response>'}"
            )
            raise LLMClientError(f"LLM returned invalid JSON: {exc}") from exc

        if not isinstance(data, Mapping):
            raise LLMClientError("LLM response is not a JSON object")

        return LLMValidation(
            valid=bool(data.get("valid", False)),
            issues=_string_list(data.get("issues")),
            suggestions=_string_list(data.get("suggestions")),
        )

    def _build_messages(self, prompt: str) -> List[Dict[str, Any]]:
        return [
            {
                "role": "system",
                "content": [{"type": "input_text", "text": SYSTEM_PROMPT}],
            },
            {
                "role": "user",
                "content": [{"type": "input_text", "text": prompt}],
            },
        ]

    def _extract_text(self, response: Any) -> str:
        """Extract the text payload from the OpenAI Responses API reply."""

        output_text = getattr(response, "output_text", None)
        if output_text:
            if isinstance(output_text, list):
                return "".join(str(part) for part in output_text)
            if isinstance(output_text, str):
                return output_text

        try:
            return response.output[0].content[0].text  # type: ignore[index]
        except Exception as exc:  # pragma: no cover - SDK compatibility guard
            raise LLMClientError(f"Unexpected LLM response structure: {exc}") from exc

    def _sanitize_llm_json(self, raw: str) -> str:
        """Remove Markdown fences around JSON responses."""

        text = raw.strip()
        if text.startswith("```"):
            first_newline = text.find("\n")
            if first_newline != -1:
                remainder = text[first_newline + 1 :]
                closing = remainder.rfind("```")
                if closing != -1:
                    remainder = remainder[:closing]
                text = remainder.strip()
        return text


def _string_list(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value] if value.strip() else []
    if not isinstance(value, Iterable):
        return []
    return [str(item) for item in value if str(item).strip()]
