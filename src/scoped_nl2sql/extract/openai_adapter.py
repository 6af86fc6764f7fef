"""OpenAI implementation of the intent extractor interface."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any
from urllib import error, request

from pydantic import ValidationError

from scoped_nl2sql.extract.base import ExtractionError, ExtractionResult, IntentExtractor
from scoped_nl2sql.extract.prompts import PromptBundle, build_extraction_prompt
from scoped_nl2sql.models.template import Template


@dataclass(frozen=True)
class OpenAIIntentExtractor(IntentExtractor):
    """Tag questions with the OpenAI Chat Completions API.

    The model only sees the catalog vocabulary (intent tags and parameter
    names) and must answer with an ``ExtractionResult`` JSON object. It never
    writes SQL; anything outside the contract is an ``ExtractionError``.
    """

    api_key: str
    model: str
    templates: tuple[Template, ...] = ()
    base_url: str = "https://api.openai.com/v1"
    timeout_seconds: int = 30

    def extract(self, text: str) -> ExtractionResult:
        prompt = build_extraction_prompt(text, self.templates)
        completion = self._post_completion(self._completion_request(prompt))
        return self.parse_content(self._extract_message_content(completion))

    def _completion_request(self, prompt: PromptBundle) -> request.Request:
        messages = [
            {"role": "system", "content": prompt.system_prompt},
            {"role": "user", "content": prompt.user_prompt},
        ]
        payload = {
            "model": self.model,
            "temperature": 0,
            "messages": messages,
            "response_format": {"type": "json_object"},
        }
        return request.Request(
            f"{self.base_url.rstrip('/')}/chat/completions",
            data=json.dumps(payload).encode("utf-8"),
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            method="POST",
        )

    def _post_completion(self, req: request.Request) -> dict[str, Any]:
        try:
            with request.urlopen(req, timeout=self.timeout_seconds) as response:
                raw = response.read()
        except error.HTTPError as exc:
            body = exc.read().decode("utf-8", errors="replace")
            raise ExtractionError(
                f"Extraction request to {self.model} failed with HTTP {exc.code}: {body}"
            ) from exc
        except error.URLError as exc:
            raise ExtractionError(f"Extraction request failed: {exc.reason}") from exc
        except TimeoutError as exc:
            raise ExtractionError(
                f"Extraction request timed out after {self.timeout_seconds}s."
            ) from exc

        try:
            completion = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ExtractionError("Chat completion response was not valid JSON.") from exc
        if not isinstance(completion, dict):
            raise ExtractionError("Chat completion response must be a JSON object.")
        return completion

    @staticmethod
    def parse_content(content: str) -> ExtractionResult:
        """Validate the model's JSON message against the extraction contract."""
        try:
            return ExtractionResult.model_validate_json(content)
        except ValidationError as exc:
            if any(item["type"] == "json_invalid" for item in exc.errors()):
                raise ExtractionError("Model reply was not valid JSON.") from exc
            raise ExtractionError(
                f"Model reply violated the extraction output contract: {exc}"
            ) from exc

    @staticmethod
    def _extract_message_content(completion: dict[str, Any]) -> str:
        choices = completion.get("choices")
        first = choices[0] if isinstance(choices, list) and choices else None
        if not isinstance(first, dict):
            raise ExtractionError("Chat completion response is missing choices.")

        message = first.get("message")
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str) or not content.strip():
            raise ExtractionError("Chat completion message content is empty.")
        return content
