"""Prompt builder for LLM-backed intent and entity extraction."""

from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import dataclass

from scoped_nl2sql.extract.base import ExtractionError
from scoped_nl2sql.models.template import ParameterType, Template


@dataclass(frozen=True)
class PromptBundle:
    """Inspectable prompt bundle used by the extraction adapter."""

    question: str
    vocabulary_json: str
    output_contract_json: str
    system_prompt: str
    user_prompt: str


_OUTPUT_CONTRACT = {
    "type": "object",
    "required": ["intent_tags", "entities"],
    "properties": {
        "intent_tags": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Intent tags chosen from the vocabulary.",
        },
        "entities": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["name", "value"],
                "properties": {
                    "name": {
                        "type": "string",
                        "description": "Parameter name from the vocabulary.",
                    },
                    "value": {"description": "Value exactly as stated by the user."},
                    "type_hint": {
                        "type": ["string", "null"],
                        "enum": [item.value for item in ParameterType] + [None],
                    },
                    "confidence": {
                        "type": ["number", "null"],
                        "minimum": 0,
                        "maximum": 1,
                        "description": "How sure you are that the value answers this parameter.",
                    },
                },
            },
        },
    },
}


def _vocabulary(templates: Sequence[Template]) -> dict[str, object]:
    tags: set[str] = set()
    parameters: dict[str, str] = {}
    for template in templates:
        tags |= template.intent_tags
        for definition in template.parameter_defs:
            parameters.setdefault(definition.name, definition.type.value)
    return {
        "intent_tags": sorted(tags),
        "parameters": dict(sorted(parameters.items())),
    }


def build_extraction_prompt(
    question: str,
    templates: Sequence[Template],
) -> PromptBundle:
    """Build deterministic prompts constrained to the template vocabulary."""
    normalized_question = question.strip()
    if not normalized_question:
        raise ExtractionError("Question cannot be empty.")

    vocabulary_json = json.dumps(_vocabulary(templates), indent=2, sort_keys=True)
    output_contract_json = json.dumps(_OUTPUT_CONTRACT, indent=2, sort_keys=True)

    system_prompt = (
        "You classify database questions. "
        "Output JSON only and follow the response contract exactly. "
        "Never write SQL."
    )

    user_prompt = (
        "Task: Identify the intent tags and named values in the question.\n"
        "Constraints:\n"
        "- Use only intent tags and parameter names from the vocabulary.\n"
        "- Copy values verbatim; do not invent values that are not stated.\n"
        "- Omit entities you are unsure about; give a confidence for the rest.\n\n"
        f"Question:\n{normalized_question}\n\n"
        f"Vocabulary:\n{vocabulary_json}\n\n"
        f"Response contract (JSON Schema-like):\n{output_contract_json}\n\n"
        "Return only a JSON object matching the contract."
    )

    return PromptBundle(
        question=normalized_question,
        vocabulary_json=vocabulary_json,
        output_contract_json=output_contract_json,
        system_prompt=system_prompt,
        user_prompt=user_prompt,
    )
