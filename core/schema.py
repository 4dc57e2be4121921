"""
Structured-output contract for generated studies.

The same schema is sent to the model as the response format and used to
validate what comes back. Hints are written in Portuguese because they double
as generation instructions.
"""

from __future__ import annotations

import copy
import json
import logging
import re

from pydantic import ValidationError

from core.models import StudyContent

logger = logging.getLogger(__name__)


class SchemaError(ValueError):
    """Raised when a response is not a complete StudyContent payload."""


#: Fields that must be present and non-empty after parsing.
REQUIRED_FIELDS: tuple[str, ...] = (
    "title",
    "introduction",
    "key_verses",
    "sermon_body",
    "illustration_prompts",
    "hymns",
    "conclusion",
)

_STUDY_SCHEMA: dict = {
    "type": "object",
    "properties": {
        "title": {
            "type": "string",
            "description": "Um título criativo e espiritual para o sermão.",
        },
        "theme": {
            "type": "string",
            "description": "O tema central em poucas palavras.",
        },
        "introduction": {
            "type": "string",
            "description": "Uma introdução envolvente para o sermão que capte a atenção.",
        },
        "key_verses": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "reference": {"type": "string", "description": "Ex: João 3:16"},
                    "text": {
                        "type": "string",
                        "description": "O texto bíblico completo na versão Almeida.",
                    },
                },
                "required": ["reference", "text"],
                "additionalProperties": False,
            },
            "description": "3 a 5 versículos chave para o estudo bíblico.",
        },
        "sermon_body": {
            "type": "string",
            "description": (
                "O TEXTO COMPLETO da pregação (não apenas esboço). Escreva o sermão "
                "inteiro, parágrafo por parágrafo, com retórica oral, pronto para ser "
                "lido ou pregado no púlpito. Use Markdown para estruturar."
            ),
        },
        "illustration_prompts": {
            "type": "array",
            "items": {"type": "string"},
            "description": (
                "3 descrições visuais detalhadas e artísticas de cenas bíblicas ou "
                "metafóricas relacionadas ao tema para gerar imagens (Prompt em Inglês)."
            ),
        },
        "practical_application": {
            "type": "string",
            "description": "Como aplicar este estudo na vida moderna (3 pontos práticos).",
        },
        "conclusion": {
            "type": "string",
            "description": "Uma conclusão inspiradora e um apelo final ao coração (chamado).",
        },
        "hymns": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "title": {"type": "string", "description": "Título do hino"},
                    "number": {
                        "type": "string",
                        "description": "Número no Hinário Adventista do Sétimo Dia",
                    },
                    "reason": {
                        "type": "string",
                        "description": "Breve razão teológica da escolha.",
                    },
                },
                "required": ["title", "reason"],
                "additionalProperties": False,
            },
            "description": (
                "Sugestão de 3 hinos específicos do Hinário Adventista do Sétimo Dia (HASD)."
            ),
        },
    },
    "required": list(REQUIRED_FIELDS),
    "additionalProperties": False,
}

_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


def describe() -> dict:
    """Return a copy of the JSON schema for a StudyContent response."""
    return copy.deepcopy(_STUDY_SCHEMA)


def _is_empty(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, dict)):
        return len(value) == 0
    return False


def parse(raw: str) -> StudyContent:
    """Decode *raw* model output into a validated StudyContent.

    Args:
        raw: The response text, expected to be a JSON object. A surrounding
            Markdown code fence is tolerated.

    Returns:
        The parsed StudyContent.

    Raises:
        SchemaError: If the text is not a JSON object, a required field is
            missing or empty, or a field has the wrong shape.
    """
    text = (raw or "").strip()
    fenced = _FENCE.match(text)
    if fenced:
        text = fenced.group(1)

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise SchemaError(f"Response is not valid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise SchemaError(f"Expected a JSON object, got {type(data).__name__}")

    missing = [name for name in REQUIRED_FIELDS if _is_empty(data.get(name))]
    if missing:
        raise SchemaError(f"Missing or empty required fields: {', '.join(missing)}")

    # Optional string fields may come back as null.
    for name in ("theme", "practical_application"):
        if data.get(name) is None:
            data.pop(name, None)

    try:
        return StudyContent.model_validate(data)
    except ValidationError as exc:
        raise SchemaError(f"Response does not match the study schema: {exc}") from exc
