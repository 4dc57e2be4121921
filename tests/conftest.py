"""Shared fixtures: a canned study payload and a fake generation backend."""

from __future__ import annotations

import json
from typing import Optional

import pytest

from core.generator import ILLUSTRATION_STYLE, ImagePayload


def make_study_dict(**overrides) -> dict:
    data = {
        "title": "A Graça que Transforma",
        "theme": "Graça Salvadora",
        "introduction": "Imagine um presente que você jamais poderia comprar.",
        "key_verses": [
            {"reference": "Efésios 2:8", "text": "Porque pela graça sois salvos, por meio da fé."},
            {"reference": "Romanos 3:24", "text": "Sendo justificados gratuitamente pela sua graça."},
            {"reference": "Tito 2:11", "text": "Porque a graça de Deus se há manifestado."},
            {"reference": "João 1:17", "text": "A graça e a verdade vieram por Jesus Cristo."},
        ],
        "sermon_body": "## I. A graça nos encontra\n\nIrmãos, a graça não espera...",
        "illustration_prompts": [
            "A prodigal son embraced by his father at sunset",
            "Light breaking through storm clouds over Calvary",
            "An open ancient scroll on a wooden table",
        ],
        "practical_application": "1. Perdoe. 2. Sirva. 3. Agradeça.",
        "conclusion": "Hoje, aceite este presente.",
        "hymns": [
            {"title": "Graça Excelsa", "number": "208", "reason": "Celebra a graça imerecida."},
            {"title": "Rocha Eterna", "reason": "Cristo como refúgio."},
        ],
    }
    data.update(overrides)
    return data


class FakeCapability:
    """Stands in for the vendor SDKs.

    ``images`` maps a caller prompt (without the style prefix) to an
    ImagePayload, None, or an exception to raise.
    """

    def __init__(
        self,
        payload: Optional[str] = None,
        error: Optional[Exception] = None,
        images: Optional[dict] = None,
    ) -> None:
        self.payload = payload
        self.error = error
        self.images = images or {}
        self.structured_calls: list[tuple[str, dict, str]] = []
        self.image_calls: list[tuple[str, str]] = []

    async def generate_structured(self, instruction: str, schema: dict, system: str) -> str:
        self.structured_calls.append((instruction, schema, system))
        if self.error is not None:
            raise self.error
        return self.payload

    async def generate_image(self, prompt: str, aspect_ratio: str):
        self.image_calls.append((prompt, aspect_ratio))
        result = self.images.get(prompt[len(ILLUSTRATION_STYLE):])
        if isinstance(result, Exception):
            raise result
        return result


PNG = ImagePayload(mime_type="image/png", data="iVBORw0KGgo=")


@pytest.fixture
def study_dict() -> dict:
    return make_study_dict()


@pytest.fixture
def study_json(study_dict) -> str:
    return json.dumps(study_dict, ensure_ascii=False)
