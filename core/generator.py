"""
Study and illustration generation for BibliaAI.

Flow
────
1. GenerationClient.request_content(topic)
     → builds the theologian instruction for the topic
     → one structured-output call constrained by core.schema.describe()
     → decodes the reply with core.schema.parse()

2. GenerationClient.request_illustration(prompt)
     → prefixes the fixed artistic style, asks for a 16:9 image
     → returns the first inline image as a data URI, or None

All vendor traffic goes through a GenerationCapability so tests can swap in a
fake. The production capability uses Claude for text and Gemini for images.
"""

from __future__ import annotations

import base64
import logging
from typing import TYPE_CHECKING, NamedTuple, Optional, Protocol

import anthropic
from google import genai
from google.genai import types

from core import schema
from core.models import GeneratedImage, StudyContent
from core.schema import SchemaError

if TYPE_CHECKING:
    from config.settings import Settings

logger = logging.getLogger(__name__)


class GenerationError(RuntimeError):
    """The study could not be generated (transport, quota or bad response)."""


class ImagePayload(NamedTuple):
    """An inline image returned by the image capability."""

    mime_type: str
    data: str  # base64


class GenerationCapability(Protocol):
    """External generative backend consumed by GenerationClient."""

    async def generate_structured(self, instruction: str, schema: dict, system: str) -> str:
        ...

    async def generate_image(self, prompt: str, aspect_ratio: str) -> Optional[ImagePayload]:
        ...


# ── Prompts ────────────────────────────────────────────────────────────────

SYSTEM_INSTRUCTION = (
    "Você é um mentor espiritual adventista, focado na Bíblia, na graça e na "
    "esperança do advento."
)

#: Prepended to every illustration prompt.
ILLUSTRATION_STYLE = (
    "Biblical art style, oil painting, dramatic lighting, detailed, spiritual, "
    "masterpiece, 8k resolution: "
)
ILLUSTRATION_ASPECT_RATIO = "16:9"

_INSTRUCTION_TEMPLATE = """\
Atue como um teólogo experiente e orador da Igreja Adventista do Sétimo Dia.

TAREFA:
Crie um conteúdo completo baseado na descrição/tema: "{topic}".

O conteúdo deve ser dividido em duas partes principais:
1. ESTUDO BÍBLICO: Versículos chave e base teológica sólida.
2. PREGAÇÃO INTEIRA: Um sermão textual completo (não apenas tópicos), escrito com eloquência, emoção e profundidade, pronto para ser pregado.

DIRETRIZES:
- Use a versão da Bíblia João Ferreira de Almeida.
- O tom deve ser solene, esperançoso e Cristo-cêntrico.
- PREGAÇÃO: Desenvolva a introdução, o desenvolvimento (pontos 1, 2, 3) e a conclusão de forma fluida e textual.
- HINOS: Selecione hinos clássicos do Hinário Adventista que existam no YouTube.
- IMAGENS: Crie prompts artísticos para ilustrar o sermão, escritos em inglês. Todo o restante do conteúdo deve estar em português.
"""


def build_instruction(topic: str) -> str:
    """Return the natural-language generation instruction for *topic*."""
    return _INSTRUCTION_TEMPLATE.format(topic=topic)


# ── Production capability ──────────────────────────────────────────────────


class AnthropicGeminiCapability:
    """Claude for structured text, Gemini for images.

    SDK clients are built per call and closed before returning. Their
    connection pools belong to the event loop that created them, and the web
    layer runs each request on its own loop.
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def _text_client(self) -> anthropic.AsyncAnthropic:
        # No retries here; a failed generation is resubmitted by the user.
        return anthropic.AsyncAnthropic(
            api_key=self.settings.anthropic_api_key,
            max_retries=0,
        )

    async def generate_structured(self, instruction: str, schema: dict, system: str) -> str:
        async with self._text_client() as client:
            response = await client.messages.create(
                model=self.settings.content_model,
                max_tokens=8000,
                system=system,
                messages=[{"role": "user", "content": instruction}],
                output_config={"format": {"type": "json_schema", "schema": schema}},
            )
        return "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )

    async def generate_image(self, prompt: str, aspect_ratio: str) -> Optional[ImagePayload]:
        if not self.settings.illustrations_enabled:
            logger.warning("GEMINI_API_KEY not set; skipping illustration")
            return None

        client = genai.Client(api_key=self.settings.gemini_api_key)
        try:
            response = await client.aio.models.generate_content(
                model=self.settings.image_model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    image_config=types.ImageConfig(aspect_ratio=aspect_ratio),
                ),
            )
        finally:
            await client.aio.aclose()

        candidates = response.candidates or []
        if not candidates or candidates[0].content is None:
            return None
        for part in candidates[0].content.parts or []:
            inline = part.inline_data
            if inline is not None and inline.data:
                return ImagePayload(
                    mime_type=inline.mime_type or "image/png",
                    data=base64.b64encode(inline.data).decode("ascii"),
                )
        return None


# ── Client ─────────────────────────────────────────────────────────────────


class GenerationClient:
    """Builds generation requests and decodes their results.

    This is the only place that talks to a GenerationCapability.
    """

    def __init__(self, capability: GenerationCapability) -> None:
        self.capability = capability

    async def request_content(self, topic: str) -> StudyContent:
        """Generate a full study + sermon for *topic*.

        Args:
            topic: Free-text theme or Bible passage. Callers reject blank input.

        Returns:
            A validated StudyContent.

        Raises:
            GenerationError: If the call fails or the reply does not parse.
        """
        try:
            raw = await self.capability.generate_structured(
                build_instruction(topic), schema.describe(), SYSTEM_INSTRUCTION
            )
        except Exception as exc:
            logger.exception("Study generation failed for topic=%r", topic)
            raise GenerationError(f"Generation request failed: {exc}") from exc

        if not raw:
            raise GenerationError("No text response received")

        try:
            content = schema.parse(raw)
        except SchemaError as exc:
            logger.warning("Unusable study response for topic=%r: %s", topic, exc)
            raise GenerationError(str(exc)) from exc

        logger.info("Generated study %r for topic=%r", content.title, topic)
        return content

    async def request_illustration(self, prompt: str) -> Optional[GeneratedImage]:
        """Generate one illustration for *prompt*.

        Returns:
            A GeneratedImage with a ``data:`` URI, or None when the capability
            answered without an image. Transport errors propagate.
        """
        payload = await self.capability.generate_image(
            ILLUSTRATION_STYLE + prompt, ILLUSTRATION_ASPECT_RATIO
        )
        if payload is None:
            return None
        return GeneratedImage(
            url=f"data:{payload.mime_type};base64,{payload.data}",
            prompt=prompt,
        )
