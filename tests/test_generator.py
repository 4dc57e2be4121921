"""
Tests for core/generator.py

Vendor SDKs are never called; a FakeCapability or mocked SDK clients stand in.

Run with: pytest tests/test_generator.py
"""

from __future__ import annotations

import asyncio
import base64
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from core.generator import (
    ILLUSTRATION_ASPECT_RATIO,
    ILLUSTRATION_STYLE,
    SYSTEM_INSTRUCTION,
    AnthropicGeminiCapability,
    GenerationClient,
    GenerationError,
    ImagePayload,
    build_instruction,
)
from core.models import StudyContent

from conftest import PNG, FakeCapability


def make_settings(**overrides):
    """Return a minimal Settings-like object for testing."""
    settings = MagicMock()
    settings.anthropic_api_key = "test-key"
    settings.gemini_api_key = "gemini-key"
    settings.illustrations_enabled = True
    settings.content_model = "claude-sonnet-4-5"
    settings.image_model = "gemini-2.5-flash-image"
    for k, v in overrides.items():
        setattr(settings, k, v)
    return settings


class TestBuildInstruction:
    def test_embeds_topic(self):
        assert '"A Graça"' in build_instruction("A Graça")

    def test_persona_and_bible_version(self):
        text = build_instruction("Daniel 2")
        assert "Igreja Adventista do Sétimo Dia" in text
        assert "Almeida" in text

    def test_illustration_prompts_in_english(self):
        assert "escritos em inglês" in build_instruction("Daniel 2")


class TestRequestContent:
    def test_returns_parsed_study(self, study_json):
        capability = FakeCapability(payload=study_json)
        content = asyncio.run(GenerationClient(capability).request_content("A Graça"))

        assert isinstance(content, StudyContent)
        assert content.title == "A Graça que Transforma"

    def test_sends_schema_and_system(self, study_json):
        capability = FakeCapability(payload=study_json)
        asyncio.run(GenerationClient(capability).request_content("A Graça"))

        instruction, schema, system = capability.structured_calls[0]
        assert "A Graça" in instruction
        assert "sermon_body" in schema["required"]
        assert system == SYSTEM_INSTRUCTION

    def test_transport_error_wrapped(self):
        capability = FakeCapability(error=ConnectionError("network down"))
        with pytest.raises(GenerationError, match="network down") as info:
            asyncio.run(GenerationClient(capability).request_content("A Graça"))
        assert isinstance(info.value.__cause__, ConnectionError)

    def test_empty_response_wrapped(self):
        capability = FakeCapability(payload="")
        with pytest.raises(GenerationError, match="No text"):
            asyncio.run(GenerationClient(capability).request_content("A Graça"))

    def test_schema_failure_wrapped(self):
        capability = FakeCapability(payload='{"title": "Só o título"}')
        with pytest.raises(GenerationError, match="introduction"):
            asyncio.run(GenerationClient(capability).request_content("A Graça"))

    def test_no_retry(self):
        capability = FakeCapability(error=TimeoutError("slow"))
        with pytest.raises(GenerationError):
            asyncio.run(GenerationClient(capability).request_content("A Graça"))
        assert len(capability.structured_calls) == 1


class TestRequestIllustration:
    def test_returns_data_uri(self):
        capability = FakeCapability(images={"a dove": PNG})
        image = asyncio.run(GenerationClient(capability).request_illustration("a dove"))

        assert image.url == "data:image/png;base64,iVBORw0KGgo="
        assert image.prompt == "a dove"

    def test_prefixes_style_and_aspect_ratio(self):
        capability = FakeCapability(images={"a dove": PNG})
        asyncio.run(GenerationClient(capability).request_illustration("a dove"))

        assert capability.image_calls == [(ILLUSTRATION_STYLE + "a dove", ILLUSTRATION_ASPECT_RATIO)]
        assert ILLUSTRATION_ASPECT_RATIO == "16:9"

    def test_no_image_returns_none(self):
        capability = FakeCapability(images={})
        assert asyncio.run(GenerationClient(capability).request_illustration("x")) is None

    def test_transport_error_propagates(self):
        capability = FakeCapability(images={"x": RuntimeError("quota")})
        with pytest.raises(RuntimeError, match="quota"):
            asyncio.run(GenerationClient(capability).request_illustration("x"))


# ── Production capability (mocked SDKs) ────────────────────────────────────────


def make_anthropic_client(response) -> MagicMock:
    client = MagicMock()
    client.messages.create = AsyncMock(return_value=response)
    client.__aenter__.return_value = client
    client.__aexit__.return_value = False
    return client


def make_genai_client(response) -> MagicMock:
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock(return_value=response)
    client.aio.aclose = AsyncMock()
    return client


def image_response(*parts) -> SimpleNamespace:
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=list(parts)))])


class TestAnthropicGeminiCapability:
    @patch("core.generator.anthropic.AsyncAnthropic")
    def test_generate_structured_joins_text_blocks(self, mock_cls):
        response = MagicMock()
        response.content = [
            SimpleNamespace(type="text", text='{"a": '),
            SimpleNamespace(type="text", text="1}"),
        ]
        mock_client = make_anthropic_client(response)
        mock_cls.return_value = mock_client

        capability = AnthropicGeminiCapability(make_settings())
        raw = asyncio.run(capability.generate_structured("do it", {"type": "object"}, "sys"))

        assert raw == '{"a": 1}'
        kwargs = mock_client.messages.create.call_args.kwargs
        assert kwargs["model"] == "claude-sonnet-4-5"
        assert kwargs["system"] == "sys"
        assert kwargs["output_config"]["format"]["schema"] == {"type": "object"}
        assert mock_cls.call_args.kwargs["max_retries"] == 0
        mock_client.__aexit__.assert_awaited_once()

    @patch("core.generator.anthropic.AsyncAnthropic")
    def test_each_call_gets_its_own_client(self, mock_cls):
        response = MagicMock()
        response.content = [SimpleNamespace(type="text", text="{}")]
        mock_cls.side_effect = lambda **kwargs: make_anthropic_client(response)

        capability = AnthropicGeminiCapability(make_settings())
        asyncio.run(capability.generate_structured("one", {}, "sys"))
        asyncio.run(capability.generate_structured("two", {}, "sys"))

        assert mock_cls.call_count == 2

    @patch("core.generator.genai.Client")
    def test_generate_image_returns_first_inline_part(self, mock_cls):
        text_part = SimpleNamespace(inline_data=None, text="here you go")
        image_part = SimpleNamespace(
            inline_data=SimpleNamespace(mime_type="image/jpeg", data=b"\xff\xd8jpeg")
        )
        mock_client = make_genai_client(image_response(text_part, image_part))
        mock_cls.return_value = mock_client

        capability = AnthropicGeminiCapability(make_settings())
        payload = asyncio.run(capability.generate_image("a dove", "16:9"))

        assert payload == ImagePayload("image/jpeg", base64.b64encode(b"\xff\xd8jpeg").decode())
        kwargs = mock_client.aio.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "gemini-2.5-flash-image"
        assert kwargs["config"].image_config.aspect_ratio == "16:9"
        mock_client.aio.aclose.assert_awaited_once()

    @patch("core.generator.genai.Client")
    def test_generate_image_closes_client_on_error(self, mock_cls):
        mock_client = make_genai_client(None)
        mock_client.aio.models.generate_content = AsyncMock(side_effect=RuntimeError("quota"))
        mock_cls.return_value = mock_client

        capability = AnthropicGeminiCapability(make_settings())
        with pytest.raises(RuntimeError, match="quota"):
            asyncio.run(capability.generate_image("a dove", "16:9"))
        mock_client.aio.aclose.assert_awaited_once()

    @patch("core.generator.genai.Client")
    def test_generate_image_without_image_part(self, mock_cls):
        mock_cls.return_value = make_genai_client(image_response(SimpleNamespace(inline_data=None)))

        capability = AnthropicGeminiCapability(make_settings())
        assert asyncio.run(capability.generate_image("a dove", "16:9")) is None

    @patch("core.generator.genai.Client")
    def test_generate_image_disabled_without_key(self, mock_cls):
        capability = AnthropicGeminiCapability(make_settings(illustrations_enabled=False))
        assert asyncio.run(capability.generate_image("a dove", "16:9")) is None
        mock_cls.assert_not_called()
