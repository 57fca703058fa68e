"""
Tests for the Generation Oracle Client

Provider fallback and structured output parsing. Provider SDKs are patched;
no network calls are made.
"""

import json
from unittest.mock import MagicMock, patch

import pytest

from behaviorplan.ai.client import AIClient, extract_json_object, get_ai_client
from behaviorplan.core.exceptions import GenerationError, OracleError
from behaviorplan.core.schemas import CoherenceOutput, SectionRevisionOutput


class TestExtractJsonObject:
    def test_plain_object(self):
        assert extract_json_object('{"content": "x"}') == {"content": "x"}

    def test_code_fenced(self):
        text = '```json\n{"content": "x", "rationale": "y"}\n```'
        assert extract_json_object(text) == {"content": "x", "rationale": "y"}

    def test_surrounding_prose(self):
        assert extract_json_object('Here you go: {"a": 1} Hope this helps.') == {"a": 1}

    def test_no_object(self):
        with pytest.raises(GenerationError, match="did not contain a JSON object"):
            extract_json_object("I cannot help with that.")

    def test_invalid_json(self):
        with pytest.raises(GenerationError, match="not valid JSON"):
            extract_json_object("{content: x}")


class TestGenerate:
    """Structured generation on top of generate_completion."""

    @pytest.mark.asyncio
    async def test_returns_validated_schema(self):
        client = AIClient(anthropic_api_key="test-key")
        payload = json.dumps({"content": ["a", "b", "c"], "rationale": "Antecedent focus"})

        with patch.object(AIClient, "generate_completion", return_value=payload) as mock_gen:
            result = await client.generate("Revise it", SectionRevisionOutput)

        assert isinstance(result, SectionRevisionOutput)
        assert result.content == ["a", "b", "c"]

        kwargs = mock_gen.call_args.kwargs
        assert kwargs["messages"] == [{"role": "user", "content": "Revise it"}]
        assert "JSON schema" in kwargs["system"]

    @pytest.mark.asyncio
    async def test_all_providers_failed(self):
        client = AIClient()

        with patch.object(AIClient, "generate_completion", return_value=None):
            with pytest.raises(GenerationError, match="All AI providers failed"):
                await client.generate("prompt", SectionRevisionOutput)

    @pytest.mark.asyncio
    async def test_off_schema_output(self):
        client = AIClient(anthropic_api_key="test-key")
        payload = json.dumps({"replacement_behavior": {"coherent": True}})

        with patch.object(AIClient, "generate_completion", return_value=payload):
            with pytest.raises(GenerationError, match="did not match CoherenceOutput"):
                await client.generate("prompt", CoherenceOutput)

    @pytest.mark.asyncio
    async def test_generation_error_is_oracle_error(self):
        client = AIClient()

        with patch.object(AIClient, "generate_completion", return_value=None):
            with pytest.raises(OracleError):
                await client.generate("prompt", SectionRevisionOutput)


class TestProviderFallback:
    """Anthropic first, Grok second."""

    def _completion(self, client):
        return client.generate_completion(
            model="claude-sonnet-4-20250514",
            system="system",
            messages=[{"role": "user", "content": "hi"}],
        )

    def test_no_keys_returns_none(self):
        assert self._completion(AIClient()) is None

    def test_anthropic_success(self):
        client = AIClient(anthropic_api_key="a-key", grok_api_key="g-key")

        with (
            patch.object(AIClient, "_try_anthropic", return_value="from claude") as anthropic,
            patch.object(AIClient, "_try_grok") as grok,
        ):
            assert self._completion(client) == "from claude"

        anthropic.assert_called_once()
        grok.assert_not_called()

    def test_falls_back_to_grok(self):
        client = AIClient(anthropic_api_key="a-key", grok_api_key="g-key")

        with (
            patch.object(AIClient, "_try_anthropic", return_value=None),
            patch.object(AIClient, "_try_grok", return_value="from grok") as grok,
        ):
            assert self._completion(client) == "from grok"

        grok.assert_called_once()

    def test_anthropic_error_is_swallowed(self):
        client = AIClient(anthropic_api_key="a-key")

        with patch("anthropic.Anthropic") as mock_anthropic:
            mock_anthropic.return_value.messages.create.side_effect = RuntimeError("boom")
            assert self._completion(client) is None

    def test_anthropic_text_extracted(self):
        client = AIClient(anthropic_api_key="a-key")
        block = MagicMock()
        block.text = '{"ok": true}'

        with patch("anthropic.Anthropic") as mock_anthropic:
            mock_anthropic.return_value.messages.create.return_value = MagicMock(content=[block])
            assert self._completion(client) == '{"ok": true}'

            create_kwargs = mock_anthropic.return_value.messages.create.call_args.kwargs
            assert create_kwargs["system"] == "system"


def test_get_ai_client_from_settings(monkeypatch):
    from behaviorplan.config import settings

    monkeypatch.setattr(settings, "ANTHROPIC_API_KEY", "")
    monkeypatch.setattr(settings, "GROK_API_KEY", "g-key")

    client = get_ai_client()

    assert client.anthropic_api_key is None
    assert client.grok_api_key == "g-key"
    assert client.model == settings.AI_MODEL
