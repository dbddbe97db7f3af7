"""Tests for the LLM wrapper and AI call tracking."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from lawfirm.services import mlflow_service
from lawfirm.services.llm_service import MAX_TOKENS, LLMService


def completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


@pytest.fixture
def live_service():
    """An LLMService wired to a fake OpenAI client."""
    service = LLMService()
    service._use_mock = False
    service._client = MagicMock()
    service._client.chat.completions.create = AsyncMock()
    return service


class TestMockMode:

    async def test_mock_json_is_task_shaped(self):
        service = LLMService()
        assert service.mock is True
        payload = await service.generate_json("text", "system", "gpt-4o", task="key_terms")
        assert payload == {"terms": ["Agreement", "Term", "Termination"]}

    async def test_mock_text_echoes_prompt(self):
        response = await LLMService().generate("Summarize this", "system", "gpt-4o")
        assert response.startswith("[MOCK LLM RESPONSE] Summarize this")


class TestProvider:

    async def test_json_mode_request(self, live_service):
        live_service._client.chat.completions.create.return_value = completion('{"intent": "greeting"}')

        payload = await live_service.generate_json("hi", "system", "gpt-4o-mini", task="intent")

        assert payload == {"intent": "greeting"}
        kwargs = live_service._client.chat.completions.create.call_args.kwargs
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["temperature"] == 0.1
        assert kwargs["max_tokens"] == MAX_TOKENS
        assert kwargs["messages"][0] == {"role": "system", "content": "system"}

    async def test_invalid_json(self, live_service):
        live_service._client.chat.completions.create.return_value = completion("not json")
        with pytest.raises(RuntimeError, match="invalid JSON"):
            await live_service.generate_json("hi", "system", "gpt-4o-mini", task="intent")

    async def test_non_object_json(self, live_service):
        live_service._client.chat.completions.create.return_value = completion('["greeting"]')
        with pytest.raises(RuntimeError, match="invalid JSON"):
            await live_service.generate_json("hi", "system", "gpt-4o-mini", task="intent")

    async def test_provider_error(self, live_service):
        live_service._client.chat.completions.create.side_effect = ConnectionError("timeout")
        with pytest.raises(RuntimeError, match="LLM generation failed"):
            await live_service.generate("hi", "system", "gpt-4o-mini", task="chat")

    async def test_every_call_tracked(self, live_service):
        live_service._client.chat.completions.create.return_value = completion("Hello")
        with patch("lawfirm.services.llm_service.track_llm_call") as track:
            await live_service.generate("hi", "system", "gpt-4o-mini", task="chat", organization_id="org-1")

        kwargs = track.call_args.kwargs
        assert kwargs["task"] == "chat"
        assert kwargs["organization_id"] == "org-1"
        assert kwargs["mock"] is False


class TestTracking:

    def test_disabled_without_tracking_uri(self):
        assert mlflow_service.track_llm_call("chat", "gpt-4o", "p", "r", 1.0) is None

    def test_run_logged(self):
        fake = MagicMock()
        fake.start_run.return_value.__enter__.return_value.info.run_id = "run-1"

        with patch.object(mlflow_service, "_get_mlflow", return_value=fake):
            run_id = mlflow_service.track_llm_call(
                "risks", "gpt-4o", "x" * 40, "y" * 8, 12.5, organization_id="org-1", mock=False
            )

        assert run_id == "run-1"
        fake.start_run.assert_called_once_with(run_name="risks")
        metrics = fake.log_metrics.call_args.args[0]
        assert metrics["approx_tokens_in"] == 10
        assert metrics["latency_ms"] == 12.5
        assert fake.log_params.call_args.args[0]["model"] == "gpt-4o"

    def test_tracking_failure_is_swallowed(self):
        fake = MagicMock()
        fake.start_run.side_effect = ConnectionError("tracking server down")
        with patch.object(mlflow_service, "_get_mlflow", return_value=fake):
            assert mlflow_service.track_llm_call("chat", "gpt-4o", "p", "r", 1.0) is None
