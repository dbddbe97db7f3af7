"""
services/llm_service.py
-----------------------
Chat-completion client used by the document analyzer and the portal
chatbot. Each call is timed and handed to mlflow_service for tracking.

Without OPENAI_API_KEY the service runs in mock mode and returns
deterministic, task-shaped payloads so the AI endpoints work end to end in
development and tests.
"""

import json
import time
from typing import Any, Dict, List

from lawfirm.core.config import settings
from lawfirm.core.logging import get_logger
from lawfirm.services.mlflow_service import track_llm_call

logger = get_logger(__name__)

TEMPERATURES = {
    "document_analysis": 0.3,
    "key_terms": 0.1,
    "risks": 0.3,
    "intent": 0.1,
    "chat": 0.7,
}
MAX_TOKENS = 2048


def as_list(value: Any) -> List[Any]:
    """A JSON field expected to hold an array; anything else reads as empty."""
    return value if isinstance(value, list) else []


class LLMService:

    def __init__(self) -> None:
        self._use_mock = not bool(settings.OPENAI_API_KEY)
        if not self._use_mock:
            import openai
            self._client = openai.AsyncOpenAI(api_key=settings.OPENAI_API_KEY)
        else:
            logger.info("LLMService in MOCK mode, set OPENAI_API_KEY for real LLM")

    @property
    def mock(self) -> bool:
        return self._use_mock

    async def generate(
        self,
        prompt: str,
        system_prompt: str,
        model: str,
        task: str = "completion",
        organization_id: str = "unknown",
    ) -> str:
        """Plain text completion, tracked in MLflow."""
        start = time.monotonic()

        if self._use_mock:
            response = self._mock_text(prompt)
        else:
            response = await self._openai_generate(prompt, system_prompt, model, task)

        self._track(task, model, prompt, response, start, organization_id)
        return response

    async def generate_json(
        self,
        prompt: str,
        system_prompt: str,
        model: str,
        task: str,
        organization_id: str = "unknown",
    ) -> Dict[str, Any]:
        """
        JSON completion. The model is asked for a JSON object and the parsed
        object is returned.

        Raises:
            RuntimeError: The provider failed or returned invalid JSON, or
                JSON that is not an object.
        """
        start = time.monotonic()

        if self._use_mock:
            payload = self._mock_json(task, prompt)
            response = json.dumps(payload)
        else:
            response = await self._openai_generate(
                prompt, system_prompt, model, task, json_mode=True
            )
            try:
                payload = json.loads(response)
            except json.JSONDecodeError as exc:
                logger.error("LLM returned invalid JSON", task=task, model=model)
                raise RuntimeError(f"LLM returned invalid JSON for {task}") from exc
            if not isinstance(payload, dict):
                logger.error("LLM returned a non-object JSON value", task=task, model=model)
                raise RuntimeError(f"LLM returned invalid JSON for {task}")

        self._track(task, model, prompt, response, start, organization_id)
        return payload

    def _track(
        self,
        task: str,
        model: str,
        prompt: str,
        response: str,
        start: float,
        organization_id: str,
    ) -> None:
        latency_ms = round((time.monotonic() - start) * 1000, 1)
        logger.info("LLM response generated", task=task, latency_ms=latency_ms, mock=self._use_mock)
        track_llm_call(
            task=task,
            model=model,
            prompt=prompt,
            response=response,
            latency_ms=latency_ms,
            organization_id=organization_id,
            mock=self._use_mock,
        )

    # ── Mock implementations ──────────────────────────────────────────────────

    def _mock_text(self, prompt: str) -> str:
        return (
            "[MOCK LLM RESPONSE] "
            f"{prompt[:100]}{'...' if len(prompt) > 100 else ''}"
        )

    def _mock_json(self, task: str, prompt: str) -> Dict[str, Any]:
        if task == "document_analysis":
            return {
                "summary": "[MOCK] Summary of the submitted document.",
                "keyTerms": ["Agreement", "Term", "Termination"],
                "importantDates": [],
                "parties": [],
                "risks": [{"level": "low", "description": "[MOCK] No material risks identified."}],
                "recommendations": ["Review with the responsible attorney."],
            }
        if task == "key_terms":
            return {"terms": ["Agreement", "Term", "Termination"]}
        if task == "risks":
            return {"risks": [{"level": "low", "description": "[MOCK] No material risks identified."}]}
        if task == "intent":
            return {"intent": "question", "confidence": 0.5, "entities": []}
        if task == "chat":
            return {
                "response": (
                    "[MOCK] Thank you for your message. Your legal team has been "
                    "notified and will follow up shortly."
                ),
                "suggestedActions": [],
            }
        return {}

    # ── OpenAI implementation ─────────────────────────────────────────────────

    async def _openai_generate(
        self,
        prompt: str,
        system_prompt: str,
        model: str,
        task: str,
        json_mode: bool = False,
    ) -> str:
        messages: List[Dict[str, str]] = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": prompt},
        ]
        extra: Dict[str, Any] = {}
        if json_mode:
            extra["response_format"] = {"type": "json_object"}
        try:
            completion = await self._client.chat.completions.create(
                model=model,
                messages=messages,
                max_tokens=MAX_TOKENS,
                temperature=TEMPERATURES.get(task, 0.3),
                **extra,
            )
            return completion.choices[0].message.content or ""
        except Exception as exc:
            logger.error("OpenAI API error", task=task, error=str(exc))
            raise RuntimeError(f"LLM generation failed: {exc}") from exc


# Singleton, shared across all requests
llm_service = LLMService()
