"""
LLM Service — model invocation capability.

Every stage talks to the model through ``LLMClient.chat(messages, options)``.
Provides:
  - GroqChatClient   → Groq Cloud via langchain-groq's ChatGroq
  - MockChatClient   → deterministic stand-in (mock mode and tests)
  - get_llm_client() → configured singleton
"""

from __future__ import annotations

import json
import logging
import time
from abc import ABC, abstractmethod
from typing import Any

from prd_automation.config import get_settings
from prd_automation.exceptions import InvocationError
from prd_automation.models.enums import ChatRole
from prd_automation.models.schemas import (
    ChatMessage,
    ChatOptions,
    ChatResponse,
    TokenUsage,
)
from prd_automation.services.completion_signal import extract_promise, wrap_phrase

logger = logging.getLogger(__name__)

_client_instance: LLMClient | None = None


class LLMClient(ABC):
    """Chat-completion capability consumed by the refinement loop."""

    @abstractmethod
    def chat(self, messages: list[ChatMessage], options: ChatOptions) -> ChatResponse:
        ...


# ── Groq ─────────────────────────────────────────────────


class GroqChatClient(LLMClient):
    """Chat client backed by langchain-groq."""

    def __init__(self, api_key: str | None = None, model: str | None = None):
        settings = get_settings()
        api_key = api_key or settings.groq_api_key
        if not api_key:
            raise ValueError("GROQ_API_KEY is not set in environment / .env file")

        from langchain_groq import ChatGroq

        self.model = model or settings.llm_model
        self._llm = ChatGroq(
            api_key=api_key,
            model=self.model,
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens,
        )
        logger.info(f"Initialized Groq LLM: {self.model}")

    def chat(self, messages: list[ChatMessage], options: ChatOptions) -> ChatResponse:
        from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

        converters = {
            ChatRole.SYSTEM: SystemMessage,
            ChatRole.USER: HumanMessage,
            ChatRole.ASSISTANT: AIMessage,
        }
        lc_messages = [converters[m.role](content=m.content) for m in messages]

        runnable: Any = self._llm
        if options.tools:
            runnable = runnable.bind_tools(options.tools)
        runnable = runnable.bind(
            temperature=options.temperature, max_tokens=options.max_tokens
        )

        prompt_chars = sum(len(m.content) for m in messages)
        logger.debug(f"[LLM] {len(messages)} messages, {prompt_chars} chars")

        t0 = time.perf_counter()
        try:
            response = runnable.invoke(lc_messages)
        except Exception as exc:
            raise InvocationError(f"Groq chat call failed: {exc}") from exc
        elapsed = time.perf_counter() - t0

        content = response.content
        if not isinstance(content, str):
            content = json.dumps(content)

        usage = None
        meta = getattr(response, "usage_metadata", None) or {}
        if meta:
            usage = TokenUsage(
                prompt_tokens=meta.get("input_tokens", 0),
                completion_tokens=meta.get("output_tokens", 0),
                total_tokens=meta.get("total_tokens", 0),
            )

        logger.info(
            f"[LLM] Response received in {elapsed:.2f}s | "
            f"Response length: {len(content)} chars | tokens={usage}"
        )
        logger.debug(f"[LLM] Full response:\n{content}")
        return ChatResponse(content=content, usage=usage)


# ── Mock ─────────────────────────────────────────────────

MOCK_REQUIREMENTS: list[dict[str, Any]] = [
    {
        "id": "req-1",
        "type": "functional",
        "description": "The system shall allow users to authenticate using email and password",
        "testCases": [],
    },
    {
        "id": "req-2",
        "type": "non-functional",
        "description": "The system shall respond to authentication requests within 2 seconds under normal load",
        "testCases": [],
    },
]

_MOCK_CASES: list[tuple[str, str, str, bool, list[str]]] = [
    ("tc-1", "req-1", "Verify user can login with valid email and password", True, ["unit", "integration"]),
    ("tc-2", "req-1", "Verify system rejects login with invalid password", False, ["unit", "security"]),
    ("tc-3", "req-2", "Verify authentication response time is under 2 seconds", True, ["performance", "integration"]),
    ("tc-4", "req-2", "Verify system fails when authentication takes more than 2 seconds", False, ["performance", "system"]),
]


def mock_test_cases(classified: bool = False) -> list[dict[str, Any]]:
    return [
        {
            "id": tc_id,
            "requirementId": req_id,
            "description": description,
            "isPositive": positive,
            "isNegative": not positive,
            "testTypes": list(types) if classified else [],
        }
        for tc_id, req_id, description, positive, types in _MOCK_CASES
    ]


class MockChatClient(LLMClient):
    """
    Deterministic stand-in for a real model.

    Picks a canned payload by the completion phrase found in the system
    message and always closes with that phrase in a promise tag.
    """

    def __init__(self, delay_seconds: float = 0.0):
        self.delay_seconds = delay_seconds
        self.calls: list[list[ChatMessage]] = []

    def chat(self, messages: list[ChatMessage], options: ChatOptions) -> ChatResponse:
        self.calls.append(list(messages))
        if self.delay_seconds:
            time.sleep(self.delay_seconds)

        system = next((m.content for m in messages if m.role == ChatRole.SYSTEM), "")
        phrase = extract_promise(system) or "COMPLETE"
        payload = self._payload_for(phrase)

        content = json.dumps(payload, indent=2) + "\n\n" + wrap_phrase(phrase)
        logger.debug(f"[MOCK-LLM] Responding to '{phrase}' ({len(content)} chars)")
        return ChatResponse(content=content)

    @staticmethod
    def _payload_for(phrase: str) -> Any:
        lowered = phrase.lower()
        if "requirements extracted" in lowered:
            return MOCK_REQUIREMENTS
        if "test cases generated" in lowered:
            return mock_test_cases()
        if "properly labeled" in lowered:
            return mock_test_cases()
        if "classified by type" in lowered:
            return mock_test_cases(classified=True)
        if "final review complete" in lowered:
            return {
                "requirements": MOCK_REQUIREMENTS,
                "testCases": mock_test_cases(classified=True),
            }
        return {"status": "complete"}


# ── Factory ──────────────────────────────────────────────


def get_llm_client() -> LLMClient:
    """Return the configured chat client (singleton)."""
    global _client_instance
    if _client_instance is not None:
        return _client_instance

    settings = get_settings()
    if settings.mock_mode:
        logger.info("[MOCK] Using deterministic mock chat client")
        _client_instance = MockChatClient()
    else:
        _client_instance = GroqChatClient()
    return _client_instance
