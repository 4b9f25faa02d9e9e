from __future__ import annotations

"""Chat-completion providers and grounded answer generation."""

from dataclasses import dataclass, field
import logging
from typing import Protocol

import httpx


class GenerationError(RuntimeError):
    """Raised when LLM requests fail or responses are invalid."""
    pass


class GenerationConfigError(RuntimeError):
    """Raised when chat provider configuration is invalid."""
    pass


logger = logging.getLogger(__name__)


_SYSTEM_PROMPT = (
    "You are a friendly, knowledgeable assistant. "
    "Answer questions naturally and conversationally, as if talking to a friend. "
    "Use the information you are given to give accurate, helpful answers. "
    "Do not mention that you are consulting files or documents; "
    "simply answer with confidence based on what you know. "
    "When you include specific details such as prices, features or technical facts, "
    "weave them smoothly into the answer. "
    "If you do not have enough information to answer, say so kindly "
    "and suggest how else you could help."
)

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 500


def base_system_prompt() -> str:
    """Return the fixed system instruction for answer generation."""
    return _SYSTEM_PROMPT


def build_user_prompt(question: str, context: str) -> str:
    """Combine retrieved context and the question into the user prompt."""
    return (
        f"Available information:\n{context}\n\n"
        f"User question: {question}\n\n"
        "Answer naturally and conversationally."
    )


class ChatProvider(Protocol):
    """Protocol for chat-completion services."""
    model: str

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Return the model's reply to the prompts."""
        raise NotImplementedError


@dataclass(frozen=True)
class OpenAIChatClient:
    """Chat provider for OpenAI-compatible chat completions APIs."""
    api_key: str
    base_url: str
    model: str
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: int = DEFAULT_MAX_TOKENS
    timeout: float = 60.0
    transport: httpx.AsyncBaseTransport | None = field(default=None, repr=False)

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Request a chat completion."""
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    f"{self.base_url}/chat/completions",
                    json=payload,
                    headers=headers,
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as exc:
            raise GenerationError(str(exc) or type(exc).__name__) from exc
        except ValueError as exc:
            raise GenerationError("Chat response is not valid JSON") from exc

        choices = data.get("choices") if isinstance(data, dict) else None
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            raise GenerationError("Invalid chat completion response")
        message = choices[0].get("message")
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str):
            raise GenerationError("Invalid chat completion content")
        return content


@dataclass(frozen=True)
class OllamaChatClient:
    """Chat provider backed by the Ollama chat API."""
    base_url: str
    model: str
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: int = DEFAULT_MAX_TOKENS
    timeout: float = 60.0
    transport: httpx.AsyncBaseTransport | None = field(default=None, repr=False)

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Request a chat completion from Ollama."""
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "stream": False,
            "options": {
                "temperature": self.temperature,
                "num_predict": self.max_tokens,
            },
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(f"{self.base_url}/api/chat", json=payload)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as exc:
            raise GenerationError(str(exc) or type(exc).__name__) from exc
        except ValueError as exc:
            raise GenerationError("Ollama response is not valid JSON") from exc
        message = data.get("message") if isinstance(data, dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str):
            raise GenerationError("Invalid Ollama response")
        return content


async def generate(chat: ChatProvider, question: str, context: str) -> str:
    """Generate an answer for ``question`` grounded on ``context``.

    An empty context is still sent; the system instruction asks the model to
    say it lacks information.
    """
    answer = await chat.complete(base_system_prompt(), build_user_prompt(question, context))
    logger.info(
        "generation_complete",
        extra={
            "model": chat.model,
            "context_length": len(context),
            "answer_length": len(answer),
        },
    )
    return answer.strip()


def build_chat_client(
    provider: str,
    *,
    api_key: str | None,
    base_url: str,
    model: str | None,
    ollama_base_url: str,
    temperature: float = DEFAULT_TEMPERATURE,
    max_tokens: int = DEFAULT_MAX_TOKENS,
    timeout: float = 60.0,
) -> OpenAIChatClient | OllamaChatClient:
    """Factory for chat providers based on provider name."""
    normalized = provider.strip().lower()
    if not model:
        raise GenerationConfigError("RAG_CHAT_MODEL is required")
    if normalized == "openai":
        if not api_key:
            raise GenerationConfigError("AI_API_KEY is required for the openai chat provider")
        return OpenAIChatClient(
            api_key=api_key,
            base_url=base_url.rstrip("/"),
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
        )
    if normalized == "ollama":
        return OllamaChatClient(
            base_url=ollama_base_url.rstrip("/"),
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
        )
    raise GenerationConfigError(f"Unsupported chat provider: {provider}")
