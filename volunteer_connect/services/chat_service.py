"""Chat proxy to the OpenAI chat-completions API.

Conversation history is owned by the client; nothing is persisted here.
"""

import logging
from typing import Any, Dict, List, Optional

import openai
from openai import AsyncOpenAI

from volunteer_connect.core.config import settings
from volunteer_connect.core.exceptions import UpstreamServiceError, ValidationError

logger = logging.getLogger("volunteer_connect.chat")

HISTORY_ROLES = ("user", "assistant")


def build_messages(message: str, history: Optional[List[Dict[str, Any]]] = None) -> List[Dict[str, str]]:
    """System message, then the most recent user/assistant turns, then the new message."""
    text = (message or "").strip()
    if not text:
        raise ValidationError("Message is required")
    messages = [{"role": "system", "content": settings.OPENAI_SYSTEM_MESSAGE}]
    turns = [
        {"role": h["role"], "content": str(h.get("content", ""))}
        for h in (history or [])
        if isinstance(h, dict) and h.get("role") in HISTORY_ROLES and h.get("content")
    ]
    messages.extend(turns[-settings.CHAT_HISTORY_LIMIT:])
    messages.append({"role": "user", "content": text})
    return messages


def map_provider_error(exc: Exception) -> UpstreamServiceError:
    """Translate an SDK exception into the status the API answers with."""
    code = getattr(exc, "code", None)
    if isinstance(exc, openai.AuthenticationError) or code == "invalid_api_key":
        return UpstreamServiceError("Invalid chat provider API key", 401)
    if code == "insufficient_quota":
        return UpstreamServiceError("Chat provider quota exceeded", 402)
    if isinstance(exc, openai.RateLimitError):
        return UpstreamServiceError("Chat provider rate limit exceeded, try again later", 429)
    if isinstance(exc, openai.BadRequestError):
        return UpstreamServiceError("Invalid request to chat provider", 400)
    if isinstance(exc, openai.APIConnectionError):
        # Includes APITimeoutError
        return UpstreamServiceError("Chat provider is unreachable", 503)
    if isinstance(exc, openai.APIStatusError) and exc.status_code >= 500:
        return UpstreamServiceError("Chat provider is unavailable", 503)
    return UpstreamServiceError("Failed to get a response from the chat provider", 500)


class ChatService:
    """Thin async wrapper over AsyncOpenAI."""

    def __init__(self):
        self._client: Optional[AsyncOpenAI] = None

    @property
    def is_configured(self) -> bool:
        return bool(settings.OPENAI_API_KEY)

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=settings.OPENAI_API_KEY,
                base_url=settings.OPENAI_BASE_URL or None,
                timeout=settings.OPENAI_TIMEOUT_SECONDS,
                max_retries=0,
            )
        return self._client

    async def chat_completion(
        self, messages: List[Dict[str, str]], options: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Returns ``{choices, usage, model}`` as plain dicts."""
        if not self.is_configured:
            raise UpstreamServiceError("AI chat is not configured", 503)
        options = options or {}
        try:
            completion = await self.client.chat.completions.create(
                model=options.get("model") or settings.OPENAI_MODEL,
                messages=messages,
                temperature=(
                    options["temperature"] if options.get("temperature") is not None
                    else settings.OPENAI_TEMPERATURE
                ),
                max_tokens=options.get("max_tokens") or settings.OPENAI_MAX_TOKENS,
            )
        except openai.OpenAIError as e:
            logger.error("Chat provider error: %s", e)
            raise map_provider_error(e)
        return {
            "choices": [c.model_dump() for c in completion.choices],
            "usage": completion.usage.model_dump() if completion.usage else None,
            "model": completion.model,
        }

    async def reply(
        self,
        message: str,
        history: Optional[List[Dict[str, Any]]] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        messages = build_messages(message, history)
        result = await self.chat_completion(messages, options)
        choices = result["choices"]
        content = ""
        if choices:
            content = (choices[0].get("message") or {}).get("content") or ""
        return {"message": content, "usage": result["usage"], "model": result["model"]}


chat_service = ChatService()
