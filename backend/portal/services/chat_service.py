from typing import Any, Dict, List, Optional

import httpx
from anthropic import AsyncAnthropic, APIConnectionError, APIStatusError, APITimeoutError

from portal.core.config import settings
from portal.core.exceptions import BadRequestError, UpstreamError, UpstreamUnavailableError
from portal.core.logging_config import logger


class ChatService:
    """Passthrough to the LLM behind the portal assistant"""

    def __init__(self, client: Optional[AsyncAnthropic] = None):
        self._client = client

    def _get_client(self) -> AsyncAnthropic:
        if self._client is None:
            client_kwargs: Dict[str, Any] = {
                "api_key": settings.ANTHROPIC_API_KEY,
                "timeout": httpx.Timeout(60.0, connect=10.0),
            }
            if settings.ANTHROPIC_BASE_URL and settings.ANTHROPIC_BASE_URL.strip():
                client_kwargs["base_url"] = settings.ANTHROPIC_BASE_URL.strip()
            self._client = AsyncAnthropic(**client_kwargs)
        return self._client

    async def reply(self, messages: List[Dict[str, str]], context: Optional[str] = None) -> str:
        """
        Send the conversation and return the assistant's text.

        ``context`` is appended to the system prompt (e.g. the caller's
        current academic period).
        """
        if not settings.ANTHROPIC_API_KEY and self._client is None:
            raise BadRequestError("Chat assistant is not configured")

        system_prompt = settings.CHAT_SYSTEM_PROMPT
        if context:
            system_prompt = f"{system_prompt}\n\n{context}"

        logger.info(f"[Chat] model={settings.CHAT_MODEL}, messages={len(messages)}")
        try:
            response = await self._get_client().messages.create(
                model=settings.CHAT_MODEL,
                max_tokens=settings.CHAT_MAX_TOKENS,
                temperature=settings.CHAT_TEMPERATURE,
                system=system_prompt,
                messages=messages,
            )
        except (APIConnectionError, APITimeoutError) as e:
            logger.warning(f"[Chat] Network error: {type(e).__name__}: {e}")
            raise UpstreamUnavailableError("Chat assistant is unavailable") from e
        except APIStatusError as e:
            logger.warning(f"[Chat] API error {e.status_code}: {e.message}")
            raise UpstreamError(e.status_code, "Chat assistant rejected the request") from e

        return "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )


# Singleton instance
chat_service = ChatService()
