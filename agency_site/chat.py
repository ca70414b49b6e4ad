"""LLM completion proxy used by the chat endpoint."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import openai
from openai import AsyncOpenAI

from agency_site.config import DEFAULT_MODEL, PLACEHOLDER_OPENAI_KEY
from agency_site.personalities import build_conversation

MAX_TOKENS = 1000
TEMPERATURE = 0.7
EMPTY_RESPONSE = "No response generated."

logger = logging.getLogger(__name__)


class ChatProviderError(Exception):
    """Base class for failures of the hosted completion API."""


class ProviderNotConfigured(ChatProviderError):
    """Raised when no usable API key is configured."""


class ProviderRateLimited(ChatProviderError):
    """Raised when the provider reports throttling."""


@dataclass
class ChatCompletion:
    """Assistant reply and the provider-reported token usage."""

    response: str
    tokens_used: int


class ChatProxy:
    """Forward conversations to the hosted completion API with a persona prompt."""

    def __init__(
        self,
        api_key: Optional[str],
        model: str = DEFAULT_MODEL,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self._client = client

    @property
    def configured(self) -> bool:
        if self._client is not None:
            return True
        return bool(self.api_key) and self.api_key != PLACEHOLDER_OPENAI_KEY

    def _get_client(self) -> AsyncOpenAI:
        if not self.configured:
            raise ProviderNotConfigured("OpenAI API key not configured")
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.api_key)
        return self._client

    async def complete(
        self, messages: List[Dict[str, Any]], personality: Optional[str] = None
    ) -> ChatCompletion:
        """
        Send the conversation, prefixed with the persona instruction, to the provider.

        Args:
            messages: Conversation history as ``{"role", "content"}`` dictionaries
            personality: Optional persona slug

        Returns:
            ChatCompletion: Assistant reply and total tokens used

        Raises:
            ProviderNotConfigured: If no API key is configured
            ProviderRateLimited: If the provider throttles the request
            ChatProviderError: For any other provider failure
        """
        client = self._get_client()
        chat_messages = build_conversation(messages, personality)

        logger.debug(
            f"Forwarding {len(chat_messages)} messages to {self.model} "
            f"(personality={personality or 'default'})"
        )

        try:
            completion = await client.chat.completions.create(
                model=self.model,
                messages=chat_messages,  # type: ignore[arg-type]
                max_tokens=MAX_TOKENS,
                temperature=TEMPERATURE,
                stream=False,
            )
        except openai.RateLimitError as e:
            logger.error(f"OpenAI rate limit exceeded: {e}")
            raise ProviderRateLimited("OpenAI rate limit exceeded") from e
        except openai.APIError as e:
            logger.error(f"OpenAI API error: {e}")
            raise ChatProviderError("OpenAI request failed") from e

        content = None
        if completion.choices:
            content = completion.choices[0].message.content
        tokens_used = completion.usage.total_tokens if completion.usage else 0

        return ChatCompletion(response=content or EMPTY_RESPONSE, tokens_used=tokens_used)
