"""
Reasoner capability - prompt in, raw text out.

The engine only ever sees ``Reasoner.complete``; all prompt text lives in the
components that build it. The single implementation drives a Copilot SDK
session (anything exposing ``send_and_wait`` or ``send`` + ``get_messages``).
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional, Protocol, runtime_checkable

from ..config import get_settings
from ..exceptions import ReasonerError
from ..utils.logger import get_logger
from ..utils.token_counter import estimate_tokens, truncate_to_token_limit

logger = get_logger(__name__)


@runtime_checkable
class Reasoner(Protocol):
    """External reasoning service."""

    async def complete(self, prompt: str) -> str:
        """Return the raw completion text for ``prompt``."""
        ...


class CopilotSessionReasoner:
    """Reasoner backed by a Copilot SDK session."""

    def __init__(
        self,
        session: Any,
        timeout: Optional[int] = None,
        max_prompt_tokens: Optional[int] = None,
        poll_interval: float = 1.0,
    ):
        settings = get_settings().reasoner
        self.session = session
        self.timeout = timeout if timeout is not None else settings.timeout
        self.max_prompt_tokens = max_prompt_tokens if max_prompt_tokens is not None else settings.max_prompt_tokens
        self.poll_interval = poll_interval

    @classmethod
    async def from_client(cls, client: Any, model: Optional[str] = None, **kwargs: Any) -> CopilotSessionReasoner:
        """
        Open a session on a Copilot client and wrap it.

        Args:
            client: Started client exposing ``create_session(config)``.
            model: Model for the session; defaults to ``REASONER_MODEL``.
            **kwargs: Passed to the constructor (timeout, max_prompt_tokens).

        Raises:
            ReasonerError: If the session cannot be created.
        """
        model = model or get_settings().reasoner.model
        try:
            session = await client.create_session({"model": model})
        except Exception as e:
            raise ReasonerError(f"Failed to create session: {e}", {"model": model}) from e

        logger.info(f"[REASONER] Session created with model: {model}")
        return cls(session, **kwargs)

    async def complete(self, prompt: str) -> str:
        """
        Send one prompt and wait for the assistant reply.

        Raises:
            ReasonerError: On timeout, transport failure or an empty reply.
        """
        if estimate_tokens(prompt) > self.max_prompt_tokens:
            logger.warning(f"[REASONER] Prompt exceeds {self.max_prompt_tokens} tokens, truncating")
            prompt = truncate_to_token_limit(prompt, self.max_prompt_tokens)

        logger.info(f"[REASONER] Sending prompt ({len(prompt)} chars, timeout={self.timeout}s)")
        try:
            text = await asyncio.wait_for(self._send_to_session(prompt), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise ReasonerError(f"Timed out after {self.timeout}s", {"timeout": self.timeout}) from e
        except ReasonerError:
            raise
        except Exception as e:
            raise ReasonerError(str(e), {"exception": type(e).__name__}) from e

        if not text or not text.strip():
            raise ReasonerError("Empty response from session")

        logger.info(f"[REASONER] Received response ({len(text)} chars)")
        return text

    async def _send_to_session(self, prompt: str) -> str:
        message_options = {"prompt": prompt}

        if hasattr(self.session, "send_and_wait"):
            event = await self.session.send_and_wait(message_options, timeout=self.timeout)
            if event:
                return self._extract_from_event(event)
            logger.warning("[REASONER] send_and_wait returned None")
            return ""

        if hasattr(self.session, "send"):
            await self.session.send(message_options)
            return await self._wait_for_response()

        raise ReasonerError("Session exposes neither send_and_wait nor send")

    async def _wait_for_response(self) -> str:
        """Poll session messages for the latest assistant event."""
        while True:
            messages = self.session.get_messages()
            if asyncio.iscoroutine(messages):
                messages = await messages
            for message in reversed(messages or []):
                data = getattr(message, "data", None)
                if data is None:
                    continue
                role = getattr(data, "role", None)
                message_type = str(getattr(data, "message_type", "")).lower()
                if role == "assistant" or "assistant" in message_type:
                    return self._extract_from_event(message)
            await asyncio.sleep(self.poll_interval)

    def _extract_from_event(self, event: Any) -> str:
        """Extract text content from a session event."""
        data = getattr(event, "data", None)
        if data is not None:
            message = getattr(data, "message", None)
            if message is not None and getattr(message, "content", None) is not None:
                return str(message.content)
            for attribute in ("content", "text"):
                value = getattr(data, attribute, None)
                if value is not None:
                    return str(value)

        for attribute in ("content", "text"):
            value = getattr(event, attribute, None)
            if value is not None:
                return str(value)

        if isinstance(event, str):
            return event

        logger.warning(f"[REASONER] Unknown event format: {type(event).__name__}")
        return str(event)
