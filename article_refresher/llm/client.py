from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
import time
import logging

import httpx

from article_refresher.errors import ExhaustedRetries, TransportFailure
from article_refresher.ir import RewriteRequest, RewriteResult
from article_refresher.llm.prompts import SYSTEM_PROMPT, PROMPT_TEMPLATES

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://llm.professionalize.com/v1/chat/completions"


def delay(seconds: float = 2.0) -> None:
    """Quiet period between calls to stay under the service rate limit."""
    if seconds > 0:
        time.sleep(seconds)


@dataclass
class LLMConfig:
    """Configuration for the chat-completions rewrite service."""
    api_key: str
    api_url: str = DEFAULT_API_URL
    model: str = "gpt-oss"
    temperature: float = 0.7
    max_tokens: int = 1000
    max_retries: int = 3          # total attempts per rewrite
    timeout: float = 60.0         # seconds per HTTP request


class RewriteClient:
    """
    Calls an OpenAI-compatible chat-completions endpoint to rewrite one
    paragraph at a time. Knows nothing about documents.
    """

    def __init__(self, config: LLMConfig, http_client: Optional[httpx.Client] = None):
        self.config = config
        self._http = http_client

    @property
    def http(self) -> httpx.Client:
        """Lazy initialization of the HTTP client."""
        if self._http is None:
            self._http = httpx.Client(timeout=self.config.timeout)
        return self._http

    def close(self) -> None:
        if self._http is not None:
            self._http.close()
            self._http = None

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.config.api_key}",
        }

    def _payload(self, messages: List[Dict[str, str]]) -> Dict[str, Any]:
        return {
            "model": self.config.model,
            "messages": messages,
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
        }

    def _call_once(self, messages: List[Dict[str, str]]) -> str:
        """One HTTP round trip. Every failure surfaces as TransportFailure."""
        try:
            response = self.http.post(
                self.config.api_url,
                headers=self._headers(),
                json=self._payload(messages),
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise TransportFailure(f"{type(e).__name__}: {e}") from e

        if not response.is_success:
            raise TransportFailure(f"HTTP {response.status_code}: {response.text[:300]}")

        try:
            data = response.json()
        except ValueError as e:
            raise TransportFailure(f"Invalid JSON in response: {e}") from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            raise TransportFailure("Response has no choices[0].message.content")
        if not isinstance(content, str):
            raise TransportFailure("Response content is not text")
        return content

    def complete(self, messages: List[Dict[str, str]]) -> str:
        """
        Send messages with retries.

        Makes at most `max_retries` attempts, sleeping 2**attempt seconds after
        each failed attempt except the last. Raises ExhaustedRetries with the
        final error message.
        """
        attempts = max(1, self.config.max_retries)
        last_error = ""
        for attempt in range(1, attempts + 1):
            try:
                return self._call_once(messages)
            except TransportFailure as e:
                last_error = str(e)
                logger.warning(f"LLM API attempt {attempt} failed: {last_error}")
                if attempt == attempts:
                    break
                backoff = 2 ** attempt
                logger.info(f"Retrying in {backoff}s ({attempt}/{attempts})")
                time.sleep(backoff)
        raise ExhaustedRetries(attempts, last_error)

    def build_messages(self, text: str, title: str, platform: str, role: str) -> List[Dict[str, str]]:
        template = PROMPT_TEMPLATES[role]
        return [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": template.format(platform=platform, title=title, text=text)},
        ]

    def rewrite(self, request: RewriteRequest) -> RewriteResult:
        messages = self.build_messages(request.span.text, request.title, request.platform, request.role)
        rewritten = self.complete(messages).strip()
        return RewriteResult(request=request, rewritten=rewritten)

