"""
Answer generator for QuranIQ.
Sends a composed prompt to the OpenAI chat API and maps provider failures to the app's error taxonomy.
"""

import json
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Optional

import openai
from openai import OpenAI

from .errors import (
    ConnectionFailure,
    EmptyOutput,
    RateLimited,
    UpstreamAuthFailure,
    UpstreamFailure,
)


logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_MAX_TOKENS = 1024
DEFAULT_TIMEOUT = 30.0


class AnswerGenerator:
    """Translation layer between a PromptPair and the provider's wire format."""

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        client: Optional[OpenAI] = None,
        api_key: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        log_dir: Optional[str] = None,
    ):
        """
        Initialize the answer generator.

        Args:
            model: OpenAI model to use
            client: Pre-built OpenAI client (created lazily when omitted)
            api_key: Provider key; falls back to OPENAI_API_KEY
            timeout: Seconds before the upstream call is abandoned
            log_dir: Directory for JSONL request/response logs
        """
        self.model = model
        self.timeout = timeout
        self._client = client
        self.api_key = api_key
        self.log_dir = Path(log_dir) if log_dir else None
        if self.log_dir:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            self.response_log_path = self.log_dir / "responses.jsonl"
        else:
            self.response_log_path = None

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            # One attempt per call: the SDK would otherwise retry 429s and timeouts itself.
            self._client = OpenAI(
                api_key=self.api_key or os.getenv("OPENAI_API_KEY"),
                timeout=self.timeout,
                max_retries=0,
            )
        return self._client

    def _write_jsonl(self, path: Optional[Path], payload: dict) -> None:
        if not path:
            return
        try:
            with path.open("a", encoding="utf-8") as f:
                f.write(json.dumps(payload, ensure_ascii=False, default=str) + "\n")
        except OSError as e:
            logger.warning("Failed to write log entry: %s", e)

    def _call(self, messages: list, max_tokens: int):
        try:
            return self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_completion_tokens=max_tokens,
                timeout=self.timeout,
            )
        except openai.RateLimitError as e:
            logger.warning("Provider rate limited the request: %s", e)
            raise RateLimited(str(e)) from e
        except (openai.AuthenticationError, openai.PermissionDeniedError) as e:
            logger.error("Provider rejected credentials for model %s: %s", self.model, e)
            raise UpstreamAuthFailure(str(e)) from e
        except openai.APIConnectionError as e:
            # Also covers APITimeoutError.
            logger.warning("Provider unreachable: %s", e)
            raise ConnectionFailure(str(e)) from e
        except openai.APIError as e:
            logger.error("Provider error: %s", e)
            raise UpstreamFailure(str(e)) from e
        except openai.OpenAIError as e:
            # Raised by the client itself, e.g. when no API key is configured.
            logger.error("Provider client misconfigured: %s", e)
            raise UpstreamAuthFailure(str(e)) from e

    def generate(
        self,
        system_instruction: str,
        user_instruction: str,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> str:
        """
        Generate an answer for a composed prompt.

        Args:
            system_instruction: Fixed response policy
            user_instruction: Question, verse context and conversation summary
            max_tokens: Completion token budget

        Returns:
            The model's raw answer text

        Raises:
            RateLimited, UpstreamAuthFailure, ConnectionFailure, UpstreamFailure, EmptyOutput
        """
        messages = [
            {"role": "system", "content": system_instruction},
            {"role": "user", "content": user_instruction},
        ]
        response = self._call(messages, max_tokens)

        content = ""
        if response.choices:
            content = response.choices[0].message.content or ""

        self._write_jsonl(self.response_log_path, {
            "timestamp": datetime.now().isoformat(),
            "model": self.model,
            "max_tokens": max_tokens,
            "user": user_instruction,
            "response": content,
        })

        if not content.strip():
            raise EmptyOutput("Empty response from model")
        return content

    def health_check(self) -> dict:
        """Make a minimal call to confirm the provider is reachable."""
        try:
            self._call([{"role": "user", "content": "test"}], max_tokens=10)
            return {"healthy": True, "model": self.model}
        except (RateLimited, UpstreamFailure, ConnectionFailure) as e:
            return {"healthy": False, "error": e.message}
