"""Direct AI provider backend (Anthropic Messages API or DeepSeek)"""

import os
import threading
from typing import Dict, Any, Optional, Tuple

import requests

from docrouter.config import AIBackendConfig
from docrouter.errors import (
    AIBackendError, TransientAPIError, TransientNetworkError,
    handle_api_errors, raise_for_backend_status, retry_on_failure
)
from docrouter.logging_setup import get_logger, log_performance
from docrouter.models import DEFAULT_MODEL

ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"
DEEPSEEK_URL = "https://api.deepseek.com/v1/chat/completions"
DEEPSEEK_DEFAULT_MODEL = "deepseek-reasoner"

ENVIRONMENT_KEY_VARIABLES = ("ANTHROPIC_API_KEY", "CLAUDE_API_KEY", "AI_API_KEY")

TEST_MAX_TOKENS = 10


def is_deepseek(api_key: str, model: Optional[str]) -> bool:
    """DeepSeek when the model says so or the key is a non-Anthropic ``sk-`` key"""
    if model and "deepseek" in model:
        return True
    return api_key.startswith("sk-") and not api_key.startswith("sk-ant-")


class DirectProviderBackend:
    """Calls the AI provider without the web proxy

    Same contract as AIProxyClient: ``classify`` returns raw model text,
    ``resolve_environment_key`` reads the server-side variables and
    ``test_connection`` sends a tiny request.
    """

    def __init__(self, config: AIBackendConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.logger = get_logger(f"{__name__}.DirectProviderBackend")
        self.session = session or requests.Session()
        self._slots = threading.BoundedSemaphore(config.max_concurrent_requests)
        self._send = retry_on_failure(
            max_retries=config.max_retries,
            delay=1.0,
            exceptions=(TransientAPIError, TransientNetworkError),
            logger=self.logger,
        )(self._make_request)

    def classify(self, prompt: str, api_key: str, model: str) -> str:
        if not api_key:
            raise AIBackendError("API Key mancante", status_code=400)
        with self._slots:
            with log_performance(f"AI provider request ({model})", self.logger):
                return self._send(prompt, api_key, model, self.config.max_tokens)

    def resolve_environment_key(self) -> Optional[str]:
        for name in ENVIRONMENT_KEY_VARIABLES:
            value = os.environ.get(name)
            if value:
                self.logger.debug(f"Using API key from {name}")
                return value
        return None

    def test_connection(self, api_key: str, model: str) -> bool:
        try:
            self._make_request("test", api_key, model, TEST_MAX_TOKENS)
            self.logger.info("AI connection test successful")
            return True
        except (AIBackendError, TransientNetworkError) as e:
            self.logger.warning(f"AI connection test failed: {e.message}")
            return False

    def _build_request(self, prompt: str, api_key: str, model: str,
                       max_tokens: int) -> Tuple[str, Dict[str, str], Dict[str, Any]]:
        messages = [{"role": "user", "content": prompt}]
        if is_deepseek(api_key, model):
            headers = {
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            }
            body = {
                "model": model or DEEPSEEK_DEFAULT_MODEL,
                "messages": messages,
                "max_tokens": max_tokens,
            }
            return DEEPSEEK_URL, headers, body

        headers = {
            "x-api-key": api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "content-type": "application/json",
        }
        body = {
            "model": model if model and model.startswith("claude-") else DEFAULT_MODEL,
            "max_tokens": max_tokens,
            "messages": messages,
        }
        return ANTHROPIC_URL, headers, body

    @handle_api_errors
    def _make_request(self, prompt: str, api_key: str, model: str, max_tokens: int) -> str:
        url, headers, body = self._build_request(prompt, api_key, model, max_tokens)
        self.logger.debug(f"Sending {len(prompt)} character prompt to {url}")

        response = self.session.post(url, json=body, headers=headers, timeout=self.config.timeout)
        raise_for_backend_status(response, body["model"])

        try:
            data = response.json()
        except ValueError as e:
            raise AIBackendError("Provider returned a non-JSON body", model=body["model"], original_error=e)

        content = self._extract_content(data)
        if content is None:
            raise AIBackendError("Invalid response format: no content", model=body["model"])
        return content

    @staticmethod
    def _extract_content(data) -> Optional[str]:
        if not isinstance(data, dict):
            return None
        # Anthropic: {"content": [{"type": "text", "text": ...}]}
        blocks = data.get("content")
        if isinstance(blocks, list):
            texts = [b.get("text") for b in blocks if isinstance(b, dict) and b.get("type") == "text"]
            if not texts or not all(isinstance(text, str) for text in texts):
                return None
            return "".join(texts)
        # OpenAI-compatible: {"choices": [{"message": {"content": ...}}]}
        choices = data.get("choices")
        if isinstance(choices, list) and choices:
            message = choices[0].get("message") if isinstance(choices[0], dict) else None
            if not isinstance(message, dict):
                return None
            content = message.get("content")
            return content if isinstance(content, str) else None
        return None
