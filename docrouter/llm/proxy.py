"""HTTP client for the AI routing proxy"""

import threading
from typing import Optional

import requests

from docrouter.config import AIBackendConfig
from docrouter.errors import AIBackendError, handle_api_errors, raise_for_backend_status
from docrouter.logging_setup import get_logger, log_performance


class AIProxyClient:
    """Talks to the web backend that forwards prompts to the AI provider

    The proxy receives ``{apiKey, prompt, model}`` and answers ``{content}``
    with the raw model text. Error responses carry a JSON ``message``.
    """

    def __init__(self, config: AIBackendConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.logger = get_logger(f"{__name__}.AIProxyClient")
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})
        self._slots = threading.BoundedSemaphore(config.max_concurrent_requests)

    @handle_api_errors
    def classify(self, prompt: str, api_key: str, model: str) -> str:
        """
        Send a routing prompt and return the raw model text

        Raises:
            AIBackendError: Non-2xx response or malformed body
            TransientAPIError: Timeout or rate limiting
            TransientNetworkError: Proxy unreachable
        """
        url = self.config.url_for(self.config.routing_endpoint)
        payload = {"apiKey": api_key, "prompt": prompt, "model": model}

        with self._slots:
            with log_performance(f"AI routing request ({model})", self.logger):
                response = self.session.post(url, json=payload, timeout=self.config.timeout)

        raise_for_backend_status(response, model)

        try:
            data = response.json()
        except ValueError as e:
            raise AIBackendError("AI proxy returned a non-JSON body", model=model, original_error=e)

        content = data.get("content") if isinstance(data, dict) else None
        if not isinstance(content, str):
            raise AIBackendError(
                "Invalid response format: no content",
                model=model,
                recovery_suggestion="This may be a temporary proxy issue. Try again."
            )

        self.logger.debug(f"Received response: {len(content)} characters")
        return content

    def resolve_environment_key(self) -> Optional[str]:
        """Server-held API key, None when the server has none or is unreachable"""
        url = self.config.url_for(self.config.env_key_endpoint)
        try:
            response = self.session.get(url, timeout=self.config.timeout)
            if not response.ok:
                return None
            data = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            self.logger.debug(f"No environment API key available: {e}")
            return None

        api_key = data.get("apiKey") if isinstance(data, dict) else None
        return api_key if isinstance(api_key, str) and api_key else None

    def test_connection(self, api_key: str, model: str) -> bool:
        """Check a credential against the proxy, True when the provider accepts it"""
        url = self.config.url_for(self.config.test_endpoint)
        try:
            response = self.session.post(
                url, json={"apiKey": api_key, "model": model}, timeout=self.config.timeout
            )
        except requests.exceptions.RequestException as e:
            self.logger.warning(f"AI connection test failed: {e}")
            return False

        if not response.ok:
            try:
                message = response.json().get("message")
            except (ValueError, AttributeError):
                message = None
            self.logger.warning(f"AI connection test failed (HTTP {response.status_code}): {message}")
            return False

        self.logger.info("AI connection test successful")
        return True
