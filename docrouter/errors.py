"""Error hierarchy and error handling helpers for docrouter"""

import logging
import time
import functools
from typing import Optional, Callable, Any

import requests


class RouterError(Exception):
    """Base exception for docrouter errors"""

    def __init__(self, message: str, recovery_suggestion: Optional[str] = None,
                 original_error: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.recovery_suggestion = recovery_suggestion
        self.original_error = original_error

    def __str__(self) -> str:
        result = self.message
        if self.recovery_suggestion:
            result += f"\n💡 Suggestion: {self.recovery_suggestion}"
        return result


class ConfigurationError(RouterError):
    """Configuration-related errors, fatal to a routing call"""
    pass


class TemplateNotFoundError(ConfigurationError):
    """Requested folder template is not registered"""

    def __init__(self, template: str, known_templates: Optional[list] = None):
        known = ", ".join(known_templates or [])
        message = f"Unknown folder template: {template!r}"
        recovery_suggestion = f"Use one of the registered templates: {known}" if known else None
        super().__init__(message, recovery_suggestion)
        self.template = template


class StorageError(RouterError):
    """Persistence write failures"""
    pass


class AIBackendError(RouterError):
    """AI backend (proxy or provider) errors"""

    def __init__(self, message: str, model: Optional[str] = None,
                 status_code: Optional[int] = None, original_error: Optional[Exception] = None,
                 recovery_suggestion: Optional[str] = None):
        if recovery_suggestion is None:
            recovery_suggestion = self._get_recovery_suggestion(status_code)
        super().__init__(message, recovery_suggestion, original_error)
        self.model = model
        self.status_code = status_code

    def _get_recovery_suggestion(self, status_code: Optional[int]) -> str:
        if status_code in (400, 401, 403):
            return "Check the configured AI API key and model."
        elif status_code == 429:
            return "Rate limit exceeded. Wait a moment and try again."
        elif status_code and 500 <= status_code < 600:
            return "AI service error. Try again later or use a different model."
        else:
            return "Check that the routing backend is reachable."


class RetryableError(RouterError):
    """Base class for errors that can be retried"""
    pass


class TransientAPIError(RetryableError, AIBackendError):
    """Transient API errors that can be retried"""
    pass


class TransientNetworkError(RetryableError):
    """Transient network errors that can be retried"""
    pass


def retry_on_failure(
    max_retries: int = 3,
    delay: float = 1.0,
    backoff_factor: float = 2.0,
    exceptions: tuple = (TransientAPIError, TransientNetworkError),
    logger: Optional[logging.Logger] = None
):
    """
    Decorator to retry function calls on specific exceptions

    Args:
        max_retries: Maximum number of retry attempts
        delay: Initial delay between retries in seconds
        backoff_factor: Factor to multiply delay by after each retry
        exceptions: Tuple of exception types to retry on
        logger: Logger instance for retry messages
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            current_delay = delay
            last_exception = None

            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    last_exception = e
                    if attempt == max_retries:
                        break

                    if logger:
                        logger.warning(
                            f"Attempt {attempt + 1}/{max_retries + 1} failed for {func.__name__}: {e}. "
                            f"Retrying in {current_delay:.1f}s..."
                        )

                    time.sleep(current_delay)
                    current_delay *= backoff_factor

            if logger:
                logger.error(f"All {max_retries + 1} attempts failed for {func.__name__}")
            raise last_exception

        return wrapper
    return decorator


def _error_message(response) -> Optional[str]:
    """Pull the ``message`` field out of a JSON error body"""
    try:
        data = response.json()
    except ValueError:
        return None
    if isinstance(data, dict):
        message = data.get("message")
        if not message and isinstance(data.get("error"), dict):
            message = data["error"].get("message")
        return message
    return None


def raise_for_backend_status(response, model: Optional[str] = None) -> None:
    """Raise the matching backend error for a non-2xx response"""
    status_code = response.status_code
    if 200 <= status_code < 300:
        return

    message = _error_message(response) or f"API Error: {status_code}"
    if status_code in (429, 502, 503, 504):
        raise TransientAPIError(message, model=model, status_code=status_code)
    raise AIBackendError(message, model=model, status_code=status_code)


def handle_api_errors(func: Callable) -> Callable:
    """Decorator translating ``requests`` exceptions into backend errors"""
    @functools.wraps(func)
    def wrapper(*args, **kwargs) -> Any:
        try:
            return func(*args, **kwargs)
        except requests.exceptions.Timeout as e:
            raise TransientAPIError(
                "AI request timed out",
                original_error=e
            )
        except requests.exceptions.ConnectionError as e:
            raise TransientNetworkError(
                "Network connection failed",
                "Check that the routing backend is running and reachable.",
                e
            )
        except requests.exceptions.RequestException as e:
            response = getattr(e, "response", None)
            if response is not None:
                raise AIBackendError(
                    f"API request failed (HTTP {response.status_code})",
                    status_code=response.status_code,
                    original_error=e
                )
            raise AIBackendError(
                f"API request failed: {str(e)}",
                original_error=e
            )

    return wrapper


class ErrorHandler:
    """Centralized error reporting"""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def handle_error(self, error: Exception, context: str = "") -> None:
        """Log errors with appropriate level and formatting"""
        if isinstance(error, RouterError):
            self.logger.error(f"{context}: {error.message}")
            if error.recovery_suggestion:
                self.logger.info(f"Recovery suggestion: {error.recovery_suggestion}")
            if error.original_error:
                self.logger.debug(f"Original error: {error.original_error}", exc_info=True)
        else:
            self.logger.error(f"{context}: Unexpected error: {error}", exc_info=True)

    def handle_warning(self, message: str, context: str = "") -> None:
        """Log warnings"""
        self.logger.warning(f"{context}: {message}")
