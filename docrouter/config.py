"""Configuration management for docrouter"""

import json
import logging
from pathlib import Path
from typing import Any, Optional, List
from dataclasses import dataclass, asdict
from urllib.parse import urlparse

from docrouter.templates.registry import TEMPLATE_NAMES


class ConfigValidationError(Exception):
    """Raised when configuration validation fails"""
    pass


DEFAULT_CONFIG_PATH = Path.home() / ".docrouter" / "config.json"

KNOWN_BACKENDS = ("proxy", "direct")


@dataclass
class AIBackendConfig:
    """Where AI classification requests are sent"""
    backend: str = "proxy"
    proxy_url: str = "http://localhost:5000"
    routing_endpoint: str = "/api/ai-routing"
    test_endpoint: str = "/api/test-claude"
    env_key_endpoint: str = "/api/get-env-api-key"
    timeout: int = 30
    max_concurrent_requests: int = 3
    max_retries: int = 2
    max_tokens: int = 800

    def validate(self) -> List[str]:
        """Validate AI backend configuration"""
        errors = []

        if self.backend not in KNOWN_BACKENDS:
            errors.append(f"Invalid AI backend '{self.backend}'. Must be one of: {list(KNOWN_BACKENDS)}")

        parsed = urlparse(self.proxy_url)
        if not parsed.scheme or not parsed.netloc:
            errors.append(f"Invalid proxy URL format: {self.proxy_url}")

        for name in ("routing_endpoint", "test_endpoint", "env_key_endpoint"):
            if not getattr(self, name).startswith("/"):
                errors.append(f"{name} must start with '/'")

        if self.timeout <= 0:
            errors.append("Timeout must be positive")
        if self.max_concurrent_requests <= 0:
            errors.append("Max concurrent requests must be positive")
        if self.max_retries < 0:
            errors.append("Max retries cannot be negative")
        if self.max_tokens <= 0:
            errors.append("Max tokens must be positive")

        return errors

    def url_for(self, endpoint: str) -> str:
        """Join the proxy base URL with an endpoint path"""
        return self.proxy_url.rstrip("/") + endpoint


@dataclass
class AnalysisConfig:
    """File analysis limits"""
    preview_size_limit: int = 10000  # files at or above this size get no preview
    preview_chars: int = 500
    prompt_preview_chars: int = 200

    def validate(self) -> List[str]:
        errors = []
        if self.preview_size_limit <= 0:
            errors.append("Preview size limit must be positive")
        if self.preview_chars <= 0:
            errors.append("Preview length must be positive")
        if self.prompt_preview_chars < 0:
            errors.append("Prompt preview length cannot be negative")
        return errors


@dataclass
class RoutingConfig:
    """Routing decision settings"""
    default_template: str = "LUNGO"
    learned_threshold: float = 0.9

    def validate(self) -> List[str]:
        errors = []
        if not self.default_template:
            errors.append("Default template is required")
        if not 0.0 <= self.learned_threshold < 1.0:
            errors.append("Learned threshold must be in [0.0, 1.0)")
        return errors


@dataclass
class LoggingConfig:
    """Logging configuration"""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file_enabled: bool = True
    console_enabled: bool = False
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 5

    def validate(self) -> List[str]:
        """Validate logging configuration"""
        errors = []

        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.level.upper() not in valid_levels:
            errors.append(f"Invalid log level '{self.level}'. Must be one of: {valid_levels}")

        if self.max_file_size <= 0:
            errors.append("Max file size must be positive")

        if self.backup_count < 0:
            errors.append("Backup count cannot be negative")

        return errors


def _section(config_data: dict, name: str) -> dict:
    data = config_data.get(name, {})
    return data if isinstance(data, dict) else {}


@dataclass
class RouterConfig:
    """Main docrouter configuration"""
    ai: AIBackendConfig
    analysis: AnalysisConfig
    routing: RoutingConfig
    logging: LoggingConfig
    data_dir: str = "~/.docrouter"

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> 'RouterConfig':
        """Load configuration from file or create default"""
        if config_path is None:
            config_path = DEFAULT_CONFIG_PATH

        try:
            if config_path.exists():
                with open(config_path, 'r', encoding='utf-8') as f:
                    config_data = json.load(f)
                if not isinstance(config_data, dict):
                    raise ValueError("configuration root must be an object")

                return cls(
                    ai=AIBackendConfig(**_section(config_data, 'ai')),
                    analysis=AnalysisConfig(**_section(config_data, 'analysis')),
                    routing=RoutingConfig(**_section(config_data, 'routing')),
                    logging=LoggingConfig(**_section(config_data, 'logging')),
                    data_dir=config_data.get('data_dir', '~/.docrouter'),
                )
            else:
                return cls.create_default()
        except (json.JSONDecodeError, TypeError, ValueError) as e:
            logging.warning(f"Failed to load config from {config_path}: {e}")
            logging.info("Creating default configuration")
            return cls.create_default()

    @classmethod
    def create_default(cls) -> 'RouterConfig':
        """Create default configuration"""
        return cls(
            ai=AIBackendConfig(),
            analysis=AnalysisConfig(),
            routing=RoutingConfig(),
            logging=LoggingConfig()
        )

    def save(self, config_path: Optional[Path] = None) -> None:
        """Save configuration to file"""
        if config_path is None:
            config_path = DEFAULT_CONFIG_PATH

        try:
            config_path.parent.mkdir(parents=True, exist_ok=True)

            config_dict = {
                'ai': asdict(self.ai),
                'analysis': asdict(self.analysis),
                'routing': asdict(self.routing),
                'logging': asdict(self.logging),
                'data_dir': self.data_dir,
            }

            if config_path.exists():
                backup_path = config_path.with_suffix('.json.backup')
                config_path.replace(backup_path)

            with open(config_path, 'w', encoding='utf-8') as f:
                json.dump(config_dict, f, indent=2, ensure_ascii=False)

        except OSError as e:
            raise ConfigValidationError(f"Failed to save configuration: {e}")

    def validate(self) -> List[str]:
        """Validate entire configuration"""
        errors = []

        errors.extend(self.ai.validate())
        errors.extend(self.analysis.validate())
        errors.extend(self.routing.validate())
        errors.extend(self.logging.validate())

        if self.routing.default_template not in TEMPLATE_NAMES:
            errors.append(
                f"Unknown default template '{self.routing.default_template}'. "
                f"Must be one of: {list(TEMPLATE_NAMES)}"
            )

        return errors

    def validate_and_raise(self) -> None:
        """Validate configuration and raise exception if invalid"""
        errors = self.validate()
        if errors:
            raise ConfigValidationError("Configuration validation failed:\n" + "\n".join(f"- {error}" for error in errors))

    def update_setting(self, key_path: str, value: Any) -> None:
        """Update a configuration setting using dot notation"""
        keys = key_path.split('.')
        obj = self

        for key in keys[:-1]:
            if not hasattr(obj, key):
                raise ConfigValidationError(f"Invalid configuration path: {key_path}")
            obj = getattr(obj, key)

        final_key = keys[-1]
        if not hasattr(obj, final_key):
            raise ConfigValidationError(f"Invalid configuration key: {final_key}")

        # Type conversion based on current value type
        current_value = getattr(obj, final_key)
        try:
            if isinstance(current_value, bool):
                if isinstance(value, str):
                    value = value.lower() in ('true', '1', 'yes', 'on')
            elif isinstance(current_value, int):
                value = int(value)
            elif isinstance(current_value, float):
                value = float(value)
        except (TypeError, ValueError):
            raise ConfigValidationError(f"Invalid value for {key_path}: {value!r}")

        setattr(obj, final_key, value)

    def get_setting(self, key_path: str) -> Any:
        """Get a configuration setting using dot notation"""
        keys = key_path.split('.')
        obj = self

        for key in keys:
            if not hasattr(obj, key):
                raise ConfigValidationError(f"Invalid configuration path: {key_path}")
            obj = getattr(obj, key)

        return obj

    @property
    def data_path(self) -> Path:
        """Get expanded data directory path"""
        return Path(self.data_dir).expanduser()

    @property
    def patterns_path(self) -> Path:
        """Learned routing patterns file"""
        return self.data_path / "learned_patterns.json"

    @property
    def ai_config_path(self) -> Path:
        """Persisted AI credential blob"""
        return self.data_path / "ai_config"

    @property
    def logs_path(self) -> Path:
        """Get logs directory path"""
        return self.data_path / "logs"
