"""Logging setup and configuration for docrouter"""

import logging
import logging.handlers
import sys
import time
from typing import Optional
from docrouter.config import RouterConfig, LoggingConfig


class ColoredFormatter(logging.Formatter):
    """Colored formatter for console output"""

    # ANSI color codes
    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
        'RESET': '\033[0m'        # Reset
    }

    def format(self, record):
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.COLORS['RESET']}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


def setup_logging(config: Optional[RouterConfig] = None) -> logging.Logger:
    """
    Setup logging configuration based on router config

    Args:
        config: Router configuration object. If None, loads default config.

    Returns:
        Configured logger instance
    """
    if config is None:
        config = RouterConfig.load()

    logging_config = config.logging

    logger = logging.getLogger('docrouter')
    logger.setLevel(getattr(logging, logging_config.level.upper()))

    logger.handlers.clear()

    if logging_config.file_enabled:
        _setup_file_logging(logger, config, logging_config)

    if logging_config.console_enabled:
        _setup_console_logging(logger, logging_config)

    # Prevent propagation to root logger to avoid duplicate messages
    logger.propagate = False

    return logger


def _setup_file_logging(logger: logging.Logger, config: RouterConfig, logging_config: LoggingConfig):
    """Setup file logging with rotation"""
    logs_dir = config.logs_path
    logs_dir.mkdir(parents=True, exist_ok=True)

    file_handler = logging.handlers.RotatingFileHandler(
        logs_dir / "docrouter.log",
        maxBytes=logging_config.max_file_size,
        backupCount=logging_config.backup_count,
        encoding='utf-8'
    )
    file_handler.setFormatter(logging.Formatter(logging_config.format))
    file_handler.setLevel(getattr(logging, logging_config.level.upper()))
    logger.addHandler(file_handler)

    # Separate error log
    error_handler = logging.handlers.RotatingFileHandler(
        logs_dir / "docrouter_errors.log",
        maxBytes=logging_config.max_file_size,
        backupCount=logging_config.backup_count,
        encoding='utf-8'
    )
    error_handler.setFormatter(logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"
    ))
    error_handler.setLevel(logging.ERROR)
    logger.addHandler(error_handler)


def _setup_console_logging(logger: logging.Logger, logging_config: LoggingConfig):
    """Setup console logging with colors"""
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(ColoredFormatter("%(levelname)s - %(message)s"))
    console_handler.setLevel(getattr(logging, logging_config.level.upper()))
    logger.addHandler(console_handler)


def get_logger(name: str = 'docrouter') -> logging.Logger:
    """Get a logger instance with the specified name"""
    return logging.getLogger(name)


class _PerformanceLogger:
    def __init__(self, operation: str, logger: logging.Logger):
        self.operation = operation
        self.logger = logger
        self.start_time = None

    def __enter__(self):
        self.start_time = time.time()
        self.logger.debug(f"Starting {self.operation}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        execution_time = time.time() - self.start_time
        if exc_type is None:
            self.logger.info(f"Completed {self.operation} in {execution_time:.3f}s")
        else:
            self.logger.warning(f"Failed {self.operation} after {execution_time:.3f}s")


def log_performance(operation: str, logger: Optional[logging.Logger] = None):
    """Context manager to log performance of operations"""
    if logger is None:
        logger = get_logger()
    return _PerformanceLogger(operation, logger)


def setup_cli_logging(config: Optional[RouterConfig] = None, verbose: bool = False) -> logging.Logger:
    """Setup logging specifically for CLI usage"""
    if config is None:
        try:
            config = RouterConfig.load()
        except Exception:
            logging.basicConfig(
                level=logging.DEBUG if verbose else logging.INFO,
                format="%(levelname)s - %(message)s"
            )
            return logging.getLogger('docrouter')

    if verbose:
        config.logging.level = "DEBUG"
        config.logging.console_enabled = True

    try:
        return setup_logging(config)
    except OSError as e:
        # unwritable data dir, keep console output only
        config.logging.file_enabled = False
        logger = setup_logging(config)
        logger.warning(f"File logging disabled: {e}")
        return logger
