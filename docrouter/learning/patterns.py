"""Learned routing patterns

A pattern key is the lowercase extension followed by up to three long
filename tokens, e.g. ``dwg:pianta,piano,terra``. Files sharing the
extension and leading tokens share the key, so one correction covers a
whole family of similarly named drawings.
"""

import json
import os
import re
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

from docrouter.errors import StorageError
from docrouter.logging_setup import get_logger
from docrouter.models import (
    FileSignature, IncomingFile, RoutingMethod, RoutingSuggestion, file_extension
)
from docrouter.templates.registry import with_trailing_slash

logger = get_logger(__name__)

LEARNED_CONFIDENCE = 0.95
MAX_PATTERN_KEYWORDS = 3
MIN_KEYWORD_LENGTH = 4


class PatternRepository(ABC):
    """Persistence for the pattern map

    ``load`` never raises: a missing or corrupt store reads as empty.
    """

    @abstractmethod
    def load(self) -> Dict[str, str]:
        ...

    @abstractmethod
    def save(self, patterns: Dict[str, str]) -> None:
        ...


class InMemoryPatternRepository(PatternRepository):
    """Process-local repository, mainly for tests and one-shot runs"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._patterns = dict(initial or {})

    def load(self) -> Dict[str, str]:
        return dict(self._patterns)

    def save(self, patterns: Dict[str, str]) -> None:
        self._patterns = dict(patterns)


class JsonPatternRepository(PatternRepository):
    """Pattern map stored as a JSON object in a single file"""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable learned patterns at {self.path}: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Ignoring learned patterns at {self.path}: not a JSON object")
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def save(self, patterns: Dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # atomic replace
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".patterns-", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(patterns, f, indent=2, ensure_ascii=False, sort_keys=True)
                os.replace(tmp_name, self.path)
            except Exception:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            raise StorageError(
                f"Failed to save learned patterns to {self.path}",
                "Check that the data directory is writable.",
                e
            )


def extract_pattern(signature: FileSignature) -> str:
    """Deterministic lookup key for a file signature"""
    ext = signature.extension.lower()
    words = re.sub(r"[^a-z0-9]", " ", signature.file_name.lower()).split()
    keywords = [w for w in words if len(w) >= MIN_KEYWORD_LENGTH][:MAX_PATTERN_KEYWORDS]
    return f"{ext}:{','.join(keywords)}"


class PatternStore:
    """Signature to confirmed-folder map, written only by user corrections"""

    def __init__(self, repository: PatternRepository):
        self.repository = repository
        self._lock = threading.Lock()
        self._patterns = repository.load()
        logger.debug(f"Loaded {len(self._patterns)} learned patterns")

    def reload(self) -> None:
        with self._lock:
            self._patterns = self.repository.load()

    def lookup(self, signature: FileSignature) -> RoutingSuggestion:
        """
        Exact-key lookup of a learned folder

        Returns:
            Suggestion with confidence 0.95 on a hit, or an empty placeholder
            with confidence 0.0 on a miss
        """
        key = extract_pattern(signature)
        path = self._patterns.get(key)
        if path:
            return RoutingSuggestion(
                suggested_path=path,
                confidence=LEARNED_CONFIDENCE,
                reasoning="Pattern appreso dalle correzioni precedenti",
                method=RoutingMethod.LEARNED,
            )
        return RoutingSuggestion(
            suggested_path="",
            confidence=0.0,
            reasoning="Nessun pattern appreso trovato",
            method=RoutingMethod.LEARNED,
        )

    def record_correction(self, incoming: IncomingFile, confirmed_path: str) -> str:
        """Store ``confirmed_path`` for the file's pattern, returns the key"""
        signature = FileSignature(
            file_name=incoming.file_name,
            mime_type=incoming.mime_type,
            size_bytes=incoming.size_bytes,
            extension=file_extension(incoming.file_name),
        )
        key = extract_pattern(signature)
        path = with_trailing_slash(confirmed_path)

        with self._lock:
            updated = dict(self._patterns)
            updated[key] = path
            self.repository.save(updated)
            self._patterns = updated

        logger.info(f"Learned: {key} -> {path}")
        return key

    def clear(self) -> None:
        with self._lock:
            self.repository.save({})
            self._patterns = {}
        logger.info("Cleared learned patterns")

    def items(self) -> Dict[str, str]:
        return dict(self._patterns)

    def __len__(self) -> int:
        return len(self._patterns)
