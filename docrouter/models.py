"""Core data models for docrouter"""

import mimetypes
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional


DEFAULT_MODEL = "claude-sonnet-4-20250514"


class RoutingMethod(str, Enum):
    """Tier that produced a routing suggestion"""
    LEARNED = "learned"
    AI = "ai"
    RULES = "rules"


def file_extension(file_name: str) -> str:
    """Lowercase extension without the dot, empty when the name has none"""
    if "." not in file_name:
        return ""
    return file_name.rsplit(".", 1)[1].lower()


@dataclass
class IncomingFile:
    """A file handed to the router, either on disk or already in memory"""
    file_name: str
    mime_type: str = ""
    size_bytes: int = 0
    path: Optional[Path] = None
    data: Optional[bytes] = None

    @classmethod
    def from_path(cls, path, mime_type: Optional[str] = None) -> 'IncomingFile':
        path = Path(path)
        if mime_type is None:
            mime_type = mimetypes.guess_type(path.name)[0] or ""
        return cls(
            file_name=path.name,
            mime_type=mime_type,
            size_bytes=path.stat().st_size,
            path=path,
        )

    @classmethod
    def from_bytes(cls, file_name: str, data: bytes, mime_type: Optional[str] = None) -> 'IncomingFile':
        if mime_type is None:
            mime_type = mimetypes.guess_type(file_name)[0] or ""
        return cls(file_name=file_name, mime_type=mime_type, size_bytes=len(data), data=data)

    def read_head(self, limit: int) -> bytes:
        """Read at most ``limit`` bytes of content"""
        if self.data is not None:
            return self.data[:limit]
        if self.path is not None:
            with open(self.path, "rb") as f:
                return f.read(limit)
        raise ValueError(f"No content available for {self.file_name}")


@dataclass
class FileSignature:
    """Structural description of a file used for routing"""
    file_name: str
    mime_type: str
    size_bytes: int
    extension: str
    content_preview: Optional[str] = None


@dataclass
class RoutingSuggestion:
    """Result of routing a file into a template folder"""
    suggested_path: str
    confidence: float
    reasoning: str
    method: RoutingMethod
    alternatives: List[str] = field(default_factory=list)
    fallback_reason: Optional[str] = None  # why a higher tier was skipped

    def to_dict(self) -> dict:
        data = {
            "suggestedPath": self.suggested_path,
            "confidence": self.confidence,
            "reasoning": self.reasoning,
            "method": self.method.value,
            "alternatives": list(self.alternatives),
        }
        if self.fallback_reason:
            data["fallbackReason"] = self.fallback_reason
        return data


@dataclass
class AIConfiguration:
    """AI credential and model preference"""
    api_key: Optional[str] = None
    model: str = DEFAULT_MODEL

    @property
    def has_key(self) -> bool:
        return bool(self.api_key)
