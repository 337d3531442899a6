"""Structural file analysis for routing"""

import io
from typing import Optional

import pdfplumber

from docrouter.config import AnalysisConfig
from docrouter.logging_setup import get_logger
from docrouter.models import FileSignature, IncomingFile, file_extension


class FileAnalyzer:
    """Derives a FileSignature from a file without any network access"""

    def __init__(self, config: Optional[AnalysisConfig] = None):
        self.config = config or AnalysisConfig()
        self.logger = get_logger(f"{__name__}.FileAnalyzer")

    def analyze(self, incoming: IncomingFile) -> FileSignature:
        """
        Build the routing signature of a file

        Name, type, size and extension always come from metadata. A short
        text preview is added for small text and PDF files; if reading the
        content fails the preview is left out and analysis still succeeds.

        Args:
            incoming: File to analyze

        Returns:
            FileSignature for the file
        """
        signature = FileSignature(
            file_name=incoming.file_name,
            mime_type=incoming.mime_type or "",
            size_bytes=max(0, int(incoming.size_bytes or 0)),
            extension=file_extension(incoming.file_name),
        )

        if self._wants_preview(signature):
            try:
                signature.content_preview = self._extract_preview(incoming, signature) or None
            except Exception as e:
                self.logger.warning(f"Could not extract text preview from {incoming.file_name}: {e}")

        return signature

    def _wants_preview(self, signature: FileSignature) -> bool:
        if signature.size_bytes >= self.config.preview_size_limit:
            return False
        return signature.mime_type.startswith("text/") or self._is_pdf(signature)

    @staticmethod
    def _is_pdf(signature: FileSignature) -> bool:
        return signature.mime_type == "application/pdf" or signature.extension == "pdf"

    def _extract_preview(self, incoming: IncomingFile, signature: FileSignature) -> str:
        raw = incoming.read_head(self.config.preview_size_limit)
        if self._is_pdf(signature):
            text = self._pdf_text(raw)
        else:
            text = raw.decode("utf-8", errors="replace")
        return text.strip()[:self.config.preview_chars]

    def _pdf_text(self, raw: bytes) -> str:
        """Text of the leading PDF pages, stopping once the preview is filled"""
        parts = []
        length = 0
        with pdfplumber.open(io.BytesIO(raw)) as pdf:
            for page in pdf.pages:
                text = page.extract_text() or ""
                parts.append(text.strip())
                length += len(text)
                if length >= self.config.preview_chars:
                    break
        return "\n".join(part for part in parts if part)
