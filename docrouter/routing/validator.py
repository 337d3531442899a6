"""Validation of AI routing answers against the template folder set

The model's answer is untrusted text. Whatever it contains, the validator
returns a suggestion whose path is a genuine folder of the template.
"""

import json
import math
import re
from typing import List, Optional

from docrouter.logging_setup import get_logger
from docrouter.models import RoutingMethod, RoutingSuggestion
from docrouter.templates.registry import (
    get_available_folders, normalize_folder_path, with_trailing_slash
)

logger = get_logger(__name__)

CORRECTION_PENALTY = 0.8
PARSE_FAILURE_CONFIDENCE = 0.5
MIN_TERM_LENGTH = 3
DEFAULT_REASONING = "Analisi AI"
CORRECTION_NOTE = "(Percorso corretto automaticamente)"
PARSE_FAILURE_REASONING = "Errore nell'analisi AI - usando fallback"

_ORDINAL_PREFIX = re.compile(r"^(\d+)_")


def extract_json_object(text: str) -> Optional[str]:
    """First balanced ``{...}`` span of ``text``, braces inside strings ignored"""
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for index in range(start, len(text)):
            char = text[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
            elif char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return text[start:index + 1]
        # unbalanced from here on, try the next opening brace
        start = text.find("{", start + 1)
    return None


def clamp_confidence(value) -> float:
    """Coerce a model-reported confidence into [0.0, 1.0]"""
    if isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return min(max(number, 0.0), 1.0)


def _ordinal(path: str) -> Optional[str]:
    match = _ORDINAL_PREFIX.match(path)
    return match.group(1) if match else None


def find_closest_path(suggested_path: str, folders: List[str]) -> str:
    """
    Closest template folder to an invalid suggestion, with trailing slash

    Case-insensitive exact matches win outright. Otherwise each folder is
    scored by how many ``_``/``/``-separated terms (3+ chars) of the
    suggestion it contains. Ties go to a folder sharing the suggestion's
    numeric prefix (``9_FATTURE`` -> ``9_PARCELLA``), then to the earliest
    folder in template order.
    """
    suggested = normalize_folder_path(suggested_path).lower()

    for folder in folders:
        if folder.lower() == suggested:
            return folder + "/"

    terms = [term for term in re.split(r"[_/]", suggested) if len(term) >= MIN_TERM_LENGTH]
    ordinal = _ordinal(suggested)

    best_folder = folders[0]
    best_score = (0, False)
    for folder in folders:
        folder_lower = folder.lower()
        matches = sum(1 for term in terms if term in folder_lower)
        score = (matches, ordinal is not None and _ordinal(folder_lower) == ordinal)
        if score > best_score:
            best_score = score
            best_folder = folder

    return best_folder + "/"


class ResponseValidator:
    """Turns raw AI output into a template-safe RoutingSuggestion"""

    def validate(self, raw_response: str, template: str) -> RoutingSuggestion:
        """
        Parse and reconcile an AI answer with the folders of ``template``

        Raises:
            TemplateNotFoundError: If the template is not registered
        """
        folders = get_available_folders(template)

        parsed = self._parse(raw_response)
        if parsed is None:
            return self.safe_default(template)

        suggested = normalize_folder_path(parsed["suggestedPath"])
        confidence = clamp_confidence(parsed.get("confidence", 0))
        reasoning = parsed.get("reasoning")
        if not isinstance(reasoning, str) or not reasoning.strip():
            reasoning = DEFAULT_REASONING

        if suggested in folders:
            final_path = with_trailing_slash(suggested)
        else:
            final_path = find_closest_path(suggested, folders)
            logger.warning(f"AI suggested invalid path {parsed['suggestedPath']!r}, using {final_path!r}")
            confidence *= CORRECTION_PENALTY
            reasoning = f"{reasoning} {CORRECTION_NOTE}"

        return RoutingSuggestion(
            suggested_path=final_path,
            confidence=confidence,
            reasoning=reasoning,
            method=RoutingMethod.AI,
            alternatives=self._valid_alternatives(parsed.get("alternatives"), folders, final_path),
        )

    def safe_default(self, template: str) -> RoutingSuggestion:
        """First folder of the template at confidence 0.5"""
        folders = get_available_folders(template)
        return RoutingSuggestion(
            suggested_path=with_trailing_slash(folders[0]),
            confidence=PARSE_FAILURE_CONFIDENCE,
            reasoning=PARSE_FAILURE_REASONING,
            method=RoutingMethod.AI,
        )

    @staticmethod
    def _parse(raw_response) -> Optional[dict]:
        if not isinstance(raw_response, str):
            logger.error("AI response is not text")
            return None

        span = extract_json_object(raw_response)
        if span is None:
            logger.error("Failed to parse AI response: no JSON found")
            return None

        try:
            parsed = json.loads(span)
        except ValueError as e:
            logger.error(f"Failed to parse AI response: {e}")
            return None

        path = parsed.get("suggestedPath") if isinstance(parsed, dict) else None
        if not isinstance(path, str) or not normalize_folder_path(path):
            logger.error("Failed to parse AI response: missing suggestedPath")
            return None
        return parsed

    @staticmethod
    def _valid_alternatives(alternatives, folders: List[str], chosen: str) -> List[str]:
        if not isinstance(alternatives, list):
            return []
        valid = []
        for alternative in alternatives:
            if not isinstance(alternative, str):
                continue
            clean = normalize_folder_path(alternative)
            if clean not in folders:
                continue
            path = with_trailing_slash(clean)
            if path != chosen and path not in valid:
                valid.append(path)
        return valid
