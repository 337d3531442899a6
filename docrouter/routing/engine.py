"""Routing decision engine

Tiers are tried strictly in order and the first one that answers wins:

1. learned patterns from earlier user corrections
2. AI classification through the configured backend
3. extension/keyword rules, which always answer

Missing credentials and backend failures only skip the AI tier, so a
routing call fails solely for an unknown template.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from docrouter.analysis.analyzer import FileAnalyzer
from docrouter.config import RouterConfig
from docrouter.credentials import CredentialLoader, CredentialStore
from docrouter.errors import ConfigurationError, RouterError
from docrouter.learning.patterns import JsonPatternRepository, PatternStore
from docrouter.llm import create_backend
from docrouter.logging_setup import get_logger
from docrouter.models import AIConfiguration, FileSignature, IncomingFile, RoutingSuggestion
from docrouter.routing.prompt import build_routing_prompt
from docrouter.routing.rules import RulesClassifier
from docrouter.routing.validator import ResponseValidator, find_closest_path
from docrouter.templates.registry import (
    get_available_folders, is_template_folder, normalize_folder_path, with_trailing_slash
)

logger = get_logger(__name__)


@dataclass
class RoutingContext:
    """State shared by the tiers during one routing call"""
    incoming: IncomingFile
    signature: FileSignature
    template: str
    folders: List[str]
    skipped: List[str] = field(default_factory=list)


class RoutingStrategy(ABC):
    """One routing tier; ``try_route`` returns None when it cannot decide"""

    name = "strategy"

    @abstractmethod
    def try_route(self, context: RoutingContext) -> Optional[RoutingSuggestion]:
        ...


class LearnedPatternStrategy(RoutingStrategy):
    name = "learned"

    def __init__(self, store: PatternStore, threshold: float = 0.9):
        self.store = store
        self.threshold = threshold

    def try_route(self, context: RoutingContext) -> Optional[RoutingSuggestion]:
        result = self.store.lookup(context.signature)
        if result.confidence <= self.threshold:
            return None
        if not is_template_folder(context.template, result.suggested_path):
            # pattern keys carry no template
            logger.debug(f"Learned folder {result.suggested_path} is not part of {context.template}")
            context.skipped.append(f"pattern appreso non valido per {context.template}")
            return None
        result.suggested_path = with_trailing_slash(result.suggested_path)
        return result


class AIStrategy(RoutingStrategy):
    name = "ai"

    def __init__(self, engine: "RoutingEngine", validator: ResponseValidator, preview_chars: int = 200):
        self.engine = engine
        self.validator = validator
        self.preview_chars = preview_chars

    def try_route(self, context: RoutingContext) -> Optional[RoutingSuggestion]:
        api_key, key_source = self.engine.resolve_api_key()
        if not api_key:
            logger.info("No AI API key available, skipping AI routing")
            context.skipped.append("nessuna API key configurata")
            return None

        model = self.engine.ai_configuration.model
        prompt = build_routing_prompt(context.signature, context.template, self.preview_chars)

        logger.info(f"Using AI routing with {key_source} API key")
        try:
            raw = self.engine.backend.classify(prompt, api_key, model)
        except ConfigurationError:
            raise
        except RouterError as e:
            logger.warning(f"AI routing failed: {e.message}")
            context.skipped.append(f"AI non disponibile: {e.message}")
            return None

        return self.validator.validate(raw, context.template)


class RulesStrategy(RoutingStrategy):
    name = "rules"

    def __init__(self, classifier: RulesClassifier):
        self.classifier = classifier

    def try_route(self, context: RoutingContext) -> Optional[RoutingSuggestion]:
        return self.classifier.route(context.signature, context.template)


class RoutingEngine:
    """Routes files into template folders and learns from corrections"""

    def __init__(self, config: Optional[RouterConfig] = None,
                 pattern_store: Optional[PatternStore] = None,
                 credential_loader: Optional[CredentialLoader] = None,
                 backend=None,
                 analyzer: Optional[FileAnalyzer] = None):
        self.config = config or RouterConfig.load()
        self.pattern_store = pattern_store or PatternStore(
            JsonPatternRepository(self.config.patterns_path)
        )
        self.credential_loader = credential_loader or CredentialLoader(
            CredentialStore(self.config.ai_config_path)
        )
        self.backend = backend or create_backend(self.config.ai)
        self.analyzer = analyzer or FileAnalyzer(self.config.analysis)
        self._ai_configuration: Optional[AIConfiguration] = None

        self.strategies: List[RoutingStrategy] = [
            LearnedPatternStrategy(self.pattern_store, self.config.routing.learned_threshold),
            AIStrategy(self, ResponseValidator(), self.config.analysis.prompt_preview_chars),
            RulesStrategy(RulesClassifier()),
        ]

    @property
    def ai_configuration(self) -> AIConfiguration:
        """Locally configured credential, loaded on first use"""
        if self._ai_configuration is None:
            self._ai_configuration = self.credential_loader.load()
        return self._ai_configuration

    def reload_configuration(self) -> None:
        """Re-read the AI credential and the learned patterns"""
        self._ai_configuration = self.credential_loader.load()
        self.pattern_store.reload()

    def resolve_api_key(self):
        """Active API key and where it came from, user key first"""
        if self.ai_configuration.api_key:
            return self.ai_configuration.api_key, "user-configured"
        try:
            api_key = self.backend.resolve_environment_key()
        except Exception as e:
            logger.debug(f"Environment API key lookup failed: {e}")
            api_key = None
        return (api_key, "environment") if api_key else (None, None)

    def route_file(self, incoming: IncomingFile, template: Optional[str] = None) -> RoutingSuggestion:
        """
        Suggest a folder of ``template`` for ``incoming``

        Args:
            incoming: File to route
            template: Template name, defaults to ``routing.default_template``

        Returns:
            RoutingSuggestion whose path is a folder of the template

        Raises:
            TemplateNotFoundError: If the template is not registered
        """
        template = template or self.config.routing.default_template
        folders = get_available_folders(template)

        signature = self.analyzer.analyze(incoming)
        context = RoutingContext(incoming, signature, template, folders)

        for strategy in self.strategies:
            result = strategy.try_route(context)
            if result is None:
                continue

            result = self._conform(result, folders)
            if context.skipped:
                result.fallback_reason = "; ".join(context.skipped)
            logger.info(
                f"Routed {incoming.file_name} -> {result.suggested_path} "
                f"({result.method.value}, confidence {result.confidence:.2f})"
            )
            return result

        # the rules tier always answers
        raise RouterError(f"No routing tier produced a result for {incoming.file_name}")

    def route_files(self, files: Iterable[IncomingFile],
                    template: Optional[str] = None) -> List[RoutingSuggestion]:
        """Route several files one after another, results in input order"""
        return [self.route_file(incoming, template) for incoming in files]

    def learn_from_correction(self, incoming: IncomingFile, actual_path: str) -> str:
        """Remember ``actual_path`` for files shaped like ``incoming``

        Returns:
            The pattern key that was written
        """
        if not normalize_folder_path(actual_path or ""):
            raise ValueError("A correction needs a non-empty folder path")
        return self.pattern_store.record_correction(incoming, actual_path)

    def clear_learned_patterns(self) -> None:
        self.pattern_store.clear()

    def test_connection(self, api_key: Optional[str] = None, model: Optional[str] = None) -> bool:
        """Check a credential against the backend, the configured one by default"""
        key = api_key or self.ai_configuration.api_key
        if not key:
            logger.error("AI API test failed: No API key provided")
            return False
        return self.backend.test_connection(key, model or self.ai_configuration.model)

    def get_routing_stats(self) -> Dict[str, Any]:
        return {
            "learnedPatternsCount": len(self.pattern_store),
            "aiEnabled": self.ai_configuration.has_key,
            "model": self.ai_configuration.model,
            "backend": self.config.ai.backend,
        }

    @staticmethod
    def _conform(result: RoutingSuggestion, folders: List[str]) -> RoutingSuggestion:
        clean = normalize_folder_path(result.suggested_path)
        if clean in folders:
            result.suggested_path = clean + "/"
        else:
            logger.error(f"Tier {result.method.value} produced unknown folder {result.suggested_path!r}")
            result.suggested_path = find_closest_path(clean, folders)
        result.confidence = min(max(result.confidence, 0.0), 1.0)
        return result
