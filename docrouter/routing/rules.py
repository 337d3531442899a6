"""Rule-based routing by extension and filename keywords"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from docrouter.errors import TemplateNotFoundError
from docrouter.models import FileSignature, RoutingMethod, RoutingSuggestion
from docrouter.templates.registry import TEMPLATE_NAMES

RULE_KEYWORD_CONFIDENCE = 0.8
RULE_DEFAULT_CONFIDENCE = 0.6
RULE_FALLBACK_CONFIDENCE = 0.4


@dataclass
class KeywordRule:
    keywords: Tuple[str, ...]
    folder: str


@dataclass
class ExtensionRule:
    """Rules for extensions matching ``pattern`` (a full-match regex)"""
    pattern: str
    default: str
    keyword_rules: List[KeywordRule] = field(default_factory=list)

    def matches(self, extension: str) -> bool:
        return re.fullmatch(self.pattern, extension) is not None


def _rules(*pairs) -> List[KeywordRule]:
    return [KeywordRule(tuple(keywords), folder) for keywords, folder in pairs]


LUNGO_RULES: List[ExtensionRule] = [
    ExtensionRule("dwg|dxf|skp", "3_PROGETTO/", _rules(
        (["pianta", "planimetria", "plan"], "3_PROGETTO/ARC/"),
        (["prospetto", "prospetti"], "3_PROGETTO/ARC/"),
        (["sezione", "sezioni"], "3_PROGETTO/ARC/"),
        (["struttura", "strutturale", "trave", "pilastro"], "3_PROGETTO/STR/"),
        (["impianto", "idraulico", "termico"], "3_PROGETTO/IM/"),
        (["elettrico", "illuminazione"], "3_PROGETTO/IE/"),
    )),
    ExtensionRule("pdf|doc|docx", "3_PROGETTO/", _rules(
        (["relazione", "relaz", "tecnica"], "3_PROGETTO/REL/"),
        (["calcolo", "calcoli"], "3_PROGETTO/"),
        (["computo", "metrico", "capitolato"], "3_PROGETTO/CME/"),
        (["verbale", "riunione"], "6_VERBALI_NOTIF_COMUNICAZIONI/VERBALI/"),
        (["corrispondenza", "lettera"], "6_VERBALI_NOTIF_COMUNICAZIONI/COMUNICAZIONI/"),
        (["contratto", "incarico"], "10_INCARICO/"),
        (["sicurezza", "psc"], "3_PROGETTO/SIC/"),
        (["consegna", "richiesta"], "1_CONSEGNA/"),
        (["materiale", "ricevuto"], "4_MATERIALE_RICEVUTO/"),
    )),
    ExtensionRule("jpg|jpeg|png|tiff|bmp", "7_SOPRALLUOGHI/", _rules(
        (["sopralluogo", "foto", "cantiere"], "7_SOPRALLUOGHI/"),
        (["rilievo", "survey"], "7_SOPRALLUOGHI/"),
    )),
    ExtensionRule("xls|xlsx|csv", "3_PROGETTO/CME/", _rules(
        (["computo", "metrico", "cme"], "3_PROGETTO/CME/"),
        (["parcella", "fattura", "preventivo"], "9_PARCELLA/"),
    )),
]

BREVE_RULES: List[ExtensionRule] = [
    ExtensionRule("pdf|doc|docx|dwg|dxf", "ELABORAZIONI/", _rules(
        (["relazione", "calcolo", "progetto"], "ELABORAZIONI/"),
        (["consegna", "richiesta"], "CONSEGNA/"),
    )),
    ExtensionRule("jpg|jpeg|png|tiff", "SOPRALLUOGHI/", _rules(
        (["sopralluogo", "foto"], "SOPRALLUOGHI/"),
    )),
    ExtensionRule("xls|xlsx", "ELABORAZIONI/"),
]

RULE_TABLES: Dict[str, List[ExtensionRule]] = {
    "LUNGO": LUNGO_RULES,
    "BREVE": BREVE_RULES,
}

FALLBACK_FOLDERS: Dict[str, str] = {
    "LUNGO": "4_MATERIALE_RICEVUTO/",
    "BREVE": "MATERIALE_RICEVUTO/",
}


class RulesClassifier:
    """Last routing tier, pure local computation that always answers"""

    def route(self, signature: FileSignature, template: str) -> RoutingSuggestion:
        if template not in RULE_TABLES:
            raise TemplateNotFoundError(template, list(TEMPLATE_NAMES))

        file_name = signature.file_name.lower()
        extension = signature.extension.lower()

        for ext_rule in RULE_TABLES[template]:
            if not ext_rule.matches(extension):
                continue

            for rule in ext_rule.keyword_rules:
                keyword = next((k for k in rule.keywords if k.lower() in file_name), None)
                if keyword is not None:
                    return RoutingSuggestion(
                        suggested_path=rule.folder,
                        confidence=RULE_KEYWORD_CONFIDENCE,
                        reasoning=f'File {extension} con keyword "{keyword}"',
                        method=RoutingMethod.RULES,
                        alternatives=[ext_rule.default] if ext_rule.default != rule.folder else [],
                    )

            return RoutingSuggestion(
                suggested_path=ext_rule.default,
                confidence=RULE_DEFAULT_CONFIDENCE,
                reasoning=f"Cartella di default per file {extension}",
                method=RoutingMethod.RULES,
            )

        return RoutingSuggestion(
            suggested_path=FALLBACK_FOLDERS[template],
            confidence=RULE_FALLBACK_CONFIDENCE,
            reasoning="Fallback - tipologia file non riconosciuta",
            method=RoutingMethod.RULES,
        )
