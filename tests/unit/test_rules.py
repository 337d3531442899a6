"""Tests for rule-based routing"""

import pytest

from docrouter.errors import TemplateNotFoundError
from docrouter.models import FileSignature, RoutingMethod
from docrouter.routing.rules import (
    FALLBACK_FOLDERS, RULE_DEFAULT_CONFIDENCE, RULE_FALLBACK_CONFIDENCE,
    RULE_KEYWORD_CONFIDENCE, RULE_TABLES, RulesClassifier
)
from docrouter.templates.registry import is_template_folder


def _signature(file_name):
    extension = file_name.rsplit(".", 1)[1].lower() if "." in file_name else ""
    return FileSignature(file_name=file_name, mime_type="", size_bytes=100, extension=extension)


@pytest.fixture
def classifier():
    return RulesClassifier()


class TestRuleTables:
    """Test that rule tables only name real folders"""

    @pytest.mark.parametrize("template", list(RULE_TABLES))
    def test_every_rule_folder_exists(self, template):
        for ext_rule in RULE_TABLES[template]:
            assert is_template_folder(template, ext_rule.default)
            for rule in ext_rule.keyword_rules:
                assert is_template_folder(template, rule.folder), rule.folder

    @pytest.mark.parametrize("template", list(FALLBACK_FOLDERS))
    def test_fallback_folder_exists(self, template):
        assert is_template_folder(template, FALLBACK_FOLDERS[template])

    def test_confidence_ordering(self):
        assert RULE_KEYWORD_CONFIDENCE > RULE_DEFAULT_CONFIDENCE > RULE_FALLBACK_CONFIDENCE


class TestRulesClassifier:
    """Test rule matching"""

    def test_keyword_match(self, classifier):
        result = classifier.route(_signature("pianta_piano_terra.dwg"), "LUNGO")

        assert result.suggested_path == "3_PROGETTO/ARC/"
        assert result.confidence == RULE_KEYWORD_CONFIDENCE
        assert result.method == RoutingMethod.RULES
        assert result.reasoning == 'File dwg con keyword "pianta"'
        assert result.alternatives == ["3_PROGETTO/"]

    def test_first_keyword_rule_wins(self, classifier):
        """A name matching several rules takes the first one in table order"""
        result = classifier.route(_signature("relazione_verbale.pdf"), "LUNGO")
        assert result.suggested_path == "3_PROGETTO/REL/"

    def test_keyword_case_insensitive(self, classifier):
        result = classifier.route(_signature("VERBALE_Riunione_03.PDF"), "LUNGO")
        assert result.suggested_path == "6_VERBALI_NOTIF_COMUNICAZIONI/VERBALI/"

    def test_keyword_same_as_default_has_no_alternative(self, classifier):
        result = classifier.route(_signature("foto_cantiere.jpg"), "LUNGO")
        assert result.suggested_path == "7_SOPRALLUOGHI/"
        assert result.alternatives == []

    def test_extension_default(self, classifier):
        result = classifier.route(_signature("tav01.dxf"), "LUNGO")

        assert result.suggested_path == "3_PROGETTO/"
        assert result.confidence == RULE_DEFAULT_CONFIDENCE
        assert result.reasoning == "Cartella di default per file dxf"

    def test_spreadsheet_invoice(self, classifier):
        assert classifier.route(_signature("fattura_2024.xlsx"), "LUNGO").suggested_path == "9_PARCELLA/"

    def test_extension_must_match_fully(self, classifier):
        """``docx`` matches the document rule, ``pdfx`` does not"""
        assert classifier.route(_signature("contratto.docx"), "LUNGO").suggested_path == "10_INCARICO/"
        assert classifier.route(_signature("contratto.pdfx"), "LUNGO").confidence == RULE_FALLBACK_CONFIDENCE

    def test_fallback(self, classifier):
        result = classifier.route(_signature("archivio.zip"), "LUNGO")

        assert result.suggested_path == "4_MATERIALE_RICEVUTO/"
        assert result.confidence == RULE_FALLBACK_CONFIDENCE
        assert result.reasoning == "Fallback - tipologia file non riconosciuta"

    def test_no_extension_falls_back(self, classifier):
        assert classifier.route(_signature("LEGGIMI"), "BREVE").suggested_path == "MATERIALE_RICEVUTO/"

    def test_breve_keyword(self, classifier):
        result = classifier.route(_signature("richiesta_cliente.pdf"), "BREVE")
        assert result.suggested_path == "CONSEGNA/"
        assert result.alternatives == ["ELABORAZIONI/"]

    def test_breve_spreadsheet_default(self, classifier):
        assert classifier.route(_signature("tabella.xlsx"), "BREVE").suggested_path == "ELABORAZIONI/"

    def test_unknown_template(self, classifier):
        with pytest.raises(TemplateNotFoundError):
            classifier.route(_signature("a.pdf"), "INVALID")

    def test_deterministic(self, classifier):
        signature = _signature("computo_metrico.pdf")
        assert classifier.route(signature, "LUNGO") == classifier.route(signature, "LUNGO")
