"""Tests for CLI main module"""

import json
import pytest
from pathlib import Path
from unittest.mock import patch

from docrouter.cli.main import create_parser, main
from docrouter.config import RouterConfig
from docrouter.credentials import CredentialLoader, CredentialStore


@pytest.fixture
def parser():
    """Create CLI argument parser"""
    return create_parser()


@pytest.fixture
def config_file(temp_dir):
    """Configuration file pointing at a temporary data directory"""
    config = RouterConfig.create_default()
    config.data_dir = str(temp_dir / "data")
    config.logging.file_enabled = False
    path = temp_dir / "config.json"
    config.save(path)
    return path


def run_cli(config_file, *argv):
    return main(["--config", str(config_file), *argv])


class TestParser:
    """Test argument parsing"""

    def test_parser_help(self, parser):
        help_text = parser.format_help()
        assert "route" in help_text
        assert "create-structure" in help_text
        assert "patterns" in help_text

    def test_parser_no_args(self, parser):
        args = parser.parse_args([])
        assert args.command is None

    def test_global_options(self, parser):
        args = parser.parse_args(["--verbose", "--config", "/tmp/c.json", "--data-dir", "/srv", "stats"])
        assert args.verbose is True
        assert args.config == "/tmp/c.json"
        assert args.data_dir == "/srv"
        assert args.command == "stats"

    def test_route_args(self, parser):
        args = parser.parse_args(["route", "a.pdf", "b.dwg", "--template", "BREVE", "--json"])
        assert args.files == ["a.pdf", "b.dwg"]
        assert args.template == "BREVE"
        assert args.json is True

    def test_create_structure_requires_code(self, parser):
        with pytest.raises(SystemExit):
            parser.parse_args(["create-structure", "/tmp", "--object", "Ponte"])

    def test_script_kind_restricted(self, parser):
        with pytest.raises(SystemExit):
            parser.parse_args(["create-structure", "/tmp", "--code", "P1", "--object", "X", "--script", "ps1"])


class TestCommands:
    """Test command handlers end to end"""

    def test_no_command_prints_help(self, config_file, capsys):
        run_cli(config_file)
        assert "usage: docrouter" in capsys.readouterr().out

    def test_folders(self, config_file, capsys):
        run_cli(config_file, "folders", "BREVE")
        out = capsys.readouterr().out.split()
        assert out == ["CONSEGNA/", "ELABORAZIONI/", "MATERIALE_RICEVUTO/", "SOPRALLUOGHI/"]

    def test_folders_structure(self, config_file, capsys):
        run_cli(config_file, "folders", "LUNGO", "--structure")
        assert "ARC/ - Architettonici" in capsys.readouterr().out

    def test_folders_unknown_template(self, config_file, capsys):
        with pytest.raises(SystemExit) as exc_info:
            run_cli(config_file, "folders", "MEDIO")
        assert exc_info.value.code == 1
        assert "MEDIO" in capsys.readouterr().err

    def test_route_json_with_rules(self, config_file, temp_dir, capsys):
        drawing = temp_dir / "pianta_piano_terra.dwg"
        drawing.write_bytes(b"AC1032")

        with patch("docrouter.llm.proxy.AIProxyClient.resolve_environment_key", return_value=None):
            run_cli(config_file, "route", str(drawing), "--json")

        results = json.loads(capsys.readouterr().out)
        assert results[0]["suggestedPath"] == "3_PROGETTO/ARC/"
        assert results[0]["method"] == "rules"
        assert results[0]["file"] == str(drawing)

    def test_route_missing_file(self, config_file, temp_dir, capsys):
        with patch("docrouter.llm.proxy.AIProxyClient.resolve_environment_key", return_value=None):
            with pytest.raises(SystemExit) as exc_info:
                run_cli(config_file, "route", str(temp_dir / "missing.pdf"))
        assert exc_info.value.code == 1
        assert "File not found" in capsys.readouterr().err

    def test_learn_then_list_patterns(self, config_file, capsys):
        run_cli(config_file, "learn", "pianta_piano_terra.dwg", "3_PROGETTO/ARC")
        run_cli(config_file, "patterns", "list")
        out = capsys.readouterr().out
        assert "dwg:pianta,piano,terra -> 3_PROGETTO/ARC/" in out

    def test_patterns_clear_confirmed(self, config_file, capsys):
        run_cli(config_file, "learn", "foto_cantiere.jpg", "7_SOPRALLUOGHI")
        run_cli(config_file, "patterns", "clear", "--confirm")
        run_cli(config_file, "patterns", "list")
        assert "No learned patterns" in capsys.readouterr().out

    def test_patterns_clear_cancelled(self, config_file, capsys):
        run_cli(config_file, "learn", "foto_cantiere.jpg", "7_SOPRALLUOGHI")
        with patch("builtins.input", return_value="n"):
            run_cli(config_file, "patterns", "clear")
        run_cli(config_file, "patterns", "list")
        assert "foto" in capsys.readouterr().out

    def test_stats(self, config_file, capsys):
        run_cli(config_file, "stats")
        out = capsys.readouterr().out
        assert "Learned patterns: 0" in out
        assert "Backend: proxy" in out

    def test_create_structure(self, config_file, temp_dir, capsys):
        run_cli(config_file, "create-structure", str(temp_dir / "jobs"), "--code", "P7",
                "--object", "Ponte", "--template", "BREVE")
        assert (temp_dir / "jobs" / "P7_Ponte" / "SOPRALLUOGHI").is_dir()

    def test_create_structure_script(self, config_file, temp_dir, capsys):
        run_cli(config_file, "create-structure", str(temp_dir / "jobs"), "--code", "P7",
                "--object", "Ponte", "--script", "shell")
        out = capsys.readouterr().out
        assert out.startswith("#!/bin/bash")
        assert not (temp_dir / "jobs").exists()

    def test_config_set_and_get(self, config_file, capsys):
        run_cli(config_file, "config", "set", "routing.default_template", "BREVE")
        run_cli(config_file, "config", "get", "routing.default_template")
        assert "routing.default_template = BREVE" in capsys.readouterr().out

    def test_config_set_invalid_value(self, config_file, capsys):
        with pytest.raises(SystemExit):
            run_cli(config_file, "config", "set", "routing.default_template", "MEDIO")
        assert RouterConfig.load(config_file).routing.default_template == "LUNGO"

    def test_config_validate(self, config_file, capsys):
        run_cli(config_file, "config", "validate")
        assert "Configuration is valid" in capsys.readouterr().out

    def test_config_show_section(self, config_file, capsys):
        run_cli(config_file, "config", "show", "--section", "routing")
        out = capsys.readouterr().out
        assert "Default Template: LUNGO" in out
        assert "AI Backend" not in out

    def test_config_set_key(self, config_file, capsys):
        run_cli(config_file, "config", "set-key", "sk-ant-cli", "--model", "claude-opus")

        config = RouterConfig.load(config_file)
        loaded = CredentialLoader(CredentialStore(config.ai_config_path)).load()
        assert loaded.api_key == "sk-ant-cli"
        assert loaded.model == "claude-opus"

    def test_config_test_without_key(self, config_file, capsys):
        with pytest.raises(SystemExit) as exc_info:
            run_cli(config_file, "config", "test")
        assert exc_info.value.code == 1
        assert "AI connection failed" in capsys.readouterr().out

    def test_data_dir_override(self, config_file, temp_dir, capsys):
        override = temp_dir / "other"
        run_cli(config_file, "--data-dir", str(override), "learn", "foto_cantiere.jpg", "7_SOPRALLUOGHI")
        assert (Path(override) / "learned_patterns.json").exists()
