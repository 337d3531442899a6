"""Pytest configuration and fixtures"""

import pytest
import tempfile
import shutil
from pathlib import Path
from unittest.mock import Mock

from docrouter.config import RouterConfig
from docrouter.credentials import CredentialLoader
from docrouter.learning.patterns import InMemoryPatternRepository, PatternStore
from docrouter.models import AIConfiguration, IncomingFile


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests"""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path)


@pytest.fixture
def router_config(temp_dir):
    """Default configuration rooted in a temporary data directory"""
    config = RouterConfig.create_default()
    config.data_dir = str(temp_dir / "data")
    config.logging.file_enabled = False
    return config


@pytest.fixture
def pattern_store():
    """Empty in-memory pattern store"""
    return PatternStore(InMemoryPatternRepository())


def make_credential_loader(api_key=None, model="claude-sonnet-4-20250514"):
    loader = Mock(spec=CredentialLoader)
    loader.load.return_value = AIConfiguration(api_key=api_key, model=model)
    return loader


@pytest.fixture
def make_loader():
    """Factory for credential loaders returning a fixed configuration"""
    return make_credential_loader


@pytest.fixture
def keyless_loader():
    """Credential loader that reports no configured key"""
    return make_credential_loader()


@pytest.fixture
def keyed_loader():
    """Credential loader with a configured key"""
    return make_credential_loader(api_key="sk-ant-test-key")


@pytest.fixture
def drawing_file():
    """Small architectural drawing without readable content"""
    return IncomingFile(file_name="pianta_piano_terra.dwg", mime_type="image/vnd.dwg", size_bytes=250000)
