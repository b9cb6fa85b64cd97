"""
Test Configuration
==================

Pytest configuration with fixtures shared by all test types.
Provides test settings, entity stores and sample diagrams.
"""

import os

os.environ.setdefault("ERDSYNC_ENVIRONMENT", "testing")

import pytest
from unittest.mock import patch
from pydantic_settings import SettingsConfigDict

from erdsync.config import settings as settings_module
from erdsync.config.settings import Settings
from erdsync.core.dsl.generator import MermaidERGenerator
from erdsync.core.dsl.parser import MermaidERParser
from erdsync.core.sync.store import EntityStore

from tests.utils.data_generators import ERModelGenerator, USERS_POSTS_DIAGRAM


# Test settings override
class TestSettings(Settings):
    """Test-specific settings."""

    environment: str = "testing"
    debug: bool = True
    log_level: str = "DEBUG"
    sync_debounce_ms: int = 10

    model_config = SettingsConfigDict(env_file=".env.test", env_prefix="ERDSYNC_")


@pytest.fixture(scope="session")
def test_settings() -> TestSettings:
    """Test settings fixture."""
    return TestSettings()


@pytest.fixture(scope="session", autouse=True)
def override_settings(test_settings: TestSettings):
    """Override application settings for testing."""
    with patch.object(settings_module, "settings", test_settings):
        yield test_settings


@pytest.fixture
def parser() -> MermaidERParser:
    """Parser with the default name heuristic."""
    return MermaidERParser()


@pytest.fixture
def generator() -> MermaidERGenerator:
    return MermaidERGenerator()


@pytest.fixture
def empty_store() -> EntityStore:
    return EntityStore()


@pytest.fixture
def blog_store() -> EntityStore:
    """Users/Posts store built through store operations."""
    return ERModelGenerator.blog_store()


@pytest.fixture
def shop_store() -> EntityStore:
    return ERModelGenerator.shop_store()


@pytest.fixture
def users_posts_diagram() -> str:
    return USERS_POSTS_DIAGRAM


# Pytest configuration
def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers based on file paths."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
