"""
Shared pytest fixtures for the tsunami test suite.

Usage in tests:
    def test_something(ts_factory):
        ts_factory.write("src/a.ts", "export const a = 1;\\n")
        context = ts_factory.create_context()

    def test_with_data(ts_env):
        # ts_env comes with the three-module sample project written
        context = ts_env.create_context()
"""

import logging

import pytest

from tests.factories import ProjectFactory
from tsunami.core import FileIndexer, ImportSorter
from tsunami.core.parsing import ParserRegistry, SourceParser
from tsunami.orchestrator import IOPool, OrchestratorConfig


@pytest.fixture
def ts_factory(tmp_path):
    """Empty project directory with a default tsconfig.json."""
    factory = ProjectFactory(tmp_path)
    factory.write_tsconfig()
    return factory


@pytest.fixture
def ts_env(tmp_path):
    """Sample project: src/math.ts, src/shapes.ts, src/index.ts."""
    factory = ProjectFactory(tmp_path)
    factory.create_sample_project()
    return factory


@pytest.fixture(scope="session")
def source_parser():
    """One parser for the session; grammars load once."""
    return SourceParser(ParserRegistry.default())


@pytest.fixture
def indexer(source_parser):
    return FileIndexer(source_parser)


@pytest.fixture
def sorter(source_parser):
    return ImportSorter(source_parser)


@pytest.fixture
def pool():
    """Small local work pool, shut down after the test."""
    io_pool = IOPool(OrchestratorConfig(io_workers=2, shutdown_timeout=5.0))
    yield io_pool
    io_pool.shutdown(wait=True)


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Keep the developer's own tsunami settings out of every test."""
    for key in (
        "TSUNAMI_TSSERVER", "TSUNAMI_LOG_LEVEL", "TSUNAMI_LOG_FILE", "TSUNAMI_TSCONFIG",
        "TSUNAMI_IO_WORKERS", "TSUNAMI_SHUTDOWN_TIMEOUT", "TSUNAMI_PROJECT_PATH",
    ):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr("tsunami.config.ConfigManager.USER_CONFIG_FILE", tmp_path / "no-user-config.yaml")


@pytest.fixture(autouse=True)
def reset_tsunami_logger():
    """Drop handlers a test installed through configure_logging()."""
    logger = logging.getLogger("tsunami")
    before = list(logger.handlers)
    yield
    for handler in list(logger.handlers):
        if handler not in before:
            logger.removeHandler(handler)
            handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
