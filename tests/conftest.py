"""Shared fixtures for the cmvcwatch test suite."""

import pytest
import structlog

from cmvcwatch.config.settings import Settings


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        _env_file=None,
        family="family@localhost@6666",
        releases="RC_1, RC_2",
        become="builder",
    )


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()
