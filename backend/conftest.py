"""Root conftest: test environment variables and stdlib-routed structlog."""

from pathlib import Path

import pytest
import structlog
from dotenv import load_dotenv

from shared.logging import shared_processors

load_dotenv(Path(__file__).resolve().parent.parent / ".env.tests")

# Events go through stdlib logging so caplog sees them.
structlog.configure(
    processors=shared_processors(),
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=False,
)


@pytest.fixture(autouse=True)
def _clear_log_context():
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()
