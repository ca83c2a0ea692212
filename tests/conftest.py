"""Pytest fixtures for Augur tests."""

from __future__ import annotations

import logging
from collections.abc import Callable, Generator, Mapping
from typing import Any

import pytest
import structlog

from augur.core.config import ProviderConfig
from augur.engine import AdviceEngine, RetryController
from augur.providers.base import CompletionClient
from tests.helpers import FakeClient, ManualClock, make_provider, make_record


@pytest.fixture(autouse=True)
def reset_logging_state() -> Generator[None, None, None]:
    """Reset CLI logging state, structlog and root handlers around each test."""
    from augur.cli import helpers as cli_helpers

    cli_helpers.reset_logging_state()
    structlog.reset_defaults()

    root_logger = logging.getLogger()
    original_handlers = root_logger.handlers[:]
    original_level = root_logger.level
    for handler in original_handlers:
        root_logger.removeHandler(handler)

    yield

    cli_helpers.reset_logging_state()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    for handler in original_handlers:
        root_logger.addHandler(handler)
    root_logger.setLevel(original_level)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def record():
    return make_record()


@pytest.fixture
def sleeps() -> list[float]:
    """Seconds requested from the retry controller's sleep."""
    return []


@pytest.fixture
def retry_controller(sleeps: list[float]) -> RetryController:
    async def fake_sleep(seconds: float) -> None:
        sleeps.append(seconds)

    return RetryController(sleep=fake_sleep, random_source=lambda: 0.5)


@pytest.fixture
def make_engine(
    clock: ManualClock,
    retry_controller: RetryController,
) -> Callable[..., AdviceEngine]:
    """Factory for engines over fake clients with a manual clock and no-op sleeps."""

    def _make(
        providers: list[ProviderConfig] | None = None,
        clients: Mapping[str, CompletionClient] | None = None,
        **kwargs: Any,
    ) -> AdviceEngine:
        providers = providers if providers is not None else [make_provider("alpha")]
        if clients is None:
            clients = {provider.id: FakeClient() for provider in providers}
        return AdviceEngine(
            providers,
            clients,
            clock=clock,
            retry_controller=retry_controller,
            **kwargs,
        )

    return _make
