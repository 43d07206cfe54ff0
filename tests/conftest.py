"""
Pytest configuration and shared fixtures.
"""

import asyncio
import os
from pathlib import Path

import pytest

from stablewatch.core.exceptions import WatchRegistrationError
from stablewatch.dependencies import reset_singletons
from stablewatch.domains.file_discovery import (
    ChangeNotification,
    ChangeNotificationSource,
    ChangeOperation,
)


class InMemoryNotificationSource(ChangeNotificationSource):
    """Notification source driven by the test instead of the operating system."""

    def __init__(self, fail_add: bool = False):
        super().__init__()
        self.added: list[str] = []
        self.released = False
        self._fail_add = fail_add

    async def add(self, path: str) -> None:
        if self._fail_add:
            raise WatchRegistrationError(path, "simulated registration failure")
        self.added.append(os.path.abspath(path))

    async def _release(self) -> None:
        self.released = True

    def emit(self, path, operation: ChangeOperation, is_directory: bool = False) -> None:
        self.dispatch(ChangeNotification(os.path.abspath(str(path)), operation, is_directory))


async def wait_until(predicate, timeout: float = 2.0, interval: float = 0.005) -> None:
    """Poll ``predicate`` until it is true or fail the test after ``timeout`` seconds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            pytest.fail(f"condition not met within {timeout}s")
        await asyncio.sleep(interval)


async def wait_for_subscription(source: ChangeNotificationSource, path, count: int = 1) -> None:
    await wait_until(lambda: source.subscription_count(str(path)) >= count)


@pytest.fixture
def source() -> InMemoryNotificationSource:
    return InMemoryNotificationSource()


@pytest.fixture
def watch_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "incoming"
    directory.mkdir()
    return directory


@pytest.fixture(autouse=True)
def clean_singletons():
    """Reset singletons before and after every test."""
    reset_singletons()
    yield
    reset_singletons()
