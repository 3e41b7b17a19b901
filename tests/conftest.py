"""
Lifecycle - Test Configuration

Pytest fixtures shared by all tests.
"""
from typing import List, Tuple
from unittest.mock import MagicMock

import pytest

from lifecycle import Application
from tests.helpers import TerminationRecorder


@pytest.fixture
def terminator() -> TerminationRecorder:
    return TerminationRecorder()


@pytest.fixture
def hook() -> MagicMock:
    return MagicMock(name="hook")


@pytest.fixture
def journal() -> List[Tuple[str, str]]:
    return []


@pytest.fixture
def new_app(hook, terminator):
    """
    Factory for applications wired to the recording hook and terminator.

    Must be called from inside a running event loop.
    """

    def factory(**kwargs) -> Application:
        kwargs.setdefault("hook", hook)
        kwargs.setdefault("terminator", terminator)
        kwargs.setdefault("handle_signals", False)
        return Application(**kwargs)

    return factory
