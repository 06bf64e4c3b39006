"""Shared pytest fixtures for Asmex tests."""

import logging

import pytest

from sample_dumps import build_sample_object


@pytest.fixture
def sample_object():
    """Snapshot of the two compilation unit sample executable."""
    return build_sample_object()


@pytest.fixture(autouse=True)
def quiet_logging():
    """Keep expected unknown-line warnings out of the test output."""
    logging.getLogger('asmex').setLevel(logging.ERROR)
    yield
    logging.getLogger('asmex').setLevel(logging.NOTSET)
