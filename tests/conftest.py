"""Shared test fixtures and utilities."""

import pytest

from tests.fixtures.workspace import FakeRunner, create_workspace


@pytest.fixture
def workspace(tmp_path):
    """Two-crate cargo workspace (crates/a, crates/b) and its metadata."""
    return create_workspace(tmp_path.resolve() / "ws")


@pytest.fixture
def fake_runner():
    """Runner where every build succeeds unless told otherwise."""
    return FakeRunner()
