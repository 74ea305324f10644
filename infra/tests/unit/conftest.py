"""Pulumi mock engine fixtures for the unit suite."""

from __future__ import annotations

from collections.abc import Iterator

import pulumi
import pytest

from tests.unit.mocks import Mocks


@pytest.fixture(autouse=True)
def mocks() -> Iterator[Mocks]:
    """Install a fresh mock engine for each test."""
    engine = Mocks()
    pulumi.runtime.set_mocks(engine, project="waterheater-calc", stack="test", preview=False)
    yield engine


@pytest.fixture
def deploy():
    """Run a Pulumi program under the mocks and wait for every registration.

    Returns whatever the program returned with every Output inside it
    resolved.
    """

    def run(program):
        resolved = {}

        @pulumi.runtime.test
        def program_test():
            return pulumi.Output.from_input(program()).apply(
                lambda value: resolved.setdefault("result", value)
            )

        program_test()
        return resolved["result"]

    return run
