"""
Shared fixtures: every test runs against a fresh service container backed
by an in-memory repository.
"""

import pytest

from starrecord import ApplicationConfig, Environment, MemoryRepository, reset_service_container, set_service_container

@pytest.fixture(autouse=True)
def container():
    config = ApplicationConfig.for_environment(Environment.TESTING)
    container = reset_service_container(config)
    container.configure_repository(MemoryRepository())
    yield container
    set_service_container(None)

@pytest.fixture
def repository(container):
    return container.repository

@pytest.fixture
def ledger(container):
    return container.ledger
