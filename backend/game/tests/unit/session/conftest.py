import pytest

from game.tests.mocks import MockConnection


@pytest.fixture
def second_connection():
    return MockConnection()
