"""Tests for the process-wide outbound connection limit."""

import asyncio

import pytest

from webfarm.utils.http import (
    DEFAULT_CONNECTION_LIMIT,
    create_connector,
    get_connection_limit,
    set_connection_limit,
)


@pytest.fixture(autouse=True)
def reset_limit():
    yield
    set_connection_limit(DEFAULT_CONNECTION_LIMIT)


class TestConnectionLimit:
    def test_default(self):
        assert get_connection_limit() == DEFAULT_CONNECTION_LIMIT == 12

    def test_set_and_get(self):
        set_connection_limit(48)
        assert get_connection_limit() == 48

    @pytest.mark.parametrize("limit", [0, -1])
    def test_non_positive_rejected(self, limit):
        with pytest.raises(ValueError):
            set_connection_limit(limit)
        assert get_connection_limit() == DEFAULT_CONNECTION_LIMIT


class TestCreateConnector:
    def test_connector_uses_limit(self):
        set_connection_limit(5)

        async def build():
            connector = create_connector()
            try:
                return connector.limit
            finally:
                await connector.close()

        assert asyncio.run(build()) == 5

    def test_explicit_limit_wins(self):
        async def build():
            connector = create_connector(limit=2)
            try:
                return connector.limit
            finally:
                await connector.close()

        assert asyncio.run(build()) == 2

    def test_exported_for_collaborators(self):
        import webfarm

        assert webfarm.create_connector is create_connector
