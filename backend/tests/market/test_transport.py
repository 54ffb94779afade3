"""Tests for the websocket transport helpers."""

from unittest.mock import AsyncMock, patch

import pytest

from stoxly.market.transport import derive_stream_url, stream_url, websocket_connector


class TestStreamUrl:
    """URL building for the realtime endpoint."""

    def test_no_token(self):
        """Test that the URL is untouched without a token."""
        assert stream_url("wss://quotes.example.com/realtime") == "wss://quotes.example.com/realtime"

    def test_token_appended(self):
        """Test that the token is added as a query parameter."""
        assert stream_url("wss://h/realtime", "abc") == "wss://h/realtime?token=abc"

    def test_existing_query_kept(self):
        """Test that other parameters survive and an old token is replaced."""
        assert stream_url("wss://h/rt?v=2&token=old", "new") == "wss://h/rt?v=2&token=new"

    def test_derive_from_api_url(self):
        """Test http(s) -> ws(s) with /realtime appended."""
        assert derive_stream_url("https://api.example.com/v1/") == "wss://api.example.com/v1/realtime"
        assert derive_stream_url("http://localhost:9000") == "ws://localhost:9000/realtime"


@pytest.mark.asyncio
class TestWebsocketConnector:
    """The connector handed to SubscriptionHub."""

    async def test_connect_uses_token_url(self):
        """Test that each call opens a websockets connection to the tokenized URL."""
        connection = object()
        with patch("stoxly.market.transport.websockets.connect", new=AsyncMock(return_value=connection)) as mock:
            connect = websocket_connector("wss://h/realtime", "abc", open_timeout=3)
            assert await connect() is connection
            assert await connect() is connection

        assert mock.await_count == 2
        mock.assert_called_with("wss://h/realtime?token=abc", open_timeout=3)
