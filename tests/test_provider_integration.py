"""
Kraken HTTP provider tests with mocked requests (no live network).

Verifies the fetcher's error mapping: transport failures, timeouts and
non-2xx statuses all surface as FetchError carrying the pair and cause.
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
import requests

from kraken_ticker.core.errors import APIError, FetchError
from kraken_ticker.providers.base import TickerProvider
from kraken_ticker.providers.kraken import KrakenTickerProvider
from tests.fakes.providers import valid_body


def _response(content: bytes = b"", status_code: int = 200, json_data=None) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status_code
    resp.content = content
    resp.json.return_value = json_data
    if status_code >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status_code} Server Error")
    else:
        resp.raise_for_status = MagicMock()
    return resp


class TestFetch:
    @patch("kraken_ticker.providers.kraken.requests.get")
    def test_fetch_returns_raw_body(self, mock_get):
        body = valid_body("XXBTZEUR")
        mock_get.return_value = _response(body)

        provider = KrakenTickerProvider(base_url="https://example.test/", timeout_s=3.0)
        assert provider.fetch("BTCEUR") == body

        args, kwargs = mock_get.call_args
        assert args[0] == "https://example.test/0/public/Ticker"
        assert kwargs["params"] == {"pair": "BTCEUR"}
        assert kwargs["timeout"] == 3.0

    @patch("kraken_ticker.providers.kraken.requests.get")
    def test_non_2xx_is_fetch_error(self, mock_get):
        mock_get.return_value = _response(b"oops", status_code=503)
        with pytest.raises(FetchError) as excinfo:
            KrakenTickerProvider().fetch("ETHEUR")
        assert excinfo.value.pair == "ETHEUR"
        assert isinstance(excinfo.value.cause, requests.HTTPError)

    @patch("kraken_ticker.providers.kraken.requests.get")
    def test_connection_error_is_fetch_error(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("connection refused")
        with pytest.raises(FetchError, match="connection refused"):
            KrakenTickerProvider().fetch("XRPEUR")

    @patch("kraken_ticker.providers.kraken.requests.get")
    def test_timeout_is_fetch_error(self, mock_get):
        mock_get.side_effect = requests.Timeout("read timed out")
        with pytest.raises(FetchError):
            KrakenTickerProvider().fetch("XLMEUR")

    def test_empty_pair_rejected(self):
        with pytest.raises(ValueError):
            KrakenTickerProvider().fetch("  ")

    def test_satisfies_protocol(self):
        assert isinstance(KrakenTickerProvider(), TickerProvider)


class TestSystemStatus:
    @patch("kraken_ticker.providers.kraken.requests.get")
    def test_status_envelope_returned(self, mock_get):
        payload = {"error": [], "result": {"status": "online", "timestamp": "2026-01-01T00:00:00Z"}}
        mock_get.return_value = _response(json_data=payload)
        assert KrakenTickerProvider().get_system_status() == payload

    @patch("kraken_ticker.providers.kraken.requests.get")
    def test_status_transport_failure(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("down")
        with pytest.raises(FetchError):
            KrakenTickerProvider().get_system_status()

    @patch("kraken_ticker.providers.kraken.requests.get")
    def test_status_undecodable_body(self, mock_get):
        resp = _response(b"<html>maintenance</html>")
        resp.json.side_effect = ValueError("Expecting value")
        mock_get.return_value = resp
        with pytest.raises(APIError, match="undecodable"):
            KrakenTickerProvider().get_system_status()
