from fastapi.testclient import TestClient
from web3 import Web3

from token_audit.clients import UpstreamHTTPError, UpstreamUnavailable
from token_audit.fetcher import RequestCache, TokenDataFetcher
from token_audit.main import app, get_fetcher

from conftest import PEPE, UNKNOWN, FakeMarketClient, FakeScanClient, sample_scan

CHECKSUMMED = Web3.to_checksum_address(PEPE)


def test_home_renders_form(client):
    response = client.get("/")

    assert response.status_code == 200
    assert "<form" in response.text
    assert "Avalanche C-Chain" in response.text


def test_audit_page(client, scan_client, market_client):
    response = client.get("/audit", params={"chain": "1", "contractAddress": PEPE})

    assert response.status_code == 200
    assert "Here's your audit result!" in response.text
    assert "PASSED" in response.text
    assert "12.0%" in response.text
    assert "5.0%" in response.text
    assert "$ 3,912,345,678.46" in response.text
    assert "https://dexscreener.com/ethereum/" in response.text
    assert scan_client.calls == [("1", CHECKSUMMED)]
    assert market_client.info_calls == [("ether", CHECKSUMMED)]
    assert market_client.token_calls == [("ether", CHECKSUMMED)]


def test_repeated_audits_reuse_requests(client, scan_client, market_client):
    client.get("/audit", params={"chain": "1", "contractAddress": PEPE})
    client.get("/audit", params={"chain": "1", "contractAddress": CHECKSUMMED})

    assert len(scan_client.calls) == 1
    assert len(market_client.info_calls) == 1
    assert len(market_client.token_calls) == 1


def test_refresh_refetches(client, scan_client, market_client):
    client.get("/audit", params={"chain": "1", "contractAddress": PEPE})
    response = client.get("/audit", params={"chain": "1", "contractAddress": PEPE, "refresh": "true"})

    assert response.status_code == 200
    assert len(scan_client.calls) == 2
    assert len(market_client.info_calls) == 2
    assert len(market_client.token_calls) == 2


def test_empty_scan_shows_error_panel_without_fetching(client, market_client):
    response = client.get("/audit", params={"chain": "56", "contractAddress": UNKNOWN})

    assert response.status_code == 200
    assert "Did you choose the right chain? You scanned this contract on BSC." in response.text
    assert 'id="project"' not in response.text
    assert market_client.info_calls == []
    assert market_client.token_calls == []


def test_market_failure_shows_notification():
    market = FakeMarketClient(info_error=UpstreamHTTPError("dextools", 429, "Rate limit exceeded"))
    fetcher = TokenDataFetcher(FakeScanClient({PEPE: sample_scan()}), market, RequestCache())
    app.dependency_overrides[get_fetcher] = lambda: fetcher
    try:
        with TestClient(app) as test_client:
            response = test_client.get("/audit", params={"chain": "1", "contractAddress": PEPE})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 200
    assert "Rate limit exceeded" in response.text
    assert 'id="market-cap">-<' in response.text
    # Token metadata still arrived
    assert 'id="decimals">18<' in response.text


def test_audit_page_rejects_bad_input(client, scan_client):
    response = client.get("/audit", params={"chain": "1", "contractAddress": "0x1234"})
    assert response.status_code == 400
    assert "Invalid contract address" in response.text

    response = client.get("/audit", params={"chain": "424242", "contractAddress": PEPE})
    assert response.status_code == 404
    assert "Unsupported chain" in response.text

    assert scan_client.calls == []


def test_audit_page_scan_failure(client, scan_client):
    scan_client.error = UpstreamUnavailable("goplus", "Connection refused")

    response = client.get("/audit", params={"chain": "1", "contractAddress": PEPE})

    assert response.status_code == 502
    assert "Connection refused" in response.text
    assert "<form" in response.text


def test_token_info_proxy(client, market_client):
    response = client.get("/api/token/info", params={"chain": "ether", "contractAddress": PEPE})

    assert response.status_code == 200
    body = response.json()
    assert body["statusCode"] == 200
    assert body["data"]["transactions"] == 1234567
    assert market_client.info_calls == [("ether", CHECKSUMMED)]


def test_token_proxy(client):
    response = client.get("/api/token", params={"chain": "bnb", "contractAddress": PEPE})

    assert response.status_code == 200
    assert response.json()["data"]["decimals"] == 18


def test_proxy_input_errors(client):
    response = client.get("/api/token", params={"chain": "ether"})
    assert response.status_code == 400
    assert response.json() == {"description": "contractAddress is required"}

    response = client.get("/api/token/info", params={"chain": "solana", "contractAddress": PEPE})
    assert response.status_code == 404
    assert response.json() == {"description": "Unsupported chain: solana"}


def test_proxy_upstream_errors(client, market_client):
    market_client.token_error = UpstreamHTTPError("dextools", 403, "Invalid API key")
    response = client.get("/api/token", params={"chain": "ether", "contractAddress": PEPE})
    assert response.status_code == 403
    assert response.json() == {"description": "Invalid API key"}

    market_client.info_error = UpstreamUnavailable("dextools", "Read timed out")
    response = client.get("/api/token/info", params={"chain": "ether", "contractAddress": PEPE})
    assert response.status_code == 502
    assert response.json() == {"description": "Read timed out"}


def test_scan_proxy(client):
    response = client.get("/api/scan", params={"chain": "1", "contractAddress": PEPE})
    assert response.status_code == 200
    assert response.json()["token_symbol"] == "PEPE"

    response = client.get("/api/scan", params={"chain": "1", "contractAddress": UNKNOWN})
    assert response.status_code == 200
    assert response.json() == {}


def test_audit_api(client):
    response = client.get("/api/audit", params={"chain": "1", "contractAddress": PEPE})

    assert response.status_code == 200
    body = response.json()
    assert body["buy_tax"] == {"percent": 12.0, "display": "12.0%", "high": True}
    assert body["honeypot"] == "PASSED"
    assert body["total_supply"] == "420,690,000,000,000"
    assert body["info_status"] == "success"


def test_audit_api_scan_failure(client, scan_client):
    scan_client.error = UpstreamHTTPError("goplus", 502, "too many requests")

    response = client.get("/api/audit", params={"chain": "1", "contractAddress": PEPE})

    assert response.status_code == 502
    assert response.json() == {"description": "too many requests"}


def test_health(client):
    client.get("/audit", params={"chain": "1", "contractAddress": PEPE})

    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["supported_chains"] == 9
    assert body["cached_requests"] == 3


def test_metrics(client):
    client.get("/health")

    response = client.get("/metrics")

    assert response.status_code == 200
    assert "token_audit_requests_total" in response.text
