"""Shared fixtures: in-memory upstream clients and a wired test app."""

import threading
from typing import Dict, List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient

from token_audit.fetcher import RequestCache, TokenDataFetcher
from token_audit.main import app, get_fetcher
from token_audit.models import ScanResult, TokenInfoResponse, TokenResponse

PEPE = "0x6982508145454ce325ddbe47a25d4ec3d2311933"
UNKNOWN = "0x000000000000000000000000000000000000dead"


def sample_scan(**overrides) -> dict:
    record = {
        "token_name": "Pepe",
        "token_symbol": "PEPE",
        "total_supply": "420690000000000",
        "owner_address": "0x0000000000000000000000000000000000000000",
        "creator_address": "0xf8e81d47203a594245e36c48e151709f0c19fbe8",
        "is_honeypot": "0",
        "buy_tax": "0.12",
        "sell_tax": "0.05",
        "holder_count": "226457",
        "is_open_source": "1",
        "is_mintable": "0",
        "hidden_owner": "0",
        "holders": [
            {
                "address": "0xf977814e90da44bfa03b6295a0616a897441acec",
                "balance": "33000000000000",
                "percent": "0.0784",
                "is_contract": 0,
                "is_locked": 0,
                "tag": "Binance 8"
            }
        ],
        "dex": [
            {
                "name": "UniswapV2",
                "liquidity": "12345678.9012",
                "pair": "0xa43fe16908251ee70ef74718545e4fe6c5ccec9f"
            }
        ],
    }
    record.update(overrides)
    return record


def sample_info() -> dict:
    return {
        "statusCode": 200,
        "data": {
            "circulatingSupply": 420690000000000,
            "totalSupply": 420690000000000,
            "mcap": 3912345678.456,
            "holders": 226457,
            "transactions": 1234567
        }
    }


def sample_token() -> dict:
    return {
        "statusCode": 200,
        "data": {
            "address": PEPE,
            "name": "Pepe",
            "symbol": "PEPE",
            "decimals": 18
        }
    }


class FakeScanClient:
    """Stands in for GoPlusClient; results are keyed by lowercase address."""

    def __init__(self, records: Optional[Dict[str, dict]] = None, error: Optional[Exception] = None):
        self.records = records or {}
        self.error = error
        self.calls: List[Tuple[str, str]] = []
        self.closed = False

    def token_security(self, chain_id: str, contract_address: str) -> ScanResult:
        self.calls.append((chain_id, contract_address))
        if self.error is not None:
            raise self.error
        return ScanResult.model_validate(self.records.get(contract_address.lower(), {}))

    def close(self):
        self.closed = True


class FakeMarketClient:
    """Stands in for DexToolsClient."""

    def __init__(
        self,
        info: Optional[dict] = None,
        token: Optional[dict] = None,
        info_error: Optional[Exception] = None,
        token_error: Optional[Exception] = None,
        gate: Optional[threading.Event] = None
    ):
        self.info = info if info is not None else sample_info()
        self.token = token if token is not None else sample_token()
        self.info_error = info_error
        self.token_error = token_error
        self.gate = gate
        self.info_calls: List[Tuple[str, str]] = []
        self.token_calls: List[Tuple[str, str]] = []
        self.closed = False

    def get_token_info(self, chain: str, contract_address: str) -> TokenInfoResponse:
        self.info_calls.append((chain, contract_address))
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.info_error is not None:
            raise self.info_error
        return TokenInfoResponse.model_validate(self.info)

    def get_token(self, chain: str, contract_address: str) -> TokenResponse:
        self.token_calls.append((chain, contract_address))
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.token_error is not None:
            raise self.token_error
        return TokenResponse.model_validate(self.token)

    def close(self):
        self.closed = True


@pytest.fixture
def scan_client():
    return FakeScanClient({PEPE: sample_scan()})


@pytest.fixture
def market_client():
    return FakeMarketClient()


@pytest.fixture
def fetcher(scan_client, market_client):
    return TokenDataFetcher(scan_client, market_client, RequestCache(maxsize=32, ttl=60))


@pytest.fixture
def client(fetcher):
    app.dependency_overrides[get_fetcher] = lambda: fetcher
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
