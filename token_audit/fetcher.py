"""Data-fetch layer: deduplicated, concurrent calls to the upstream providers."""

import asyncio
import functools
import logging
from enum import Enum
from typing import Any, Callable, NamedTuple, Optional, Tuple, Union

from cachetools import TTLCache
from prometheus_client import Counter
from pydantic import BaseModel

from token_audit.chains import get_chain_info, normalize_chain_id
from token_audit.clients import (
    DexToolsClient,
    GoPlusClient,
    UpstreamError,
    UpstreamHTTPError,
)
from token_audit.models import Notification, ScanResult, TokenInfoResponse, TokenResponse

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Something went wrong! Please try Again"

CACHE_HITS = Counter(
    'token_audit_request_cache_hits_total',
    'Requests served from the request cache',
    ['kind']
)


class FetchKind(str, Enum):
    SCAN = "scan"
    INFO = "info"
    TOKEN = "token"


class FetchStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


class RequestKey(NamedTuple):
    chain_id: str
    contract_address: str
    kind: FetchKind


def make_key(chain_id, contract_address: str, kind: FetchKind) -> RequestKey:
    """Addresses are case-insensitive, so keys use the lowercase form."""
    return RequestKey(normalize_chain_id(chain_id), contract_address.lower(), FetchKind(kind))


class FetchResult(BaseModel):
    """Outcome of one fetch. Idle means the fetch was skipped."""
    kind: FetchKind
    status: FetchStatus = FetchStatus.IDLE
    data: Optional[Union[TokenInfoResponse, TokenResponse]] = None
    error: Optional[str] = None
    notification: Optional[Notification] = None


def error_message(error: Exception) -> str:
    """
    Message shown to the user for a failed fetch.

    A structured upstream response contributes its description; anything
    else contributes its own message. Both fall back to a generic text.
    """
    if isinstance(error, UpstreamHTTPError):
        return error.description or GENERIC_ERROR_MESSAGE
    return str(error) or GENERIC_ERROR_MESSAGE


class RequestCache:
    """
    Request-level memoization keyed by (chain, address, kind).

    Entries hold the asyncio task of the request, so concurrent callers
    share one in-flight request and later callers reuse its result until
    the TTL runs out.
    """

    def __init__(self, maxsize: int = 256, ttl: int = 60):
        self._entries: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: RequestKey) -> bool:
        return key in self._entries

    def get(self, key: RequestKey) -> Optional[asyncio.Future]:
        return self._entries.get(key)

    def put(self, key: RequestKey, task: asyncio.Future):
        self._entries[key] = task

    def evict(self, key: RequestKey):
        self._entries.pop(key, None)

    def invalidate(self, chain_id, contract_address: str):
        """Drop every kind cached for a (chain, address) pair."""
        for kind in FetchKind:
            self.evict(make_key(chain_id, contract_address, kind))

    def status(self, key: RequestKey) -> FetchStatus:
        task = self._entries.get(key)
        if task is None:
            return FetchStatus.IDLE
        if not task.done():
            return FetchStatus.LOADING
        if task.cancelled() or task.exception() is not None:
            return FetchStatus.ERROR
        return FetchStatus.SUCCESS

    def clear(self):
        self._entries.clear()


class TokenDataFetcher:
    """Issues the scan and market-data requests through a shared RequestCache."""

    def __init__(
        self,
        scan_client: GoPlusClient,
        market_client: DexToolsClient,
        cache: Optional[RequestCache] = None
    ):
        self.scan_client = scan_client
        self.market_client = market_client
        self.cache = cache or RequestCache()

    async def _shared(self, key: RequestKey, call: Callable[..., Any], *args) -> Any:
        """Run `call` in a worker thread, once per key while cached."""
        task = self.cache.get(key)
        if task is None:
            task = asyncio.ensure_future(asyncio.to_thread(call, *args))
            task.add_done_callback(functools.partial(self._settle, key))
            self.cache.put(key, task)
        else:
            CACHE_HITS.labels(kind=key.kind.value).inc()
            logger.debug(f"Request cache hit for {key}")

        try:
            if task.done():
                return task.result()
            # A dropped page request must not cancel the shared task
            return await asyncio.shield(task)
        except UpstreamError:
            if self.cache.get(key) is task:
                self.cache.evict(key)
            raise

    def _settle(self, key: RequestKey, task: asyncio.Future):
        """Read the outcome of a finished task, even when no caller is left waiting on it."""
        failed = task.cancelled() or isinstance(task.exception(), UpstreamError)
        if failed and self.cache.get(key) is task:
            self.cache.evict(key)

    async def scan(self, chain_id, contract_address: str) -> ScanResult:
        """Security scan for a token. Raises UpstreamError on failure."""
        key = make_key(chain_id, contract_address, FetchKind.SCAN)
        return await self._shared(key, self.scan_client.token_security, normalize_chain_id(chain_id), contract_address)

    async def fetch(
        self,
        kind: FetchKind,
        chain_id,
        contract_address: Optional[str],
        enabled: bool = True
    ) -> FetchResult:
        """
        Fetch token info or token metadata.

        Skipped (idle) when disabled or when the chain or address is missing.
        Failures come back as an error result carrying a notification.
        """
        kind = FetchKind(kind)
        if kind == FetchKind.SCAN:
            raise ValueError("Scans are fetched with TokenDataFetcher.scan")
        if not enabled or not chain_id or not contract_address:
            return FetchResult(kind=kind)

        info = get_chain_info(chain_id)
        if info is None:
            message = f"Unsupported chain: {chain_id}"
            return FetchResult(
                kind=kind,
                status=FetchStatus.ERROR,
                error=message,
                notification=Notification(title=message)
            )

        if kind == FetchKind.INFO:
            call = self.market_client.get_token_info
        else:
            call = self.market_client.get_token

        key = make_key(chain_id, contract_address, kind)
        try:
            data = await self._shared(key, call, info.dext, contract_address)
        except UpstreamError as e:
            message = error_message(e)
            logger.error(f"Fetching {kind.value} for {contract_address} on chain {chain_id} failed: {e}")
            return FetchResult(
                kind=kind,
                status=FetchStatus.ERROR,
                error=message,
                notification=Notification(title=message)
            )

        return FetchResult(kind=kind, status=FetchStatus.SUCCESS, data=data)

    async def fetch_market_data(
        self,
        chain_id,
        contract_address: Optional[str],
        enabled: bool = True
    ) -> Tuple[FetchResult, FetchResult]:
        """Fetch token info and token metadata concurrently."""
        info_result, token_result = await asyncio.gather(
            self.fetch(FetchKind.INFO, chain_id, contract_address, enabled),
            self.fetch(FetchKind.TOKEN, chain_id, contract_address, enabled),
        )
        return info_result, token_result

    def status(self, kind: FetchKind, chain_id, contract_address: str) -> FetchStatus:
        return self.cache.status(make_key(chain_id, contract_address, kind))

    def invalidate(self, chain_id, contract_address: str):
        self.cache.invalidate(chain_id, contract_address)

    def close(self):
        self.scan_client.close()
        self.market_client.close()
