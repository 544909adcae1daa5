"""HTTP clients for the security scan and market data providers."""

import logging
from typing import Any, Dict, Optional, Type, TypeVar

import requests
from prometheus_client import Counter
from pydantic import BaseModel, ValidationError

from token_audit.config import Settings, get_settings
from token_audit.models import ScanResult, TokenInfoResponse, TokenResponse

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

UPSTREAM_REQUESTS = Counter(
    'token_audit_upstream_requests_total',
    'Upstream API calls',
    ['provider', 'outcome']
)


class UpstreamError(Exception):
    """Base class for failures talking to an upstream provider."""

    def __init__(self, provider: str, message: str):
        super().__init__(message)
        self.provider = provider
        self.message = message


class UpstreamHTTPError(UpstreamError):
    """The provider answered, with an error status or an error payload."""

    def __init__(self, provider: str, status_code: int, description: Optional[str] = None):
        super().__init__(provider, description or f"{provider} returned HTTP {status_code}")
        self.status_code = status_code
        self.description = description


class UpstreamUnavailable(UpstreamError):
    """The provider could not be reached or sent something unreadable."""


def _describe(response: requests.Response) -> Optional[str]:
    """Best-effort error message from an upstream error body."""
    try:
        body = response.json()
    except ValueError:
        return response.reason or None
    if isinstance(body, dict):
        for key in ("description", "message", "error"):
            if isinstance(body.get(key), str) and body[key]:
                return body[key]
    return response.reason or None


class UpstreamClient:
    """Thin wrapper around a requests session for one provider."""

    provider = "upstream"

    def __init__(self, base_url: str, timeout: float, headers: Optional[Dict[str, str]] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        if headers:
            self.session.headers.update(headers)

    def close(self):
        """Close the underlying session."""
        self.session.close()

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            UPSTREAM_REQUESTS.labels(provider=self.provider, outcome="unavailable").inc()
            logger.error(f"[{self.provider}] GET {url} failed: {e}")
            raise UpstreamUnavailable(self.provider, str(e)) from e

        if not response.ok:
            UPSTREAM_REQUESTS.labels(provider=self.provider, outcome="http_error").inc()
            description = _describe(response)
            logger.error(f"[{self.provider}] GET {url} returned {response.status_code}: {description}")
            raise UpstreamHTTPError(self.provider, response.status_code, description)

        try:
            payload = response.json()
        except ValueError as e:
            UPSTREAM_REQUESTS.labels(provider=self.provider, outcome="unavailable").inc()
            logger.error(f"[{self.provider}] GET {url} returned a non-JSON body")
            raise UpstreamUnavailable(self.provider, f"{self.provider} returned an unreadable response") from e

        UPSTREAM_REQUESTS.labels(provider=self.provider, outcome="ok").inc()
        return payload

    def _parse(self, model: Type[ModelT], payload: Any) -> ModelT:
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            logger.error(f"[{self.provider}] unexpected payload for {model.__name__}: {e}")
            raise UpstreamUnavailable(self.provider, f"{self.provider} returned an unexpected payload") from e


class GoPlusClient(UpstreamClient):
    """Token security scans."""

    provider = "goplus"

    # GoPlus reports success with code 1 inside a 200 response
    SUCCESS_CODE = 1

    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        headers = {}
        if settings.goplus_access_token:
            headers["Authorization"] = settings.goplus_access_token
        super().__init__(settings.goplus_base_url, settings.http_timeout, headers)

    def token_security(self, chain_id: str, contract_address: str) -> ScanResult:
        """
        Scan a token contract.

        Returns an empty ScanResult when the provider has no record of the
        address on this chain.
        """
        payload = self._get(
            f"token_security/{chain_id}",
            params={"contract_addresses": contract_address}
        )
        if not isinstance(payload, dict):
            raise UpstreamUnavailable(self.provider, "goplus returned an unexpected payload")

        if payload.get("code") != self.SUCCESS_CODE:
            raise UpstreamHTTPError(self.provider, 502, payload.get("message"))

        result = payload.get("result") or {}
        record = result.get(contract_address.lower())
        if record is None:
            # Some chains key the result by the checksummed address
            record = result.get(contract_address) or {}
        return self._parse(ScanResult, record)


class DexToolsClient(UpstreamClient):
    """Token metadata and market figures."""

    provider = "dextools"

    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        headers = {}
        if settings.dextools_api_key:
            headers["X-API-KEY"] = settings.dextools_api_key
        super().__init__(settings.dextools_base_url, settings.http_timeout, headers)

    def get_token_info(self, chain: str, contract_address: str) -> TokenInfoResponse:
        """Market cap, supply and activity figures for a token."""
        payload = self._get(f"token/{chain}/{contract_address}/info")
        return self._parse(TokenInfoResponse, payload)

    def get_token(self, chain: str, contract_address: str) -> TokenResponse:
        """Name, symbol and decimals for a token."""
        payload = self._get(f"token/{chain}/{contract_address}")
        return self._parse(TokenResponse, payload)
