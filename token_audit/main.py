"""FastAPI application for the token audit front-end."""

import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, Query, Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from web3 import Web3

from token_audit.aggregator import AuditView, build_audit_view
from token_audit.chains import CHAIN_INFO, get_chain_info, get_chain_info_by_dext
from token_audit.clients import (
    DexToolsClient,
    GoPlusClient,
    UpstreamError,
    UpstreamHTTPError,
)
from token_audit.config import get_settings
from token_audit.fetcher import RequestCache, TokenDataFetcher, error_message
from token_audit.models import (
    ChainInfo,
    ErrorResponse,
    HealthResponse,
    Notification,
    TokenInfoResponse,
    TokenResponse,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent

# Prometheus metrics
REQUEST_COUNT = Counter(
    'token_audit_requests_total',
    'Total requests',
    ['method', 'endpoint', 'status']
)
REQUEST_LATENCY = Histogram(
    'token_audit_request_latency_seconds',
    'Request latency',
    ['endpoint']
)


class InvalidAuditRequest(Exception):
    """The chain or contract address supplied by the user is unusable."""

    def __init__(self, status_code: int, description: str):
        super().__init__(description)
        self.status_code = status_code
        self.description = description


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    logger.info("Starting Token Audit...")
    settings = get_settings()

    logger.info(f"Scan provider: {settings.goplus_base_url}")
    logger.info(f"Market data provider: {settings.dextools_base_url}")
    if not settings.dextools_api_key:
        logger.warning("DEXTOOLS_API_KEY is not set, market data requests will likely be rejected")

    app.state.fetcher = TokenDataFetcher(
        GoPlusClient(settings),
        DexToolsClient(settings),
        RequestCache(maxsize=settings.cache_maxsize, ttl=settings.cache_ttl)
    )
    logger.info(f"Request cache ready (ttl={settings.cache_ttl}s, maxsize={settings.cache_maxsize})")

    yield

    # Shutdown
    logger.info("Shutting down...")
    app.state.fetcher.close()
    logger.info("Shutdown complete")


# Create FastAPI app
app = FastAPI(
    title="Token Audit",
    description="Audit token contracts with security scan and market data",
    version="1.0.0",
    lifespan=lifespan
)

# Add Gzip compression middleware (min 1KB to compress)
app.add_middleware(GZipMiddleware, minimum_size=1000)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.mount("/static", StaticFiles(directory=BASE_DIR / "static"), name="static")
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    """Middleware to track request metrics."""
    start_time = time.time()
    response = await call_next(request)

    # Record metrics (skip /metrics endpoint to avoid recursion)
    if request.url.path != "/metrics":
        latency = time.time() - start_time
        REQUEST_COUNT.labels(
            method=request.method,
            endpoint=request.url.path,
            status=response.status_code
        ).inc()
        REQUEST_LATENCY.labels(endpoint=request.url.path).observe(latency)

    return response


def get_fetcher(request: Request) -> TokenDataFetcher:
    """Shared fetcher created in the lifespan."""
    return request.app.state.fetcher


def error_response(status_code: int, description: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(description=description).model_dump()
    )


@app.exception_handler(UpstreamError)
async def upstream_error_handler(request: Request, exc: UpstreamError):
    """Upstream failures on the API routes keep the provider's status where there is one."""
    status_code = 502
    if isinstance(exc, UpstreamHTTPError) and exc.status_code >= 400:
        status_code = exc.status_code
    return error_response(status_code, error_message(exc))


@app.exception_handler(InvalidAuditRequest)
async def invalid_request_handler(request: Request, exc: InvalidAuditRequest):
    return error_response(exc.status_code, exc.description)


def parse_address(raw: Optional[str]) -> str:
    """Validate a contract address and return it checksummed."""
    if not raw or not raw.strip():
        raise InvalidAuditRequest(400, "contractAddress is required")
    candidate = raw.strip().lower()
    if not Web3.is_address(candidate):
        raise InvalidAuditRequest(400, f"Invalid contract address: {raw.strip()}")
    return Web3.to_checksum_address(candidate)


def parse_chain(raw: Optional[str]) -> ChainInfo:
    if not raw or not raw.strip():
        raise InvalidAuditRequest(400, "chain is required")
    info = get_chain_info(raw)
    if info is None:
        raise InvalidAuditRequest(404, f"Unsupported chain: {raw.strip()}")
    return info


def parse_dext_chain(raw: Optional[str]) -> ChainInfo:
    if not raw or not raw.strip():
        raise InvalidAuditRequest(400, "chain is required")
    info = get_chain_info_by_dext(raw.strip())
    if info is None:
        raise InvalidAuditRequest(404, f"Unsupported chain: {raw.strip()}")
    return info


async def run_audit(
    fetcher: TokenDataFetcher,
    info: ChainInfo,
    contract_address: str,
    refresh: bool = False
) -> AuditView:
    """
    Scan the contract, then fetch market data and aggregate.

    The market-data fetches are skipped when the scan came back empty.
    Scan failures propagate as UpstreamError.
    """
    if refresh:
        fetcher.invalidate(info.chain_id, contract_address)

    scan = await fetcher.scan(info.chain_id, contract_address)
    info_result, token_result = await fetcher.fetch_market_data(
        info.chain_id,
        contract_address,
        enabled=not scan.is_empty()
    )
    return build_audit_view(scan, info.chain_id, contract_address, info_result, token_result)


def render_form(
    request: Request,
    notifications: Optional[List[Notification]] = None,
    status_code: int = 200,
    chain: Optional[str] = None,
    contract_address: Optional[str] = None
) -> HTMLResponse:
    context: Dict[str, Any] = {
        "app_title": get_settings().app_title,
        "chains": list(CHAIN_INFO.values()),
        "selected_chain": chain,
        "contract_address": contract_address or "",
        "notifications": notifications or [],
    }
    return templates.TemplateResponse(request, "index.html", context, status_code=status_code)


@app.get("/", response_class=HTMLResponse)
async def home(request: Request):
    """Audit form."""
    return render_form(request)


@app.get("/audit", response_class=HTMLResponse)
async def audit_page(
    request: Request,
    chain: Optional[str] = None,
    contract_address: Optional[str] = Query(None, alias="contractAddress"),
    refresh: bool = False,
    fetcher: TokenDataFetcher = Depends(get_fetcher)
):
    """
    Audit result page.

    `refresh=true` re-runs the scan and market-data requests instead of
    reusing the request cache.
    """
    try:
        info = parse_chain(chain)
        address = parse_address(contract_address)
    except InvalidAuditRequest as e:
        return render_form(
            request,
            [Notification(title=e.description)],
            status_code=e.status_code,
            chain=chain,
            contract_address=contract_address
        )

    try:
        view = await run_audit(fetcher, info, address, refresh)
    except UpstreamError as e:
        logger.error(f"Scan failed for {address} on chain {info.chain_id}: {e}")
        return render_form(
            request,
            [Notification(title=error_message(e))],
            status_code=502,
            chain=info.chain_id,
            contract_address=address
        )

    context = {
        "app_title": get_settings().app_title,
        "view": view,
        "notifications": view.notifications,
    }
    return templates.TemplateResponse(request, "audit.html", context)


@app.get("/api/scan")
async def scan_proxy(
    chain: Optional[str] = None,
    contract_address: Optional[str] = Query(None, alias="contractAddress"),
    fetcher: TokenDataFetcher = Depends(get_fetcher)
):
    """
    Security scan for a token.

    Returns an empty object when the provider has no record of the address.
    """
    info = parse_chain(chain)
    address = parse_address(contract_address)
    scan = await fetcher.scan(info.chain_id, address)
    return JSONResponse(content=scan.model_dump(mode="json", exclude_none=True))


@app.get("/api/token/info", response_model=TokenInfoResponse)
async def token_info_proxy(
    chain: Optional[str] = None,
    contract_address: Optional[str] = Query(None, alias="contractAddress"),
    fetcher: TokenDataFetcher = Depends(get_fetcher)
):
    """
    Token market info (market cap, circulating supply, transactions).

    Query Parameters:
        - chain: market data chain slug, e.g. "ether" or "bnb"
        - contractAddress: token contract address
    """
    info = parse_dext_chain(chain)
    address = parse_address(contract_address)
    return await run_in_threadpool(fetcher.market_client.get_token_info, info.dext, address)


@app.get("/api/token", response_model=TokenResponse)
async def token_proxy(
    chain: Optional[str] = None,
    contract_address: Optional[str] = Query(None, alias="contractAddress"),
    fetcher: TokenDataFetcher = Depends(get_fetcher)
):
    """
    Token metadata (name, symbol, decimals).

    Query Parameters:
        - chain: market data chain slug, e.g. "ether" or "bnb"
        - contractAddress: token contract address
    """
    info = parse_dext_chain(chain)
    address = parse_address(contract_address)
    return await run_in_threadpool(fetcher.market_client.get_token, info.dext, address)


@app.get("/api/audit", response_model=AuditView)
async def audit_api(
    chain: Optional[str] = None,
    contract_address: Optional[str] = Query(None, alias="contractAddress"),
    refresh: bool = False,
    fetcher: TokenDataFetcher = Depends(get_fetcher)
):
    """Aggregated audit view as JSON."""
    info = parse_chain(chain)
    address = parse_address(contract_address)
    return await run_audit(fetcher, info, address, refresh)


@app.get("/health", response_model=HealthResponse)
async def health_check(fetcher: TokenDataFetcher = Depends(get_fetcher)):
    """
    Health check endpoint for Kubernetes probes.

    Returns the number of supported chains and live cache entries.
    """
    return HealthResponse(
        status="healthy",
        supported_chains=len(CHAIN_INFO),
        cached_requests=len(fetcher.cache)
    )


@app.get("/metrics")
async def prometheus_metrics():
    """
    Prometheus metrics endpoint.

    Returns metrics in Prometheus text format for scraping.
    """
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
