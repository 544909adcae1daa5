"""Pydantic models for upstream payloads and API responses."""

from pydantic import BaseModel, ConfigDict, Field
from typing import Any, List, Optional


class Holder(BaseModel):
    """Token holder as reported by the security scan."""
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    address: Optional[str] = None
    balance: Optional[str] = None
    percent: Optional[str] = None
    is_contract: Optional[int] = None
    is_locked: Optional[int] = None
    tag: Optional[str] = None


class DexPair(BaseModel):
    """Liquidity pool the token trades in."""
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    name: Optional[str] = None
    liquidity: Optional[str] = None
    pair: Optional[str] = None
    liquidity_type: Optional[str] = None


class ScanResult(BaseModel):
    """
    Token security record from the scan provider.

    Every field is optional and unknown fields are kept as-is; the record is
    rendered, never validated. Numbers are kept in their string form.
    """
    model_config = ConfigDict(extra="allow", frozen=True, coerce_numbers_to_str=True)

    token_name: Optional[str] = None
    token_symbol: Optional[str] = None
    total_supply: Optional[str] = None
    owner_address: Optional[str] = None
    creator_address: Optional[str] = None
    is_honeypot: Optional[Any] = None
    buy_tax: Optional[Any] = None
    sell_tax: Optional[Any] = None
    holders: Optional[List[Holder]] = None
    holder_count: Optional[str] = None
    dex: Optional[List[DexPair]] = None
    lp_holders: Optional[List[Holder]] = None
    lp_holder_count: Optional[str] = None

    is_open_source: Optional[str] = None
    is_proxy: Optional[str] = None
    is_mintable: Optional[str] = None
    can_take_back_ownership: Optional[str] = None
    owner_change_balance: Optional[str] = None
    hidden_owner: Optional[str] = None
    selfdestruct: Optional[str] = None
    external_call: Optional[str] = None
    cannot_buy: Optional[str] = None
    cannot_sell_all: Optional[str] = None
    slippage_modifiable: Optional[str] = None
    personal_slippage_modifiable: Optional[str] = None
    is_blacklisted: Optional[str] = None
    is_whitelisted: Optional[str] = None
    is_anti_whale: Optional[str] = None
    trading_cooldown: Optional[str] = None
    transfer_pausable: Optional[str] = None

    def is_empty(self) -> bool:
        """True when the provider returned nothing for the address."""
        return not self.model_fields_set and not self.model_extra


class ChainInfo(BaseModel):
    """Static chain information used for display and outbound links."""
    model_config = ConfigDict(frozen=True)

    chain_id: str
    code: str
    label: str
    logo: str
    explorer: str
    dext: str
    dexs: Optional[str] = None
    dexv: Optional[str] = None


class TokenInfoData(BaseModel):
    """Market figures for a token."""
    model_config = ConfigDict(extra="allow")

    circulatingSupply: Optional[float] = None
    totalSupply: Optional[float] = None
    mcap: Optional[float] = None
    fdv: Optional[float] = None
    holders: Optional[int] = None
    transactions: Optional[int] = None


class TokenInfoResponse(BaseModel):
    """Envelope returned by /api/token/info."""
    statusCode: Optional[int] = None
    data: Optional[TokenInfoData] = None


class TokenData(BaseModel):
    """Token metadata."""
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    address: Optional[str] = None
    name: Optional[str] = None
    symbol: Optional[str] = None
    decimals: Optional[int] = None
    logo: Optional[str] = None
    creationTime: Optional[str] = None


class TokenResponse(BaseModel):
    """Envelope returned by /api/token."""
    statusCode: Optional[int] = None
    data: Optional[TokenData] = None


class Notification(BaseModel):
    """Transient user-facing message."""
    title: str
    status: str = "error"


class ErrorResponse(BaseModel):
    """Error body returned by the proxy endpoints."""
    description: str


class HealthResponse(BaseModel):
    """Response model for /health endpoint."""
    status: str
    supported_chains: int
    cached_requests: int = Field(default=0)
