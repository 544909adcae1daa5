"""Merge the scan result and the market data into one read-only view."""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict

from token_audit.chains import (
    dexscreener_url,
    dextools_pair_url,
    dexview_url,
    explorer_address_url,
    explorer_pair_url,
    explorer_token_url,
    get_chain_info,
)
from token_audit.fetcher import FetchResult, FetchStatus
from token_audit.formatting import (
    PLACEHOLDER,
    format_flag,
    format_number,
    format_percent,
    format_usd,
    is_high_tax,
    shorten_address,
    to_percent,
    to_decimal,
)
from token_audit.models import ChainInfo, Notification, ScanResult

# (field, label, value that signals risk; None when the flag is informational)
RISK_CHECKS = [
    ("is_open_source", "Contract source verified", "0"),
    ("is_proxy", "Proxy contract", "1"),
    ("is_mintable", "Mint function", "1"),
    ("can_take_back_ownership", "Can take back ownership", "1"),
    ("owner_change_balance", "Owner can change balance", "1"),
    ("hidden_owner", "Hidden owner", "1"),
    ("selfdestruct", "Self-destruct", "1"),
    ("external_call", "External call risk", "1"),
    ("cannot_buy", "Cannot buy", "1"),
    ("cannot_sell_all", "Cannot sell all", "1"),
    ("slippage_modifiable", "Modifiable tax", "1"),
    ("personal_slippage_modifiable", "Per-address tax", "1"),
    ("is_blacklisted", "Blacklist function", "1"),
    ("is_whitelisted", "Whitelist function", "1"),
    ("is_anti_whale", "Anti-whale limits", None),
    ("trading_cooldown", "Trading cooldown", "1"),
    ("transfer_pausable", "Pausable transfers", "1"),
]


class Link(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str
    href: str


class TaxView(BaseModel):
    model_config = ConfigDict(frozen=True)

    percent: Optional[float] = None
    display: str = PLACEHOLDER
    high: bool = False


class RiskCheck(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str
    value: str
    risky: bool


class HolderRow(BaseModel):
    model_config = ConfigDict(frozen=True)

    address: Link
    percent: str
    is_contract: bool
    is_locked: bool
    tag: str


class DexRow(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    liquidity: str
    pair: Optional[Link] = None


class AuditView(BaseModel):
    """Everything the audit page renders."""
    model_config = ConfigDict(frozen=True)

    chain: ChainInfo
    contract_address: Optional[str] = None
    contract_address_short: str = PLACEHOLDER
    is_empty: bool = False
    empty_message: Optional[str] = None

    token_initial: str = PLACEHOLDER
    token_name: str = PLACEHOLDER
    token_symbol: str = PLACEHOLDER
    creator: Optional[Link] = None
    owner: Optional[Link] = None
    explorer: Optional[Link] = None
    pair: Optional[Link] = None

    decimals: str = PLACEHOLDER
    total_supply: str = PLACEHOLDER
    circulating_supply: str = PLACEHOLDER

    honeypot: str = "FAILED"
    honeypot_passed: bool = False
    market_cap: str = PLACEHOLDER
    transactions: str = PLACEHOLDER

    buy_tax: TaxView = TaxView()
    sell_tax: TaxView = TaxView()

    dex_links: List[Link] = []
    checks: List[RiskCheck] = []
    holders: List[HolderRow] = []
    holder_count: str = PLACEHOLDER
    dex_pairs: List[DexRow] = []

    info_status: FetchStatus = FetchStatus.IDLE
    token_status: FetchStatus = FetchStatus.IDLE
    notifications: List[Notification] = []


def honeypot_passed(value: Any) -> bool:
    """Only a value that reads as the number 0 passes."""
    number = to_decimal(value)
    return number is not None and number == 0


def build_tax(value: Any) -> TaxView:
    percent = to_percent(value)
    return TaxView(percent=percent, display=format_percent(percent), high=is_high_tax(percent))


def _account_link(info: ChainInfo, address: Optional[str]) -> Link:
    label = shorten_address(address, 3) if address else "unknown"
    return Link(label=label, href=explorer_address_url(info, address))


def build_checks(scan: ScanResult) -> List[RiskCheck]:
    checks = []
    for field, label, risky_value in RISK_CHECKS:
        raw = getattr(scan, field, None)
        value = format_flag(raw)
        risky = risky_value is not None and raw is not None and str(raw).strip() == risky_value
        checks.append(RiskCheck(label=label, value=value, risky=risky))
    return checks


def build_holder_rows(info: ChainInfo, scan: ScanResult) -> List[HolderRow]:
    rows = []
    for holder in scan.holders or []:
        percent = to_percent(holder.percent)
        rows.append(HolderRow(
            address=Link(
                label=shorten_address(holder.address),
                href=explorer_address_url(info, holder.address)
            ),
            percent=format_percent(percent) if percent is not None else PLACEHOLDER,
            is_contract=bool(holder.is_contract),
            is_locked=bool(holder.is_locked),
            tag=holder.tag or ""
        ))
    return rows


def build_dex_rows(info: ChainInfo, scan: ScanResult) -> List[DexRow]:
    rows = []
    for dex in scan.dex or []:
        pair = None
        if dex.pair:
            pair = Link(label=shorten_address(dex.pair, 3), href=explorer_pair_url(info, dex.pair))
        rows.append(DexRow(
            name=dex.name or PLACEHOLDER,
            liquidity=format_usd(dex.liquidity),
            pair=pair
        ))
    return rows


def build_dex_links(info: ChainInfo, scan: ScanResult, contract_address: Optional[str]) -> List[Link]:
    links = []
    if scan.dex and scan.dex[0].pair:
        links.append(Link(label="DexTools", href=dextools_pair_url(info, scan.dex[0].pair)))
    if contract_address:
        screener = dexscreener_url(info, contract_address)
        if screener:
            links.append(Link(label="DexScreener", href=screener))
        view = dexview_url(info, contract_address)
        if view:
            links.append(Link(label="DexView", href=view))
    return links


def _data(result: Optional[FetchResult]):
    if result is None or result.status != FetchStatus.SUCCESS or result.data is None:
        return None
    return result.data.data


def build_audit_view(
    scan: ScanResult,
    chain_id,
    contract_address: Optional[str],
    info_result: Optional[FetchResult] = None,
    token_result: Optional[FetchResult] = None,
    notifications: Optional[List[Notification]] = None
) -> AuditView:
    """
    Combine the caller's scan result with the two market-data fetches.

    Missing fields become placeholders; nothing here raises on absent data.
    An unsupported chain is the caller's problem and raises ValueError.
    """
    info = get_chain_info(chain_id)
    if info is None:
        raise ValueError(f"Unsupported chain: {chain_id}")

    collected = list(notifications or [])
    for result in (info_result, token_result):
        if result is not None and result.notification is not None:
            collected.append(result.notification)

    header = dict(
        chain=info,
        contract_address=contract_address,
        contract_address_short=shorten_address(contract_address) if contract_address else PLACEHOLDER,
        info_status=info_result.status if info_result else FetchStatus.IDLE,
        token_status=token_result.status if token_result else FetchStatus.IDLE,
        notifications=collected,
    )

    if scan.is_empty():
        return AuditView(
            is_empty=True,
            empty_message=f"Did you choose the right chain? You scanned this contract on {info.code}.",
            **header
        )

    market = _data(info_result)
    token = _data(token_result)
    passed = honeypot_passed(scan.is_honeypot)

    pair = None
    if scan.dex and scan.dex[0].pair:
        pair = Link(label=shorten_address(scan.dex[0].pair, 3), href=explorer_pair_url(info, scan.dex[0].pair))

    market_cap = PLACEHOLDER
    if market is not None and market.mcap:
        market_cap = format_usd(round(market.mcap, 2))

    return AuditView(
        token_initial=scan.token_name[0] if scan.token_name else PLACEHOLDER,
        token_name=scan.token_name.upper() if scan.token_name else PLACEHOLDER,
        token_symbol=scan.token_symbol.upper() if scan.token_symbol else PLACEHOLDER,
        creator=_account_link(info, scan.creator_address),
        owner=_account_link(info, scan.owner_address),
        explorer=Link(
            label=shorten_address(contract_address, 3) if contract_address else "unknown",
            href=explorer_token_url(info, contract_address)
        ),
        pair=pair,
        decimals=format_number(token.decimals) if token is not None else PLACEHOLDER,
        total_supply=format_number(scan.total_supply),
        circulating_supply=format_number(market.circulatingSupply) if market is not None else PLACEHOLDER,
        honeypot="PASSED" if passed else "FAILED",
        honeypot_passed=passed,
        market_cap=market_cap,
        transactions=format_number(market.transactions) if market is not None else PLACEHOLDER,
        buy_tax=build_tax(scan.buy_tax),
        sell_tax=build_tax(scan.sell_tax),
        dex_links=build_dex_links(info, scan, contract_address),
        checks=build_checks(scan),
        holders=build_holder_rows(info, scan),
        holder_count=format_number(scan.holder_count),
        dex_pairs=build_dex_rows(info, scan),
        **header
    )
