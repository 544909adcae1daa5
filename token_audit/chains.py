"""Supported chains and the outbound links built from them."""

from enum import Enum
from typing import Dict, Optional

from token_audit.models import ChainInfo


class SupportedChainId(str, Enum):
    """Chain identifiers as used by the security scan provider."""
    ETHEREUM = "1"
    OPTIMISM = "10"
    CRONOS = "25"
    BSC = "56"
    POLYGON = "137"
    FANTOM = "250"
    BASE = "8453"
    ARBITRUM = "42161"
    AVALANCHE = "43114"


# Analytics sites linked from the audit page
DEX_SITE_URLS = {
    "dexScreener": "https://dexscreener.com",
    "dexView": "https://www.dexview.com",
    "dexTools": "https://www.dextools.io/app/en",
}

CHAIN_INFO: Dict[SupportedChainId, ChainInfo] = {
    SupportedChainId.ETHEREUM: ChainInfo(
        chain_id=SupportedChainId.ETHEREUM.value,
        code="ETH",
        label="Ethereum",
        logo="chains/eth.svg",
        explorer="https://etherscan.io",
        dext="ether",
        dexs="ethereum",
        dexv="eth",
    ),
    SupportedChainId.BSC: ChainInfo(
        chain_id=SupportedChainId.BSC.value,
        code="BSC",
        label="BNB Smart Chain",
        logo="chains/bsc.svg",
        explorer="https://bscscan.com",
        dext="bnb",
        dexs="bsc",
        dexv="bsc",
    ),
    SupportedChainId.POLYGON: ChainInfo(
        chain_id=SupportedChainId.POLYGON.value,
        code="POLYGON",
        label="Polygon",
        logo="chains/polygon.svg",
        explorer="https://polygonscan.com",
        dext="polygon",
        dexs="polygon",
        dexv="polygon",
    ),
    SupportedChainId.AVALANCHE: ChainInfo(
        chain_id=SupportedChainId.AVALANCHE.value,
        code="AVAX",
        label="Avalanche C-Chain",
        logo="chains/avax.svg",
        explorer="https://avascan.info",
        dext="avalanche",
        dexs="avalanche",
    ),
    SupportedChainId.ARBITRUM: ChainInfo(
        chain_id=SupportedChainId.ARBITRUM.value,
        code="ARB",
        label="Arbitrum One",
        logo="chains/arb.svg",
        explorer="https://arbiscan.io",
        dext="arbitrum",
        dexs="arbitrum",
        dexv="arbitrum",
    ),
    SupportedChainId.BASE: ChainInfo(
        chain_id=SupportedChainId.BASE.value,
        code="BASE",
        label="Base",
        logo="chains/base.svg",
        explorer="https://basescan.org",
        dext="base",
        dexs="base",
        dexv="base",
    ),
    SupportedChainId.OPTIMISM: ChainInfo(
        chain_id=SupportedChainId.OPTIMISM.value,
        code="OP",
        label="Optimism",
        logo="chains/op.svg",
        explorer="https://optimistic.etherscan.io",
        dext="optimism",
        dexs="optimism",
    ),
    SupportedChainId.FANTOM: ChainInfo(
        chain_id=SupportedChainId.FANTOM.value,
        code="FTM",
        label="Fantom",
        logo="chains/ftm.svg",
        explorer="https://ftmscan.com",
        dext="fantom",
        dexs="fantom",
    ),
    SupportedChainId.CRONOS: ChainInfo(
        chain_id=SupportedChainId.CRONOS.value,
        code="CRO",
        label="Cronos",
        logo="chains/cro.svg",
        explorer="https://cronoscan.com",
        dext="cronos",
        dexs="cronos",
    ),
}


def normalize_chain_id(chain_id) -> str:
    """Chain ids arrive as ints, strings or SupportedChainId members."""
    if isinstance(chain_id, Enum):
        return str(chain_id.value)
    return str(chain_id).strip()


def get_chain_info(chain_id) -> Optional[ChainInfo]:
    """Look up chain info by id; None for unsupported chains."""
    try:
        return CHAIN_INFO[SupportedChainId(normalize_chain_id(chain_id))]
    except ValueError:
        return None


def get_chain_info_by_dext(slug: str) -> Optional[ChainInfo]:
    """Look up chain info by its DexTools slug."""
    for info in CHAIN_INFO.values():
        if info.dext == slug:
            return info
    return None


def _is_avalanche(info: ChainInfo) -> bool:
    return info.chain_id == SupportedChainId.AVALANCHE.value


def explorer_address_url(info: ChainInfo, address: Optional[str]) -> str:
    """Explorer page for an account (creator, owner, holder)."""
    path = "blockchain/all/address" if _is_avalanche(info) else "address"
    return f"{info.explorer}/{path}/{address or '-'}"


def explorer_token_url(info: ChainInfo, address: Optional[str]) -> str:
    """Explorer page for the token contract itself."""
    path = "blockchain/c/address" if _is_avalanche(info) else "token"
    return f"{info.explorer}/{path}/{address or '-'}"


def explorer_pair_url(info: ChainInfo, pair: str) -> str:
    """Explorer page for a liquidity pool contract."""
    path = "blockchain/c/address" if _is_avalanche(info) else "address"
    return f"{info.explorer}/{path}/{pair}"


def dextools_pair_url(info: ChainInfo, pair: str) -> str:
    return f"{DEX_SITE_URLS['dexTools']}/{info.dext}/pair-explorer/{pair}"


def dexscreener_url(info: ChainInfo, address: str) -> Optional[str]:
    if not info.dexs:
        return None
    return f"{DEX_SITE_URLS['dexScreener']}/{info.dexs}/{address}"


def dexview_url(info: ChainInfo, address: str) -> Optional[str]:
    if not info.dexv:
        return None
    return f"{DEX_SITE_URLS['dexView']}/{info.dexv}/{address}"
