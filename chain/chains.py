from __future__ import annotations

import json
from typing import Dict

from app.config import get_settings

PULSECHAIN_ID = 369


class UnsupportedChainError(ValueError):
    pass


def _load_rpc_urls() -> Dict[int, str]:
    """
    Load RPC URLs from settings.

    PulseChain always resolves to PULSECHAIN_RPC_URL unless RPC_URLS overrides it:
      RPC_URLS='{"369":"https://rpc.pulsechain.com","943":"https://rpc.v4.testnet.pulsechain.com"}'
    """
    settings = get_settings()

    rpc_urls: Dict[int, str] = {}
    if settings.PULSECHAIN_RPC_URL:
        rpc_urls[PULSECHAIN_ID] = settings.PULSECHAIN_RPC_URL.rstrip("/")

    raw = settings.RPC_URLS
    if not raw:
        return rpc_urls

    try:
        data = json.loads(raw)
    except ValueError as e:
        raise ValueError("RPC_URLS must be valid JSON") from e

    for k, v in data.items():
        try:
            chain_id = int(k)
        except ValueError:
            raise ValueError(f"Invalid chain_id key in RPC_URLS: {k}")

        if not isinstance(v, str) or not v:
            raise ValueError(f"Invalid RPC URL for chain {chain_id}")

        rpc_urls[chain_id] = v.rstrip("/")

    return rpc_urls


def get_rpc_url(chain_id: int, override: str | None = None) -> str:
    """
    RPC URL for a chain. A per-automation endpoint (``override``) wins.
    Raises UnsupportedChainError if nothing is configured.
    """
    if override:
        return override.rstrip("/")

    rpc_url = _load_rpc_urls().get(chain_id)
    if not rpc_url:
        raise UnsupportedChainError(f"Unsupported chain_id: {chain_id}")

    return rpc_url


def list_supported_chains() -> list[int]:
    return sorted(_load_rpc_urls().keys())
