from __future__ import annotations

import re
from enum import Enum
from typing import Any

from pydantic import BaseModel

from chain.rpc import TransactionRevertedError


class ErrorType(str, Enum):
    NETWORK = "network"
    BLOCKCHAIN = "blockchain"
    CONFIG = "config"
    UNKNOWN = "unknown"


class AutomationStopped(RuntimeError):
    """A guard node halted the run on purpose; the message is shown as-is."""


class ParsedError(BaseModel):
    user_message: str
    technical_details: str
    error_type: ErrorType
    is_retryable: bool
    revert_reason: str | None = None
    tx_hash: str | None = None


# (pattern, user message, type, retryable); first match wins
ERROR_PATTERNS: list[tuple[re.Pattern[str], str, ErrorType, bool]] = [
    (
        re.compile(r"504 Gateway|502 Bad Gateway|503 Service", re.I),
        "RPC server is temporarily unavailable. Try again in a moment.",
        ErrorType.NETWORK,
        True,
    ),
    (
        re.compile(r"ETIMEDOUT|ECONNREFUSED|ENOTFOUND|timeout|timed out", re.I),
        "Request timed out. The network may be congested.",
        ErrorType.NETWORK,
        True,
    ),
    (
        re.compile(r"rate limit|429|too many requests", re.I),
        "Too many requests. Please wait and try again.",
        ErrorType.NETWORK,
        True,
    ),
    (
        re.compile(r"network error|connection ?error|unable to connect|max retries exceeded", re.I),
        "Network connection failed. Check the RPC endpoint.",
        ErrorType.NETWORK,
        True,
    ),
    (
        re.compile(r"insufficient funds", re.I),
        "Wallet has insufficient funds for this transaction.",
        ErrorType.BLOCKCHAIN,
        False,
    ),
    (
        re.compile(r"gas required exceeds|exceeds block gas limit", re.I),
        "Transaction would fail - gas estimation exceeded.",
        ErrorType.BLOCKCHAIN,
        False,
    ),
    (
        re.compile(r"nonce too low|nonce has already been used", re.I),
        "Transaction conflict - nonce already used. Try again.",
        ErrorType.BLOCKCHAIN,
        True,
    ),
    (
        re.compile(r"replacement.*underpriced", re.I),
        "Gas price too low for replacement transaction.",
        ErrorType.BLOCKCHAIN,
        True,
    ),
    (
        re.compile(r"execution reverted|revert", re.I),
        "Transaction would revert - check your parameters.",
        ErrorType.BLOCKCHAIN,
        False,
    ),
    (
        re.compile(r"not configured|not found|does not exist", re.I),
        "Resource not found. Check your configuration.",
        ErrorType.CONFIG,
        False,
    ),
    (
        re.compile(r"invalid address|invalid token|checksum", re.I),
        "Invalid address provided. Check your configuration.",
        ErrorType.CONFIG,
        False,
    ),
]

_REVERT_REASON = re.compile(r"execution reverted:?\s*(.+)$", re.I)


def _revert_reason(message: str) -> str | None:
    match = _REVERT_REASON.search(message)
    if not match:
        return None
    reason = match.group(1).strip()
    return reason or None


def _tx_hash(error: BaseException) -> str | None:
    if isinstance(error, TransactionRevertedError):
        return error.tx_hash
    value: Any = getattr(error, "tx_hash", None)
    return value if isinstance(value, str) else None


def parse_blockchain_error(error: BaseException) -> ParsedError:
    """
    Classify an executor failure for display. The chained cause is included in
    the matched text so wrapped RPC errors keep their original message.
    """
    parts = [str(error)]
    if error.__cause__ is not None and str(error.__cause__) not in parts[0]:
        parts.append(str(error.__cause__))
    details = " | ".join(p for p in parts if p) or type(error).__name__

    revert_reason = _revert_reason(details)
    tx_hash = _tx_hash(error)

    if isinstance(error, AutomationStopped):
        return ParsedError(
            user_message=str(error),
            technical_details=details,
            error_type=ErrorType.BLOCKCHAIN,
            is_retryable=True,
        )

    for pattern, message, error_type, retryable in ERROR_PATTERNS:
        if pattern.search(details):
            if revert_reason and error_type == ErrorType.BLOCKCHAIN and "revert" in pattern.pattern:
                message = f"Transaction reverted: {revert_reason}"
            return ParsedError(
                user_message=message,
                technical_details=details,
                error_type=error_type,
                is_retryable=retryable,
                revert_reason=revert_reason,
                tx_hash=tx_hash,
            )

    return ParsedError(
        user_message="An unexpected error occurred.",
        technical_details=details,
        error_type=ErrorType.UNKNOWN,
        is_retryable=False,
        revert_reason=revert_reason,
        tx_hash=tx_hash,
    )
