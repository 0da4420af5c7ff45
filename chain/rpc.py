from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any

from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted

from app.config import get_settings
from chain.abis import ERC20_ABI, ROUTER_ABI

logger = logging.getLogger(__name__)


class Web3RPCError(RuntimeError):
    pass


class TransactionRevertedError(Web3RPCError):
    def __init__(self, tx_hash: str, receipt: Any = None) -> None:
        super().__init__(f"transaction reverted: {tx_hash}")
        self.tx_hash = tx_hash
        self.receipt = receipt


class MissingSignerError(Web3RPCError):
    pass


@lru_cache
def _get_web3(rpc_url: str) -> Web3:
    """
    Lazily create and cache a Web3 instance per RPC URL.
    """
    w3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": 30}))

    if not w3.is_connected():
        raise Web3RPCError(f"Unable to connect to RPC {rpc_url}")

    return w3


def _signer(w3: Web3):
    key = get_settings().executor_private_key
    if not key:
        raise MissingSignerError("EXECUTOR_PRIVATE_KEY is not configured")
    return w3.eth.account.from_key(key)


def signer_address(rpc_url: str) -> str:
    return _signer(_get_web3(rpc_url)).address


# ---------------------------
# Native chain helpers
# ---------------------------

def get_native_balance(rpc_url: str, address: str) -> int:
    """
    Return native token balance in wei.
    """
    w3 = _get_web3(rpc_url)
    try:
        return w3.eth.get_balance(Web3.to_checksum_address(address))
    except Exception as e:
        raise Web3RPCError(f"get_native_balance failed: {e}") from e


def get_gas_price(rpc_url: str) -> int:
    """
    Return the current gas price in wei.
    """
    w3 = _get_web3(rpc_url)
    try:
        return int(w3.eth.gas_price)
    except Exception as e:
        raise Web3RPCError(f"get_gas_price failed: {e}") from e


# ---------------------------
# ERC20 helpers
# ---------------------------

def _erc20_contract(rpc_url: str, token_address: str):
    w3 = _get_web3(rpc_url)
    return w3.eth.contract(
        address=Web3.to_checksum_address(token_address),
        abi=ERC20_ABI,
    )


def _router_contract(rpc_url: str):
    w3 = _get_web3(rpc_url)
    return w3.eth.contract(
        address=Web3.to_checksum_address(get_settings().pulsex_router),
        abi=ROUTER_ABI,
    )


def erc20_balance(rpc_url: str, token_address: str, owner: str) -> int:
    """
    Return ERC20 balance (raw uint256).
    """
    try:
        contract = _erc20_contract(rpc_url, token_address)
        return contract.functions.balanceOf(
            Web3.to_checksum_address(owner)
        ).call()
    except ContractLogicError as e:
        raise Web3RPCError(f"erc20_balance reverted: {e}") from e
    except Exception as e:
        raise Web3RPCError(f"erc20_balance failed: {e}") from e


def erc20_allowance(
    rpc_url: str,
    token_address: str,
    owner: str,
    spender: str,
) -> int:
    """
    Return ERC20 allowance (raw uint256).
    """
    try:
        contract = _erc20_contract(rpc_url, token_address)
        return contract.functions.allowance(
            Web3.to_checksum_address(owner),
            Web3.to_checksum_address(spender),
        ).call()
    except ContractLogicError as e:
        raise Web3RPCError(f"erc20_allowance reverted: {e}") from e
    except Exception as e:
        raise Web3RPCError(f"erc20_allowance failed: {e}") from e


def get_amounts_out(rpc_url: str, amount_in: int, path: list[str]) -> list[int]:
    """
    Router quote for ``amount_in`` along ``path``; the last entry is the
    expected output.
    """
    try:
        router = _router_contract(rpc_url)
        return list(
            router.functions.getAmountsOut(
                int(amount_in),
                [Web3.to_checksum_address(p) for p in path],
            ).call()
        )
    except ContractLogicError as e:
        raise Web3RPCError(f"getAmountsOut reverted: {e}") from e
    except Exception as e:
        raise Web3RPCError(f"getAmountsOut failed: {e}") from e


# ---------------------------
# Sending
# ---------------------------

def _send(w3: Web3, tx: dict[str, Any]) -> Any:
    """
    Fill nonce/gas/chain fields, sign with the executor key, send and wait.
    Returns the receipt. Raises TransactionRevertedError when status != 1.
    """
    settings = get_settings()
    account = _signer(w3)

    tx = dict(tx)
    tx.setdefault("from", account.address)
    tx.setdefault("chainId", settings.chain_id)
    tx.setdefault("nonce", w3.eth.get_transaction_count(account.address, "pending"))
    tx.setdefault("gasPrice", int(w3.eth.gas_price))
    if "gas" not in tx:
        tx["gas"] = int(w3.eth.estimate_gas(tx))

    signed = w3.eth.account.sign_transaction(tx, account.key)
    tx_hash = w3.eth.send_raw_transaction(signed.raw_transaction)
    logger.info("sent tx %s", tx_hash.hex())

    receipt = w3.eth.wait_for_transaction_receipt(tx_hash, timeout=settings.tx_timeout_s)
    if receipt.get("status") != 1:
        raise TransactionRevertedError(tx_hash.hex(), receipt)
    return receipt


def _send_contract_call(rpc_url: str, fn_call, value: int = 0) -> Any:
    w3 = _get_web3(rpc_url)
    try:
        account = _signer(w3)
        tx = fn_call.build_transaction(
            {
                "from": account.address,
                "value": int(value),
                "nonce": w3.eth.get_transaction_count(account.address, "pending"),
            }
        )
        return _send(w3, tx)
    except Web3RPCError:
        raise
    except ContractLogicError as e:
        raise Web3RPCError(f"execution reverted: {e}") from e
    except TimeExhausted as e:
        raise Web3RPCError(f"transaction timeout: {e}") from e
    except Exception as e:
        raise Web3RPCError(f"contract call failed: {e}") from e


def send_native(rpc_url: str, to: str, amount_wei: int) -> Any:
    w3 = _get_web3(rpc_url)
    try:
        return _send(w3, {"to": Web3.to_checksum_address(to), "value": int(amount_wei)})
    except Web3RPCError:
        raise
    except TimeExhausted as e:
        raise Web3RPCError(f"transaction timeout: {e}") from e
    except Exception as e:
        raise Web3RPCError(f"send_native failed: {e}") from e


def erc20_transfer(rpc_url: str, token_address: str, to: str, amount: int) -> Any:
    contract = _erc20_contract(rpc_url, token_address)
    return _send_contract_call(
        rpc_url,
        contract.functions.transfer(Web3.to_checksum_address(to), int(amount)),
    )


def erc20_approve(rpc_url: str, token_address: str, spender: str, amount: int) -> Any:
    contract = _erc20_contract(rpc_url, token_address)
    return _send_contract_call(
        rpc_url,
        contract.functions.approve(Web3.to_checksum_address(spender), int(amount)),
    )


def swap_exact_tokens_for_tokens(
    rpc_url: str,
    *,
    amount_in: int,
    amount_out_min: int,
    path: list[str],
    to: str,
    deadline: int,
) -> Any:
    router = _router_contract(rpc_url)
    return _send_contract_call(
        rpc_url,
        router.functions.swapExactTokensForTokens(
            int(amount_in),
            int(amount_out_min),
            [Web3.to_checksum_address(p) for p in path],
            Web3.to_checksum_address(to),
            int(deadline),
        ),
    )
