from __future__ import annotations

import time
from typing import Any

from sqlalchemy.orm import Session
from web3 import Web3

from app.config import get_settings
from chain import rpc
from policy.slippage import SlippageTolerance, min_amount_out
from tools.tool_runner import run_tool


def _tx_output(receipt: Any) -> dict[str, Any]:
    gas_price = receipt.get("effectiveGasPrice") or receipt.get("gasPrice") or 0
    tx_hash = receipt.get("transactionHash")
    if isinstance(tx_hash, (bytes, bytearray)):
        tx_hash = "0x" + bytes(tx_hash).hex()
    return {
        "txHash": tx_hash,
        "gasPrice": int(gas_price),
        "gasUsed": int(receipt.get("gasUsed") or 0),
        "receipt": receipt,
    }


class ChainClient:
    """
    PulseChain client used by the node executors.

    - Calls RPC via chain.rpc
    - Instruments every call via tools.run_tool (tool_calls table), scoped to
      one execution and one node
    - Returns plain dict outputs; big ints stay ints and are stringified only
      when persisted
    """

    def __init__(
        self,
        *,
        db: Session,
        execution_id,
        node_id: str | None,
        rpc_url: str,
    ) -> None:
        self.db = db
        self.execution_id = execution_id
        self.node_id = node_id
        self.rpc_url = rpc_url

    def _run(self, tool_name: str, request: dict[str, Any], fn):
        return run_tool(
            self.db,
            execution_id=self.execution_id,
            node_id=self.node_id,
            tool_name=tool_name,
            request=request,
            fn=fn,
        )

    # ---------------------------
    # Reads
    # ---------------------------

    def wallet_address(self) -> str:
        return rpc.signer_address(self.rpc_url)

    def native_balance(self, owner: str) -> int:
        owner_cs = Web3.to_checksum_address(owner)
        return self._run(
            "web3.eth_getBalance",
            {"owner": owner_cs},
            lambda: int(rpc.get_native_balance(self.rpc_url, owner_cs)),
        )

    def token_balance(self, token: str, owner: str) -> int:
        token_cs = Web3.to_checksum_address(token)
        owner_cs = Web3.to_checksum_address(owner)
        return self._run(
            "web3.erc20.balanceOf",
            {"token": token_cs, "owner": owner_cs},
            lambda: int(rpc.erc20_balance(self.rpc_url, token_cs, owner_cs)),
        )

    def gas_price_wei(self) -> int:
        return self._run(
            "web3.eth_gasPrice",
            {},
            lambda: int(rpc.get_gas_price(self.rpc_url)),
        )

    def quote_amount_out(self, amount_in: int, path: list[str]) -> int:
        amounts = self._run(
            "pulsex.getAmountsOut",
            {"amountIn": amount_in, "path": path},
            lambda: rpc.get_amounts_out(self.rpc_url, amount_in, path),
        )
        return int(amounts[-1])

    # ---------------------------
    # Transactions
    # ---------------------------

    def transfer_token(self, *, token: str, to: str, amount: int) -> dict[str, Any]:
        token_cs = Web3.to_checksum_address(token)
        to_cs = Web3.to_checksum_address(to)
        receipt = self._run(
            "web3.erc20.transfer",
            {"token": token_cs, "to": to_cs, "amount": amount},
            lambda: rpc.erc20_transfer(self.rpc_url, token_cs, to_cs, amount),
        )
        return _tx_output(receipt)

    def transfer_native(self, *, to: str, amount: int) -> dict[str, Any]:
        to_cs = Web3.to_checksum_address(to)
        receipt = self._run(
            "web3.eth_sendTransaction",
            {"to": to_cs, "value": amount},
            lambda: rpc.send_native(self.rpc_url, to_cs, amount),
        )
        return _tx_output(receipt)

    def ensure_allowance(self, *, token: str, owner: str, spender: str, amount: int) -> None:
        """Approve ``spender`` for exactly ``amount`` when the allowance is short."""
        current = self._run(
            "web3.erc20.allowance",
            {"token": token, "owner": owner, "spender": spender},
            lambda: int(rpc.erc20_allowance(self.rpc_url, token, owner, spender)),
        )
        if current >= amount:
            return
        self._run(
            "web3.erc20.approve",
            {"token": token, "spender": spender, "amount": amount},
            lambda: rpc.erc20_approve(self.rpc_url, token, spender, amount),
        )

    def swap_exact_tokens(
        self,
        *,
        path: list[str],
        amount_in: int,
        tolerance: SlippageTolerance,
        to: str | None = None,
    ) -> dict[str, Any]:
        """
        Swap ``amount_in`` of path[0] for path[-1] on the PulseX router.

        ``amountOutMin`` is the router quote reduced by the slippage tolerance;
        a worse fill reverts on chain.
        """
        settings = get_settings()
        path_cs = [Web3.to_checksum_address(p) for p in path]
        owner = self.wallet_address()
        recipient = Web3.to_checksum_address(to) if to else owner

        expected_out = self.quote_amount_out(amount_in, path_cs)
        amount_out_min = min_amount_out(expected_out, tolerance)

        self.ensure_allowance(
            token=path_cs[0],
            owner=owner,
            spender=Web3.to_checksum_address(settings.pulsex_router),
            amount=amount_in,
        )

        deadline = int(time.time()) + settings.swap_deadline_s
        receipt = self._run(
            "pulsex.swapExactTokensForTokens",
            {
                "amountIn": amount_in,
                "amountOutMin": amount_out_min,
                "path": path_cs,
                "to": recipient,
                "deadline": deadline,
                "slippage": str(tolerance.value),
            },
            lambda: rpc.swap_exact_tokens_for_tokens(
                self.rpc_url,
                amount_in=amount_in,
                amount_out_min=amount_out_min,
                path=path_cs,
                to=recipient,
                deadline=deadline,
            ),
        )

        output = _tx_output(receipt)
        # amountOut is the pre-trade quote; Transfer logs in the receipt are not decoded
        output.update(
            {
                "amountOut": expected_out,
                "amountOutMin": amount_out_min,
                "tokenOut": path_cs[-1],
            }
        )
        return output
