"""
JSON-RPC client for EVM nodes.

Lightweight alternative to web3.py: uses httpx for HTTP + eth-abi for
decoding revert reasons.  All calls are async and bounded by a timeout;
a call that exceeds it surfaces as ``RpcError`` instead of hanging.

Failures are classified so callers can tell them apart:
- transport could not connect          -> NetworkUnavailable
- node answered with a revert          -> ContractRevert
- anything else (error object, HTTP
  status, garbage payload, timeout)    -> RpcError
"""

from __future__ import annotations

import asyncio
import logging
from itertools import count
from typing import Any, Optional, Union

import httpx
from eth_abi import decode
from eth_abi.exceptions import DecodingError

from ..config import DEFAULT_RPC_TIMEOUT
from ..errors import ContractRevert, NetworkUnavailable, RpcError, ValidationError

logger = logging.getLogger(__name__)

BLOCK_TAGS = ("latest", "earliest", "pending", "safe", "finalized")

# Error(string) selector, used by require()/revert("...")
ERROR_STRING_SELECTOR = "0x08c379a0"
# Panic(uint256) selector, used by failed asserts / arithmetic
PANIC_SELECTOR = "0x4e487b71"

BlockId = Union[str, int]


def block_param(tag: BlockId) -> str:
    """Convert a block tag or number into its JSON-RPC form."""
    if isinstance(tag, bool):
        raise ValidationError(f"Invalid block tag: {tag!r}")
    if isinstance(tag, int):
        if tag < 0:
            raise ValidationError(f"Invalid block number: {tag}")
        return hex(tag)
    if tag in BLOCK_TAGS:
        return tag
    if isinstance(tag, str) and tag.isdigit():
        return hex(int(tag))
    raise ValidationError(f"Invalid block tag: {tag!r}")


def decode_revert_reason(data: Any) -> Optional[str]:
    """Extract the reason from ``Error(string)``/``Panic(uint256)`` revert data."""
    if not isinstance(data, str) or not data.startswith("0x"):
        return None
    try:
        if data.startswith(ERROR_STRING_SELECTOR):
            (reason,) = decode(["string"], bytes.fromhex(data[10:]))
            return reason
        if data.startswith(PANIC_SELECTOR):
            (code,) = decode(["uint256"], bytes.fromhex(data[10:]))
            return f"panic 0x{code:02x}"
    except (DecodingError, ValueError):
        return None
    return None


def _is_revert(error: dict[str, Any]) -> bool:
    message = str(error.get("message", "")).lower()
    return error.get("code") == 3 or "revert" in message


def _to_int(value: Any, method: str) -> int:
    if not isinstance(value, str):
        raise RpcError(f"Unexpected {method} payload: {value!r}", method=method)
    try:
        return int(value, 16)
    except ValueError:
        raise RpcError(f"Unexpected {method} payload: {value!r}", method=method) from None


def _to_bytes(value: Any, method: str) -> bytes:
    if not isinstance(value, str) or not value.startswith("0x"):
        raise RpcError(f"Unexpected {method} payload: {value!r}", method=method)
    try:
        return bytes.fromhex(value[2:])
    except ValueError:
        raise RpcError(f"Unexpected {method} payload: {value!r}", method=method) from None


class RpcClient:
    """
    Async JSON-RPC 2.0 client.

    Args:
        url: Node endpoint
        timeout: Upper bound in seconds for each call
        client: Pre-built ``httpx.AsyncClient`` (tests pass one with a MockTransport)
    """

    def __init__(
        self,
        url: str,
        *,
        timeout: float = DEFAULT_RPC_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._ids = count(1)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "RpcClient":
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    # ------------------------------------------------------------------ core

    async def call(self, method: str, params: Optional[list] = None) -> Any:
        """
        Make a JSON-RPC call.

        Returns:
            Result field from the RPC response

        Raises:
            NetworkUnavailable: If the node cannot be reached
            ContractRevert: If the node reports an execution revert
            RpcError: For any other failure, including timeouts
        """
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params or [],
            "id": next(self._ids),
        }
        logger.debug("rpc -> %s %s", method, payload["params"])

        try:
            response = await asyncio.wait_for(
                self._client.post(self.url, json=payload), timeout=self.timeout
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            raise RpcError(
                f"{method} timed out after {self.timeout}s", method=method
            ) from exc
        except httpx.TransportError as exc:
            raise NetworkUnavailable(f"Cannot reach {self.url}: {exc}") from exc

        if response.status_code >= 400:
            raise RpcError(
                f"{method} failed with HTTP {response.status_code}",
                method=method,
                http_status=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise RpcError(f"{method} returned a non-JSON body", method=method) from exc

        if not isinstance(data, dict):
            raise RpcError(f"{method} returned an unexpected body: {data!r}", method=method)

        error = data.get("error")
        if error is not None:
            if not isinstance(error, dict):
                error = {"message": str(error)}
            if _is_revert(error):
                reason = decode_revert_reason(error.get("data"))
                raise ContractRevert(
                    f"Execution reverted: {reason or error.get('message', 'no reason')}",
                    reason=reason,
                    data=error.get("data") if isinstance(error.get("data"), str) else None,
                )
            raise RpcError(
                f"RPC error: {error.get('message', error)}",
                method=method,
                code=error.get("code"),
                data=error.get("data"),
            )

        logger.debug("rpc <- %s ok", method)
        return data.get("result")

    # ------------------------------------------------------------------ queries

    async def chain_id(self) -> int:
        return _to_int(await self.call("eth_chainId"), "eth_chainId")

    async def get_code(self, address: str, tag: BlockId = "latest") -> bytes:
        result = await self.call("eth_getCode", [address, block_param(tag)])
        return _to_bytes(result, "eth_getCode")

    async def eth_call(self, to: str, data: bytes, tag: BlockId = "latest") -> bytes:
        """Read from a contract; returns raw return data."""
        result = await self.call(
            "eth_call",
            [{"to": to, "data": "0x" + data.hex()}, block_param(tag)],
        )
        if result is None:
            return b""
        return _to_bytes(result, "eth_call")

    async def estimate_gas(self, tx: dict[str, Any]) -> int:
        result = await self.call("eth_estimateGas", [tx])
        return _to_int(result, "eth_estimateGas")

    async def get_block(self, tag: BlockId = "latest") -> dict[str, Any]:
        result = await self.call("eth_getBlockByNumber", [block_param(tag), False])
        if not isinstance(result, dict):
            raise RpcError(f"Block {tag} not found", method="eth_getBlockByNumber")
        return result

    async def get_block_hash(self, tag: BlockId = "latest") -> str:
        block = await self.get_block(tag)
        block_hash = block.get("hash")
        if not isinstance(block_hash, str):
            raise RpcError(f"Block {tag} has no hash", method="eth_getBlockByNumber")
        return block_hash

    async def get_nonce(self, address: str, tag: BlockId = "pending") -> int:
        result = await self.call("eth_getTransactionCount", [address, block_param(tag)])
        return _to_int(result, "eth_getTransactionCount")

    async def gas_price(self) -> int:
        return _to_int(await self.call("eth_gasPrice"), "eth_gasPrice")

    # ------------------------------------------------------------------ transactions

    async def send_raw_transaction(self, raw_tx: str) -> str:
        """
        Send a signed raw transaction.

        Returns:
            Transaction hash (0x-prefixed hex)
        """
        tx_hash = await self.call("eth_sendRawTransaction", [raw_tx])
        if not isinstance(tx_hash, str):
            raise RpcError(
                f"Unexpected transaction hash: {tx_hash!r}",
                method="eth_sendRawTransaction",
            )
        return tx_hash

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[dict[str, Any]]:
        return await self.call("eth_getTransactionReceipt", [tx_hash])

    async def wait_for_receipt(
        self,
        tx_hash: str,
        timeout: float = 120,
        poll_interval: float = 2.0,
    ) -> dict[str, Any]:
        """
        Wait for a transaction receipt.

        Raises:
            RpcError: If no receipt appears within ``timeout`` seconds
            ContractRevert: If the transaction was mined but reverted
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while True:
            receipt = await self.get_transaction_receipt(tx_hash)
            if receipt is not None:
                status = _to_int(receipt.get("status", "0x0"), "eth_getTransactionReceipt")
                if status != 1:
                    raise ContractRevert(
                        f"Transaction {tx_hash} reverted",
                        tx_hash=tx_hash,
                    )
                return receipt
            if loop.time() >= deadline:
                raise RpcError(
                    f"Transaction {tx_hash} not confirmed within {timeout}s",
                    method="eth_getTransactionReceipt",
                )
            await asyncio.sleep(poll_interval)
