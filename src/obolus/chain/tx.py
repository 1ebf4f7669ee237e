"""
Transaction Builder - Build, sign, and send Ethereum transactions.

Signing is delegated to a ``TransactionSigner`` (the wallet session's
signing capability); sending goes through the async JSON-RPC client.
Legacy (gasPrice) transactions with EIP-155 replay protection are used so
the same code works on every EVM test network.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol, Sequence

from eth_utils import to_checksum_address

from ..errors import RpcError
from .abi import AbiFunction
from .rpc import RpcClient

logger = logging.getLogger(__name__)

# Headroom over eth_estimateGas, as a ratio of integers (x1.2)
GAS_BUFFER_NUM = 12
GAS_BUFFER_DEN = 10


class TransactionSigner(Protocol):
    @property
    def address(self) -> str: ...

    def sign_transaction(self, tx: dict[str, Any]) -> str:
        """Sign ``tx`` and return the 0x-prefixed raw transaction."""
        ...


async def build_tx(
    rpc: RpcClient,
    sender: str,
    data: bytes,
    to: Optional[str] = None,
    value: int = 0,
    gas_limit: Optional[int] = None,
    chain_id: Optional[int] = None,
) -> dict[str, Any]:
    """
    Build an unsigned transaction.

    When ``gas_limit`` is not given the node estimates it, which also
    executes the call: a call that would revert raises ContractRevert here,
    before anything is signed or broadcast.

    Args:
        rpc: JSON-RPC client
        sender: Address that will sign the transaction
        data: Calldata (or creation bytecode when ``to`` is None)
        to: Target contract (None for contract creation)
        value: ETH value in wei
        gas_limit: Explicit gas limit (default: estimate)
        chain_id: Chain ID (default: ask the node)

    Returns:
        Unsigned transaction dict
    """
    sender = to_checksum_address(sender)
    tx: dict[str, Any] = {
        "from": sender,
        "data": "0x" + data.hex(),
        "value": value,
    }
    if to is not None:
        tx["to"] = to_checksum_address(to)

    if gas_limit is None:
        estimate = await rpc.estimate_gas(
            {k: (hex(v) if isinstance(v, int) else v) for k, v in tx.items()}
        )
        gas_limit = estimate * GAS_BUFFER_NUM // GAS_BUFFER_DEN

    tx["gas"] = gas_limit
    tx["nonce"] = await rpc.get_nonce(sender)
    tx["gasPrice"] = await rpc.gas_price()
    tx["chainId"] = chain_id if chain_id is not None else await rpc.chain_id()
    # eth-account derives the sender from the key
    del tx["from"]
    return tx


async def sign_and_send(rpc: RpcClient, signer: TransactionSigner, tx: dict[str, Any]) -> str:
    """
    Sign a transaction and broadcast it.

    Returns:
        Transaction hash; inclusion is not awaited
    """
    raw_tx = signer.sign_transaction(tx)
    tx_hash = await rpc.send_raw_transaction(raw_tx)
    logger.info("submitted %s from %s (nonce %s)", tx_hash, signer.address, tx["nonce"])
    return tx_hash


async def deploy_contract(
    rpc: RpcClient,
    signer: TransactionSigner,
    bytecode: str,
    constructor: Optional[AbiFunction] = None,
    constructor_args: Optional[Sequence[Any]] = None,
    gas_limit: Optional[int] = None,
    chain_id: Optional[int] = None,
    timeout: float = 180,
) -> dict[str, Any]:
    """
    Deploy a contract to the chain.

    Builds a creation transaction (no ``to``), signs, sends, waits for the
    receipt and extracts the deployed contract address from it.

    Returns:
        Dict with tx_hash, contract_address, receipt
    """
    deploy_data = bytes.fromhex(bytecode[2:] if bytecode.startswith("0x") else bytecode)

    if constructor_args:
        if constructor is None:
            raise ValueError("constructor_args were provided but the ABI has no constructor")
        deploy_data += constructor.encode_args(constructor_args)

    tx = await build_tx(
        rpc,
        sender=signer.address,
        data=deploy_data,
        gas_limit=gas_limit,
        chain_id=chain_id,
    )
    tx_hash = await sign_and_send(rpc, signer, tx)
    receipt = await rpc.wait_for_receipt(tx_hash, timeout=timeout)

    contract_address = receipt.get("contractAddress")
    if not contract_address:
        raise RpcError(
            f"Receipt for {tx_hash} carries no contract address",
            method="eth_getTransactionReceipt",
        )

    return {
        "tx_hash": tx_hash,
        "contract_address": to_checksum_address(contract_address),
        "receipt": receipt,
    }
