"""
Contract binding - a callable handle over a deployed contract.

``bind`` turns a validated ``MethodTable`` plus an address into a
``ContractBinding`` with one coroutine per entry point.  Binding itself
never touches the network.

- read entry points (view/pure) run ``eth_call`` and return decoded values
- write entry points are estimated, signed and broadcast; they return a
  ``Submission`` as soon as the node accepts the transaction.  Waiting for
  inclusion is the caller's choice (``ContractBinding.wait``).

Each entry point is reachable by its ABI name and by a snake_case alias
(``balanceOf`` and ``balance_of``).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from ..errors import NotConnected
from ..utils import checksum_address
from .abi import AbiFunction, MethodTable
from .rpc import RpcClient
from .tx import TransactionSigner, build_tx, sign_and_send

logger = logging.getLogger(__name__)

_CAMEL_RE = re.compile(r"(?<=[a-z0-9])([A-Z])")


def snake_case(name: str) -> str:
    return _CAMEL_RE.sub(r"_\1", name).lower()


@dataclass(frozen=True)
class Submission:
    """Acknowledgment that the node accepted a transaction."""

    tx_hash: str
    method: str
    args: tuple[Any, ...]
    sender: str


class BoundMethod:
    def __init__(self, binding: "ContractBinding", fn: AbiFunction) -> None:
        self._binding = binding
        self.fn = fn

    @property
    def is_read(self) -> bool:
        return self.fn.is_read

    async def __call__(self, *args: Any) -> Any:
        if self.fn.is_read:
            return await self._binding.call(self.fn, args)
        return await self._binding.transact(self.fn, args)

    def __repr__(self) -> str:
        kind = "read" if self.fn.is_read else "write"
        return f"<BoundMethod {self.fn.signature} ({kind})>"


class ContractBinding:
    """
    ABI-driven handle bound to a deployed contract address.

    Parameters
    ----------
    interface : validated method table
    address : contract address
    rpc : read provider, used for every call
    signer : signing capability; required only for write entry points
    gas_limit : fixed gas limit for writes (default: estimate per call)
    """

    def __init__(
        self,
        interface: MethodTable,
        address: str,
        rpc: RpcClient,
        signer: Optional[TransactionSigner] = None,
        gas_limit: Optional[int] = None,
        chain_id: Optional[int] = None,
    ) -> None:
        self.interface = interface
        self.address = checksum_address(address)
        self.rpc = rpc
        self.signer = signer
        self.gas_limit = gas_limit
        self.chain_id = chain_id
        self.functions: dict[str, BoundMethod] = {}

        names = [fn.name for fn in interface.functions]
        for fn in interface.functions:
            method = BoundMethod(self, fn)
            self.functions[fn.signature] = method
            if names.count(fn.name) == 1:
                self.functions[fn.name] = method
                alias = snake_case(fn.name)
                if alias != fn.name and alias not in names:
                    self.functions.setdefault(alias, method)

    def __getattr__(self, name: str) -> BoundMethod:
        functions = self.__dict__.get("functions", {})
        try:
            return functions[name]
        except KeyError:
            raise AttributeError(
                f"{type(self).__name__} at {self.__dict__.get('address')} has no entry point {name!r}"
            ) from None

    def __contains__(self, name: str) -> bool:
        return name in self.functions

    async def call(self, fn: AbiFunction, args: Sequence[Any]) -> Any:
        calldata = fn.encode_call(args)
        data = await self.rpc.eth_call(self.address, calldata)
        return fn.decode_output(data)

    async def transact(self, fn: AbiFunction, args: Sequence[Any]) -> Submission:
        if self.signer is None:
            raise NotConnected(f"{fn.name} needs a connected wallet to sign")
        calldata = fn.encode_call(args)
        tx = await build_tx(
            self.rpc,
            sender=self.signer.address,
            data=calldata,
            to=self.address,
            gas_limit=self.gas_limit,
            chain_id=self.chain_id,
        )
        tx_hash = await sign_and_send(self.rpc, self.signer, tx)
        return Submission(
            tx_hash=tx_hash,
            method=fn.signature,
            args=tuple(args),
            sender=self.signer.address,
        )

    async def wait(
        self,
        submission: Submission,
        timeout: float = 120,
        poll_interval: float = 2.0,
    ) -> dict[str, Any]:
        """Wait for inclusion; raises ContractRevert if the transaction reverted."""
        return await self.rpc.wait_for_receipt(
            submission.tx_hash, timeout=timeout, poll_interval=poll_interval
        )


def bind(
    interface: MethodTable,
    address: str,
    rpc: RpcClient,
    signer: Optional[TransactionSigner] = None,
    *,
    required: Sequence[str] = (),
    gas_limit: Optional[int] = None,
    chain_id: Optional[int] = None,
) -> ContractBinding:
    """
    Bind ``interface`` to the contract at ``address``.

    Pure: no network call.  ``required`` names entry points the caller
    depends on; a missing one raises ValidationError now rather than at
    invocation time.
    """
    interface.require(*required)
    return ContractBinding(
        interface,
        address,
        rpc,
        signer=signer,
        gas_limit=gas_limit,
        chain_id=chain_id,
    )
