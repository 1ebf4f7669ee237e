"""
Interface resolution - find out what a deployed contract can be called with.

EVM bytecode does not carry its ABI, so resolution is two steps:
confirm the address holds code, then ask a chain of interface sources
(local Foundry artifacts, an Etherscan-compatible explorer, a static ABI)
for the description.  The first source that knows the contract wins.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Protocol, Sequence

import httpx

from ..errors import AddressNotFound, NetworkUnavailable, RpcError
from ..schema.schemas import SchemaRegistry
from ..utils import checksum_address
from .abi import MethodTable, load_artifact_abi
from .rpc import RpcClient

logger = logging.getLogger(__name__)


class InterfaceSource(Protocol):
    name: str

    async def fetch(self, address: str) -> Optional[list[dict[str, Any]]]:
        """Return the ABI for ``address``, or None if this source does not know it."""
        ...


@dataclass
class StaticSource:
    """A fixed ABI, e.g. the built-in ERC-20 description."""

    abi: list[dict[str, Any]]
    name: str = "static"

    async def fetch(self, address: str) -> Optional[list[dict[str, Any]]]:
        return self.abi


@dataclass
class ArtifactSource:
    """
    ABI from a Foundry build artifact (``out/<Name>.sol/<Name>.json``).

    A missing artifact is skipped; a broken one raises ValidationError.
    """

    contract_name: str
    out_dir: Optional[Path] = None
    name: str = "artifact"

    async def fetch(self, address: str) -> Optional[list[dict[str, Any]]]:
        try:
            return load_artifact_abi(self.contract_name, self.out_dir)
        except FileNotFoundError as exc:
            logger.debug("artifact source skipped: %s", exc)
            return None


@dataclass
class ExplorerSource:
    """
    ABI published on an Etherscan-compatible explorer.

    Queries ``?module=contract&action=getabi&address=...``.  Unverified
    contracts yield None; an unreachable explorer raises NetworkUnavailable.
    """

    api_url: str
    api_key: Optional[str] = None
    timeout: float = 30.0
    client: Optional[httpx.AsyncClient] = field(default=None, repr=False)
    name: str = "explorer"

    async def fetch(self, address: str) -> Optional[list[dict[str, Any]]]:
        params = {"module": "contract", "action": "getabi", "address": address}
        if self.api_key:
            params["apikey"] = self.api_key

        try:
            if self.client is not None:
                response = await self.client.get(self.api_url, params=params)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(self.api_url, params=params)
        except httpx.TimeoutException as exc:
            raise RpcError(f"Explorer timed out: {exc}") from exc
        except httpx.TransportError as exc:
            raise NetworkUnavailable(f"Cannot reach explorer {self.api_url}: {exc}") from exc

        if response.status_code >= 400:
            raise RpcError(
                f"Explorer returned HTTP {response.status_code}",
                http_status=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise RpcError("Explorer returned a non-JSON body") from exc

        if not isinstance(payload, dict):
            raise RpcError(f"Explorer returned an unexpected {type(payload).__name__} body")

        if str(payload.get("status")) != "1":
            logger.debug("explorer has no ABI for %s: %s", address, payload.get("result"))
            return None

        result = payload.get("result")
        if isinstance(result, str):
            try:
                result = json.loads(result)
            except json.JSONDecodeError as exc:
                raise RpcError(f"Explorer returned a malformed ABI: {exc}") from exc
        return result


async def resolve_interface(
    rpc: RpcClient,
    address: str,
    sources: Sequence[InterfaceSource],
    registry: SchemaRegistry | None = None,
) -> MethodTable:
    """
    Fetch and validate the interface of the contract deployed at ``address``.

    Raises:
        ValidationError: If the address or the fetched ABI is malformed
        AddressNotFound: If there is no code at the address, or no source knows it
        NetworkUnavailable: If the node or explorer cannot be reached
        RpcError: For other node failures
    """
    address = checksum_address(address)

    code = await rpc.get_code(address)
    if not code:
        raise AddressNotFound(f"No contract deployed at {address}")

    for source in sources:
        abi = await source.fetch(address)
        if abi is not None:
            logger.info("interface for %s resolved from %s", address, source.name)
            return MethodTable.from_abi(abi, registry=registry)

    raise AddressNotFound(f"No interface description available for {address}")
