"""
Chain - On-chain interaction layer for Obolus.

Provides the async JSON-RPC client, ABI validation, interface resolution,
contract binding and transaction utilities.

Uses httpx + eth-abi + eth-account instead of the heavyweight web3.py.
"""

from .abi import ERC20_ABI, ERC20_REQUIRED, AbiFunction, MethodTable
from .binding import BoundMethod, ContractBinding, Submission, bind
from .interface import ArtifactSource, ExplorerSource, StaticSource, resolve_interface
from .rpc import RpcClient

__all__ = [
    "ERC20_ABI",
    "ERC20_REQUIRED",
    "AbiFunction",
    "MethodTable",
    "BoundMethod",
    "ContractBinding",
    "Submission",
    "bind",
    "ArtifactSource",
    "ExplorerSource",
    "StaticSource",
    "resolve_interface",
    "RpcClient",
]
