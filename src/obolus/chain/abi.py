"""
ABI handling - artifact loading and typed method tables.

Contract ABIs come from Foundry build output (``contracts/out/*.json``),
from a block explorer, or from the built-in ERC-20 description.  Whatever
the source, the ABI is validated against ``abi.schema.json`` and decoded
into a ``MethodTable`` of ``AbiFunction`` entries before anything is
bound to it, so a malformed interface fails at bind time instead of on
the first call.
"""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional, Sequence

from eth_abi import decode, encode, is_encodable, is_encodable_type
from eth_abi.exceptions import DecodingError, EncodingError
from eth_utils import function_signature_to_4byte_selector

from ..errors import RpcError, ValidationError
from ..schema.schemas import ABI_SCHEMA, SchemaRegistry, load_json
from ..utils import join_u256, split_u256

TOKEN_CONTRACT = "ObolusToken"

READ_MUTABILITY = ("view", "pure")

# ---------------------------------------------------------------------------
# Minimal ERC-20 ABI (balanceOf, transfer, decimals, symbol, name, totalSupply)
# ---------------------------------------------------------------------------
ERC20_ABI: list[dict[str, Any]] = [
    {
        "type": "function",
        "name": "balanceOf",
        "inputs": [{"name": "account", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
    },
    {
        "type": "function",
        "name": "transfer",
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "nonpayable",
    },
    {
        "type": "function",
        "name": "decimals",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint8"}],
        "stateMutability": "view",
    },
    {
        "type": "function",
        "name": "symbol",
        "inputs": [],
        "outputs": [{"name": "", "type": "string"}],
        "stateMutability": "view",
    },
    {
        "type": "function",
        "name": "name",
        "inputs": [],
        "outputs": [{"name": "", "type": "string"}],
        "stateMutability": "view",
    },
    {
        "type": "function",
        "name": "totalSupply",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
    },
    {
        "type": "event",
        "name": "Transfer",
        "inputs": [
            {"name": "from", "type": "address", "indexed": True},
            {"name": "to", "type": "address", "indexed": True},
            {"name": "value", "type": "uint256", "indexed": False},
        ],
        "anonymous": False,
    },
]

ERC20_REQUIRED = ("balanceOf", "transfer")


# ---------------------------------------------------------------------------
# Foundry artifacts
# ---------------------------------------------------------------------------

def find_contracts_out(start: Optional[Path] = None) -> Path:
    """
    Locate the contracts/out/ directory.

    Searches from ``start`` (default: this file) upward to find the project root.
    """
    current = (start or Path(__file__)).resolve()
    for parent in [current, *current.parents]:
        candidate = parent / "contracts" / "out"
        if candidate.is_dir():
            return candidate
    raise FileNotFoundError(
        "Cannot find contracts/out/. Run 'forge build' in the contracts/ directory."
    )


@lru_cache(maxsize=16)
def _read_artifact(artifact_path: Path) -> dict[str, Any]:
    try:
        artifact = load_json(artifact_path)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ValidationError(f"Artifact {artifact_path} is not valid JSON: {exc}") from exc
    if not isinstance(artifact, dict):
        raise ValidationError(f"Artifact {artifact_path} is not a JSON object")
    return artifact


def load_artifact(contract_name: str, out_dir: Optional[Path] = None) -> dict[str, Any]:
    """
    Load a Foundry compilation artifact.

    The parsed file is cached per path; every caller gets its own copy.

    Args:
        contract_name: Contract name (e.g., "ObolusToken")
        out_dir: Foundry ``out/`` directory (default: discovered)

    Raises:
        FileNotFoundError: If the artifact does not exist
        ValidationError: If the artifact is not a JSON object
    """
    out_dir = out_dir or find_contracts_out()
    artifact_path = out_dir / f"{contract_name}.sol" / f"{contract_name}.json"

    if not artifact_path.exists():
        raise FileNotFoundError(
            f"Artifact not found: {artifact_path}. "
            f"Run 'forge build' in the contracts/ directory."
        )

    return copy.deepcopy(_read_artifact(artifact_path))


def load_artifact_abi(contract_name: str, out_dir: Optional[Path] = None) -> list[dict[str, Any]]:
    artifact = load_artifact(contract_name, out_dir)
    if "abi" not in artifact:
        raise ValidationError(f"Artifact for {contract_name} has no \"abi\" entry")
    return artifact["abi"]


def load_bytecode(contract_name: str, out_dir: Optional[Path] = None) -> str:
    """
    Load deployment bytecode for a contract from Foundry output.

    Returns:
        Hex-encoded bytecode string (0x-prefixed)
    """
    artifact = load_artifact(contract_name, out_dir)
    bytecode = artifact.get("bytecode") or ""
    if isinstance(bytecode, dict):
        bytecode = bytecode.get("object", "")
    if not bytecode:
        raise ValueError(f"No bytecode in artifact for {contract_name}")
    if not bytecode.startswith("0x"):
        bytecode = "0x" + bytecode
    return bytecode


# ---------------------------------------------------------------------------
# Typed entries
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AbiParam:
    name: str
    type: str
    components: tuple["AbiParam", ...] = ()

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "AbiParam":
        return cls(
            name=raw.get("name", ""),
            type=raw["type"],
            components=tuple(cls.from_dict(c) for c in raw.get("components", [])),
        )

    @property
    def abi_type(self) -> str:
        """Canonical type string as eth-abi expects it (tuples expanded)."""
        if self.type.startswith("tuple"):
            inner = ",".join(c.abi_type for c in self.components)
            return f"({inner}){self.type[len('tuple'):]}"
        return self.type

    @property
    def is_u256_pair(self) -> bool:
        """A struct of ``low``/``high`` uint128 words standing in for a uint256."""
        return (
            self.type == "tuple"
            and [c.name for c in self.components] == ["low", "high"]
            and all(c.type == "uint128" for c in self.components)
        )

    def to_abi(self, value: Any) -> Any:
        if self.is_u256_pair and isinstance(value, int) and not isinstance(value, bool):
            return split_u256(value)
        return value

    def from_abi(self, value: Any) -> Any:
        if self.is_u256_pair:
            return join_u256(*value)
        return value


@dataclass(frozen=True)
class AbiFunction:
    name: str
    inputs: tuple[AbiParam, ...] = ()
    outputs: tuple[AbiParam, ...] = ()
    state_mutability: str = "nonpayable"

    @property
    def input_types(self) -> list[str]:
        return [p.abi_type for p in self.inputs]

    @property
    def output_types(self) -> list[str]:
        return [p.abi_type for p in self.outputs]

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(self.input_types)})"

    @property
    def selector(self) -> bytes:
        # NOTE: Keccak-256 != SHA3-256 (NIST). eth-utils does the right thing.
        return function_signature_to_4byte_selector(self.signature)

    @property
    def is_read(self) -> bool:
        return self.state_mutability in READ_MUTABILITY

    def encode_args(self, args: Sequence[Any]) -> bytes:
        if len(args) != len(self.inputs):
            raise ValidationError(
                f"{self.name} expects {len(self.inputs)} argument(s), got {len(args)}"
            )
        values = []
        for index, (param, arg) in enumerate(zip(self.inputs, args)):
            value = param.to_abi(arg)
            if not is_encodable(param.abi_type, value):
                label = param.name or f"arg{index}"
                raise ValidationError(
                    f"Invalid value for {self.name}.{label} ({param.abi_type}): {arg!r}"
                )
            values.append(value)
        try:
            return encode(self.input_types, values)
        except EncodingError as exc:
            raise ValidationError(f"Cannot encode {self.signature}: {exc}") from exc

    def encode_call(self, args: Sequence[Any]) -> bytes:
        """Selector + ABI-encoded arguments."""
        return self.selector + self.encode_args(args)

    def decode_output(self, data: bytes) -> Any:
        """Decode return data: single value, tuple of values, or None."""
        if not self.outputs:
            return None
        try:
            decoded = decode(self.output_types, data)
        except DecodingError as exc:
            raise RpcError(
                f"Unexpected return data for {self.signature}: {exc}",
                method="eth_call",
            ) from exc
        values = [p.from_abi(v) for p, v in zip(self.outputs, decoded)]
        if len(values) == 1:
            return values[0]
        return tuple(values)


def _params(raw: list[dict[str, Any]], context: str, problems: list[str]) -> tuple[AbiParam, ...]:
    params = tuple(AbiParam.from_dict(p) for p in raw)
    for index, param in enumerate(params):
        if not is_encodable_type(param.abi_type):
            problems.append(f"{context}[{index}]: unsupported type {param.abi_type!r}")
    return params


@dataclass(frozen=True)
class MethodTable:
    """Validated, typed view of a contract ABI."""

    functions: tuple[AbiFunction, ...]
    constructor: Optional[AbiFunction] = None
    events: tuple[str, ...] = ()
    abi: list[dict[str, Any]] = field(default_factory=list, repr=False, compare=False)

    @classmethod
    def from_abi(
        cls,
        abi: Any,
        registry: SchemaRegistry | None = None,
    ) -> "MethodTable":
        """
        Validate and decode an ABI.

        Args:
            abi: ABI as a list of dicts, or its JSON text
            registry: Schema registry (default: bundled schemas)

        Raises:
            ValidationError: If the ABI is malformed or uses unsupported types
        """
        if isinstance(abi, (str, bytes)):
            try:
                abi = json.loads(abi)
            except json.JSONDecodeError as exc:
                raise ValidationError(f"ABI is not valid JSON: {exc}") from exc

        registry = registry or SchemaRegistry.default()
        registry.validate_instance(abi, ABI_SCHEMA)

        problems: list[str] = []
        functions: list[AbiFunction] = []
        constructor: Optional[AbiFunction] = None
        events: list[str] = []

        for index, entry in enumerate(abi):
            kind = entry["type"]
            if kind == "function":
                name = entry["name"]
                functions.append(
                    AbiFunction(
                        name=name,
                        inputs=_params(entry["inputs"], f"{index}/{name}/inputs", problems),
                        outputs=_params(entry.get("outputs", []), f"{index}/{name}/outputs", problems),
                        state_mutability=entry.get("stateMutability", "nonpayable"),
                    )
                )
            elif kind == "constructor":
                constructor = AbiFunction(
                    name="constructor",
                    inputs=_params(entry.get("inputs", []), f"{index}/constructor", problems),
                    state_mutability=entry.get("stateMutability", "nonpayable"),
                )
            elif kind == "event":
                events.append(entry["name"])

        if problems:
            raise ValidationError("ABI uses unsupported types.", errors=problems)

        return cls(
            functions=tuple(functions),
            constructor=constructor,
            events=tuple(events),
            abi=list(abi),
        )

    def names(self) -> list[str]:
        return sorted({fn.name for fn in self.functions})

    def has(self, name: str) -> bool:
        return any(fn.name == name or fn.signature == name for fn in self.functions)

    def get(self, name: str) -> AbiFunction:
        """Look up an entry point by name, or by full signature when overloaded."""
        by_signature = [fn for fn in self.functions if fn.signature == name]
        if by_signature:
            return by_signature[0]
        matches = [fn for fn in self.functions if fn.name == name]
        if not matches:
            raise ValidationError(f"Unknown entry point: {name}")
        if len(matches) > 1:
            raise ValidationError(
                f"Entry point {name} is overloaded; use its signature",
                errors=[fn.signature for fn in matches],
            )
        return matches[0]

    def require(self, *names: str) -> None:
        missing = [name for name in names if not self.has(name)]
        if missing:
            raise ValidationError(
                "Interface is missing required entry points: " + ", ".join(missing),
                errors=missing,
            )
