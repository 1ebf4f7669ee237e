"""
Schema registry.

Schemas ship as package data under ``schema/v1``.  Compiled validators
are cached per file, so validating every fetched ABI costs one compile
per process.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any

import jsonschema
from jsonschema import FormatChecker

from ..errors import ValidationError

SCHEMA_DIR = Path(__file__).resolve().parent / "v1"

ABI_SCHEMA = "abi.schema.json"


def load_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


@lru_cache(maxsize=None)
def _compile(path: Path) -> jsonschema.protocols.Validator:
    if not path.is_file():
        raise FileNotFoundError(f"Schema not found: {path}")
    schema = load_json(path)
    cls = jsonschema.validators.validator_for(schema)
    cls.check_schema(schema)
    return cls(schema, format_checker=FormatChecker())


def _where(error: jsonschema.ValidationError) -> str:
    return "/".join(str(part) for part in error.absolute_path) or "<root>"


@dataclass(frozen=True)
class SchemaRegistry:
    schema_root: Path = SCHEMA_DIR

    @classmethod
    def default(cls) -> "SchemaRegistry":
        return cls()

    def validator_for(self, schema_filename: str) -> jsonschema.protocols.Validator:
        return _compile(self.schema_root / schema_filename)

    def validate_instance(self, instance: Any, schema_filename: str) -> None:
        """Raise ValidationError listing every violation, ordered by location."""
        errors = self.validator_for(schema_filename).iter_errors(instance)
        problems = [
            f"{_where(err)}: {err.message}"
            for err in sorted(errors, key=lambda e: [str(p) for p in e.absolute_path])
        ]
        if problems:
            raise ValidationError(
                f"Document does not match {schema_filename}.",
                errors=problems,
            )
