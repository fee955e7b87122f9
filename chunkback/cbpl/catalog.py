"""CBPL command catalog loaded from the bundled JSON definitions."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from importlib import resources
import json
from typing import Any, Literal

from jsonschema import Draft202012Validator

from chunkback.cbpl.exceptions import CatalogError

ParameterType = Literal["string", "number"]

DEFINITIONS_RESOURCE = "definitions.json"

_DEFINITIONS_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "CBPL command definitions",
    "type": "object",
    "required": ["version", "commands"],
    "properties": {
        "version": {"type": "string", "pattern": r"^\d+\.\d+\.\d+$"},
        "commands": {
            "type": "object",
            "minProperties": 1,
            "propertyNames": {"pattern": "^[A-Z][A-Z0-9]*$"},
            "additionalProperties": {
                "type": "object",
                "required": ["description", "parameters"],
                "properties": {
                    "description": {"type": "string", "minLength": 1},
                    "parameters": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "required": ["name", "type", "description"],
                            "additionalProperties": False,
                            "properties": {
                                "name": {"type": "string", "minLength": 1},
                                "type": {"enum": ["string", "number"]},
                                "description": {"type": "string", "minLength": 1},
                                "validation": {
                                    "type": "object",
                                    "required": ["min", "max"],
                                    "additionalProperties": False,
                                    "properties": {
                                        "min": {"type": "integer"},
                                        "max": {"type": "integer"},
                                    },
                                },
                            },
                        },
                    },
                },
            },
        },
    },
}


@dataclass(frozen=True, slots=True)
class ParameterDefinition:
    name: str
    type: ParameterType
    description: str
    minimum: int | None = None
    maximum: int | None = None

    def clamp(self, value: int) -> int:
        """Clamp a numeric operand into the declared bounds."""
        if self.minimum is not None and value < self.minimum:
            return self.minimum
        if self.maximum is not None and value > self.maximum:
            return self.maximum
        return value

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "name": self.name,
            "type": self.type,
            "description": self.description,
        }
        if self.minimum is not None or self.maximum is not None:
            payload["validation"] = {"min": self.minimum, "max": self.maximum}
        return payload


@dataclass(frozen=True, slots=True)
class CommandDefinition:
    name: str
    description: str
    parameters: tuple[ParameterDefinition, ...]

    def parameter(self, name: str) -> ParameterDefinition:
        for parameter in self.parameters:
            if parameter.name == name:
                return parameter
        raise KeyError(f"{self.name} has no parameter named {name!r}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": [parameter.to_dict() for parameter in self.parameters],
        }


@dataclass(frozen=True, slots=True)
class CommandCatalog:
    version: str
    commands: dict[str, CommandDefinition]

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(self.commands)

    def get(self, name: str) -> CommandDefinition | None:
        return self.commands.get(name.strip().upper())


def build_catalog(raw: dict[str, Any]) -> CommandCatalog:
    """Validate raw definitions and build an immutable catalog."""
    validator = Draft202012Validator(_DEFINITIONS_SCHEMA)
    errors = sorted(validator.iter_errors(raw), key=lambda err: list(err.path))
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.path) or "$"
        raise CatalogError(f"Invalid command definitions at {location}: {first.message}")

    commands: dict[str, CommandDefinition] = {}
    for name, entry in raw["commands"].items():
        parameters: list[ParameterDefinition] = []
        for param in entry["parameters"]:
            bounds = param.get("validation") or {}
            if bounds and bounds["min"] > bounds["max"]:
                raise CatalogError(
                    f"Invalid bounds for {name}.{param['name']}: "
                    f"min {bounds['min']} exceeds max {bounds['max']}"
                )
            parameters.append(
                ParameterDefinition(
                    name=param["name"],
                    type=param["type"],
                    description=param["description"],
                    minimum=bounds.get("min"),
                    maximum=bounds.get("max"),
                )
            )
        commands[name] = CommandDefinition(
            name=name,
            description=entry["description"],
            parameters=tuple(parameters),
        )
    return CommandCatalog(version=raw["version"], commands=commands)


@lru_cache(maxsize=1)
def load_catalog() -> CommandCatalog:
    """Load the bundled command catalog."""
    source = resources.files("chunkback.cbpl").joinpath(DEFINITIONS_RESOURCE)
    try:
        raw = json.loads(source.read_text(encoding="utf-8"))
    except json.JSONDecodeError as error:
        raise CatalogError(f"Command definitions are not valid JSON: {error}") from error
    return build_catalog(raw)
