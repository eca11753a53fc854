"""Tool registry: validate, execute and format tool calls uniformly.

Every tool is described by a :class:`ToolSpec` holding its field validators,
its executor (called with the host capability provider) and a result
formatter. :meth:`ToolRegistry.execute` turns a raw ``(name, args)`` pair into
an :class:`ExecutionResult` and never raises, so individual tools need no
error plumbing of their own.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from .catalog import ToolName
from .host import HostCapabilities

logger = logging.getLogger(__name__)

Validator = Callable[[Any, str], str | None]
Executor = Callable[[HostCapabilities, dict[str, Any]], Any]
Formatter = Callable[[Any, dict[str, Any]], Any]


# =============================================================================
# Validators
# =============================================================================


def string(value: Any, name: str) -> str | None:
    if value is None:
        return f"{name} is required"
    if not isinstance(value, str):
        return f"{name} must be a string"
    return None


def number(value: Any, name: str) -> str | None:
    if value is None:
        return f"{name} is required"
    # bool is an int subclass but never a valid position
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return f"{name} must be a number"
    return None


def boolean(value: Any, name: str) -> str | None:
    if value is None:
        return f"{name} is required"
    if not isinstance(value, bool):
        return f"{name} must be a boolean"
    return None


def array(value: Any, name: str) -> str | None:
    if value is None:
        return f"{name} is required"
    if not isinstance(value, list):
        return f"{name} must be an array"
    return None


def enum(allowed: tuple[str, ...] | list[str]) -> Validator:
    """Build a validator accepting only the given values."""
    choices = tuple(allowed)

    def validate(value: Any, name: str) -> str | None:
        if value is None:
            return f"{name} is required"
        if value not in choices:
            return f"{name} must be one of: {', '.join(choices)}"
        return None

    return validate


def optional(validator: Validator) -> Validator:
    """Wrap a validator so that a missing value passes."""

    def validate(value: Any, name: str) -> str | None:
        if value is None:
            return None
        return validator(value, name)

    return validate


# =============================================================================
# Result envelope
# =============================================================================


@dataclass
class ExecutionResult:
    """Outcome of a tool call. A failed result always carries an error."""

    success: bool
    data: Any = None
    error: str | None = None

    @classmethod
    def ok(cls, data: Any) -> ExecutionResult:
        return cls(success=True, data=data)

    @classmethod
    def failure(cls, error: str | None) -> ExecutionResult:
        return cls(success=False, error=error or "Tool execution failed")

    def to_dict(self) -> dict[str, Any]:
        return {"success": self.success, "data": self.data, "error": self.error}


# =============================================================================
# Registry
# =============================================================================


def _passthrough(result: Any, args: dict[str, Any]) -> Any:
    return result


@dataclass(frozen=True)
class ToolSpec:
    """How a single tool is validated, executed and formatted.

    ``failure_message`` marks tools whose only useful signal is success or
    failure: a ``False`` return from the executor becomes a failed result with
    that message instead of ``success=True`` carrying a false flag.
    """

    execute: Executor
    validate: Mapping[str, Validator] = field(default_factory=dict)
    format: Formatter = _passthrough
    failure_message: str | None = None


def _describe(exc: BaseException) -> str:
    return str(exc) or exc.__class__.__name__


class ToolRegistry:
    """Maps tool names to specs bound to one host capability provider."""

    def __init__(
        self, host: HostCapabilities, specs: Mapping[ToolName, ToolSpec]
    ) -> None:
        self.host = host
        self._specs = dict(specs)

    def names(self) -> list[str]:
        return [name.value for name in self._specs]

    def get(self, name: str) -> ToolSpec | None:
        tool = ToolName.lookup(name)
        if tool is None:
            return None
        return self._specs.get(tool)

    async def execute(self, name: str, args: Any = None) -> ExecutionResult:
        """Run a tool call end to end. Never raises."""
        spec = self.get(name)
        if spec is None:
            return ExecutionResult.failure(f"Unknown tool: {name}")

        if args is None:
            args = {}
        if not isinstance(args, dict):
            return ExecutionResult.failure("Arguments must be an object")

        for field_name, validator in spec.validate.items():
            message = validator(args.get(field_name), field_name)
            if message:
                logger.debug("Validation failed for %s: %s", name, message)
                return ExecutionResult.failure(message)

        try:
            result = spec.execute(self.host, args)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            logger.warning("Tool %s failed", name, exc_info=True)
            return ExecutionResult.failure(_describe(e))

        if result is False and spec.failure_message:
            return ExecutionResult.failure(spec.failure_message)

        try:
            data = spec.format(result, args)
        except Exception as e:
            logger.warning("Formatting result of %s failed", name, exc_info=True)
            return ExecutionResult.failure(_describe(e))

        return ExecutionResult.ok(data)


async def execute_tool(
    registry: ToolRegistry, name: str, args: Any = None
) -> ExecutionResult:
    """Execute a tool call through ``registry``."""
    return await registry.execute(name, args)
