"""Tool registry: declare local capabilities to the LLM and dispatch calls by name."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass

from producer.contracts.json_types import JSONObject
from producer.contracts.llm_types import ToolParametersDict, ToolSchemaDict
from producer.errors import ToolRejected

logger = logging.getLogger(__name__)

ToolHandler = Callable[[JSONObject], JSONObject]
"""Handler signature: parsed argument object in, success payload out.

Handlers raise ``ToolRejected`` for validation failures the model should
read verbatim; any other exception is reported as a tool execution error.
"""


@dataclass(frozen=True)
class ToolResult:
    """Outcome of a tool call.

    ``content`` is the exact text that becomes the ``tool`` message content:
    the compact JSON payload on success, the error text on failure.
    """

    success: bool
    result: str = ""
    error: str = ""

    @classmethod
    def ok(cls, payload: JSONObject) -> ToolResult:
        return cls(success=True, result=json.dumps(payload, separators=(",", ":"), ensure_ascii=False))

    @classmethod
    def err(cls, message: str) -> ToolResult:
        return cls(success=False, error=message)

    @property
    def content(self) -> str:
        return self.result if self.success else self.error


@dataclass(frozen=True)
class ToolDefinition:
    """A registered tool; immutable after registration."""

    name: str
    description: str
    parameters: ToolParametersDict

    def to_schema(self) -> ToolSchemaDict:
        """OpenAI function-calling shape sent in the request ``tools`` array."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


class ToolRegistry:
    """Name-keyed catalog of ``(definition, handler)`` pairs.

    Iteration and ``describe_all()`` follow registration order, which is
    stable for the lifetime of the registry.
    """

    def __init__(self) -> None:
        self._definitions: dict[str, ToolDefinition] = {}
        self._handlers: dict[str, ToolHandler] = {}

    def register(
        self,
        name: str,
        description: str,
        parameters: ToolParametersDict,
        handler: ToolHandler,
    ) -> None:
        if name in self._definitions:
            raise ValueError(f"Tool already registered: {name}")
        self._definitions[name] = ToolDefinition(name=name, description=description, parameters=parameters)
        self._handlers[name] = handler

    def has_tool(self, name: str) -> bool:
        return name in self._handlers

    def __contains__(self, name: object) -> bool:
        return name in self._handlers

    def __len__(self) -> int:
        return len(self._definitions)

    def __iter__(self) -> Iterator[ToolDefinition]:
        return iter(self._definitions.values())

    def describe_all(self) -> list[ToolSchemaDict]:
        return [d.to_schema() for d in self._definitions.values()]

    def execute(self, name: str, arguments: JSONObject) -> ToolResult:
        """Run a tool; never raises for handler failures."""
        handler = self._handlers.get(name)
        if handler is None:
            logger.warning(f"⚠️ Unknown tool requested: {name!r}")
            return ToolResult.err(f"Unknown tool: {name}")

        try:
            payload = handler(arguments)
        except ToolRejected as e:
            logger.info(f"🚫 Tool {name} rejected: {e.message}")
            return ToolResult.err(e.message)
        except Exception as e:
            logger.exception(f"❌ Tool {name} raised")
            return ToolResult.err(f"Tool execution error: {e}")

        logger.info(f"🔧 Tool {name} ok")
        return ToolResult.ok(payload)
