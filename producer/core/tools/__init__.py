"""Tool registry, schemas and host-bound handlers."""
from producer.core.tools.handlers import HostTools, build_registry
from producer.core.tools.registry import ToolDefinition, ToolRegistry, ToolResult

__all__ = ["HostTools", "ToolDefinition", "ToolRegistry", "ToolResult", "build_registry"]
