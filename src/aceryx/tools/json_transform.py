"""JSON transform tool: extract, filter, merge and validate JSON values."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from aceryx.tools.base import (
    ModuleExecution,
    ModulePermissions,
    ToolCategory,
    ToolDefinition,
)

if TYPE_CHECKING:
    from aceryx.tools.context import ExecutionContext

TOOL_ID = "json_transform"
OPERATIONS = ("extract", "filter", "merge", "validate")
DEFAULT_FILTER_PATH = "id"

_MISSING = object()

_JSON_TYPES: dict[str, tuple[type, ...]] = {
    "object": (dict,),
    "array": (list,),
    "string": (str,),
    "number": (int, float),
    "integer": (int,),
    "boolean": (bool,),
    "null": (type(None),),
}


def build_definition() -> ToolDefinition:
    return ToolDefinition(
        id=TOOL_ID,
        name="JSON Transform",
        description="Transform, filter, and manipulate JSON data",
        category=ToolCategory.CUSTOM,
        input_schema={
            "type": "object",
            "properties": {
                "data": {"description": "Input JSON data to transform"},
                "operation": {
                    "type": "string",
                    "enum": list(OPERATIONS),
                    "description": "Operation to perform",
                },
                "path": {
                    "type": "string",
                    "description": "JSONPath expression for extract/filter operations",
                },
                "merge_data": {"description": "Data to merge (for merge operation)"},
                "schema": {
                    "type": "object",
                    "description": "JSON schema for validation",
                },
            },
            "required": ["data", "operation"],
        },
        output_schema={
            "type": "object",
            "properties": {
                "result": {"description": "Transformed JSON data"},
                "valid": {
                    "type": "boolean",
                    "description": "Whether the data is valid (for validate operation)",
                },
                "errors": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Validation errors (if any)",
                },
            },
        },
        execution_mode=ModuleExecution(
            permissions=ModulePermissions(
                network_access=False,
                filesystem_access=False,
                environment_access=False,
                max_memory_mb=16,
            )
        ),
    )


def _step(current: Any, key: str) -> Any:
    if isinstance(current, dict):
        return current.get(key, _MISSING)
    if isinstance(current, list) and key.isdigit():
        index = int(key)
        return current[index] if index < len(current) else _MISSING
    return _MISSING


def extract_path(data: Any, path: str) -> Any:
    """Resolve a simple path against *data*.

    ``$`` alone is the whole document; ``$.a.b`` walks dotted segments
    (digits index into arrays); anything else is a single top-level key.

    Raises:
        ValueError: If a segment does not resolve.
    """
    if path.startswith("$"):
        current = data
        for part in (p for p in path[1:].split(".") if p):
            current = _step(current, part)
            if current is _MISSING:
                msg = f"Path not found: {part}"
                raise ValueError(msg)
        return current

    value = _step(data, path)
    if value is _MISSING:
        msg = f"Property not found: {path}"
        raise ValueError(msg)
    return value


def merge_objects(base: Any, merge_data: Any) -> Any:
    """Shallow-merge two objects, right side winning; otherwise return *merge_data*."""
    if isinstance(base, dict) and isinstance(merge_data, dict):
        return {**base, **merge_data}
    return merge_data


def _matches_type(value: Any, expected: str) -> bool:
    types = _JSON_TYPES.get(expected)
    if types is None:
        return True
    if isinstance(value, bool) and bool not in types:
        return False
    return isinstance(value, types)


def check_schema(data: Any, schema: dict[str, Any] | None) -> list[str]:
    """Basic structural check: top-level ``type`` and ``required`` keys."""
    if not schema:
        return []

    errors: list[str] = []
    expected = schema.get("type")
    if isinstance(expected, str) and not _matches_type(data, expected):
        errors.append(f"Expected type '{expected}'")

    required = schema.get("required") or []
    if isinstance(data, dict):
        errors.extend(
            f"Missing required property '{key}'" for key in required if key not in data
        )
    elif required and expected in (None, "object"):
        errors.append("Required properties need an object")
    return errors


class JsonTransformTool:
    """Pure, in-process JSON manipulation. Implements :class:`Tool`."""

    def __init__(self) -> None:
        self._definition = build_definition()

    @property
    def definition(self) -> ToolDefinition:
        return self._definition

    def validate_input(self, input_data: Any) -> None:
        if not isinstance(input_data, dict) or "data" not in input_data:
            msg = "Missing required parameter 'data'"
            raise ValueError(msg)

        operation = input_data.get("operation")
        if not isinstance(operation, str):
            msg = "Missing required parameter 'operation'"
            raise ValueError(msg)
        if operation not in OPERATIONS:
            msg = f"Unsupported operation: {operation}"
            raise ValueError(msg)

        if operation == "extract" and "path" not in input_data:
            msg = "Missing required parameter 'path' for extract operation"
            raise ValueError(msg)
        if operation == "merge" and "merge_data" not in input_data:
            msg = "Missing required parameter 'merge_data' for merge operation"
            raise ValueError(msg)
        schema = input_data.get("schema")
        if schema is not None and not isinstance(schema, dict):
            msg = "Schema must be an object"
            raise ValueError(msg)

    async def execute(
        self, input_data: dict[str, Any], context: ExecutionContext
    ) -> dict[str, Any]:
        self.validate_input(input_data)
        data = input_data["data"]
        operation = input_data["operation"]

        if operation == "extract":
            path = input_data["path"]
            if not isinstance(path, str):
                msg = "Missing required parameter 'path' for extract operation"
                raise ValueError(msg)
            return {"result": extract_path(data, path)}

        if operation == "filter":
            if not isinstance(data, list):
                return {"result": data}
            path = input_data.get("path") or DEFAULT_FILTER_PATH
            kept = []
            for item in data:
                try:
                    extract_path(item, path)
                except ValueError:
                    continue
                kept.append(item)
            return {"result": kept}

        if operation == "merge":
            return {"result": merge_objects(data, input_data["merge_data"])}

        errors = check_schema(data, input_data.get("schema"))
        return {"result": data, "valid": not errors, "errors": errors}
