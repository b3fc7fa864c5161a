"""HTTP request tool: calls APIs and web services with httpx.

Supports the common methods, custom headers, string or JSON bodies,
per-request timeouts and redirect control. JSON responses are parsed
into the ``json`` output field.
"""

from __future__ import annotations

import json
import time
from typing import TYPE_CHECKING, Any

import httpx

from aceryx.tools.base import (
    ModuleExecution,
    ModulePermissions,
    ToolCategory,
    ToolDefinition,
)

if TYPE_CHECKING:
    from aceryx.config.schema import HttpToolConfig
    from aceryx.tools.context import ExecutionContext

TOOL_ID = "http_request"
METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS")
MAX_TIMEOUT = 300


def build_definition() -> ToolDefinition:
    return ToolDefinition(
        id=TOOL_ID,
        name="HTTP Request",
        description="Make HTTP requests to APIs and web services",
        category=ToolCategory.HTTP,
        input_schema={
            "type": "object",
            "properties": {
                "url": {
                    "type": "string",
                    "format": "uri",
                    "description": "The URL to make the request to",
                },
                "method": {
                    "type": "string",
                    "enum": list(METHODS),
                    "default": "GET",
                    "description": "HTTP method to use",
                },
                "headers": {
                    "type": "object",
                    "description": "HTTP headers to include",
                    "additionalProperties": {"type": "string"},
                },
                "body": {
                    "oneOf": [{"type": "string"}, {"type": "object"}],
                    "description": "Request body (string or JSON object)",
                },
                "timeout": {
                    "type": "number",
                    "default": 30,
                    "description": "Timeout in seconds",
                },
                "follow_redirects": {
                    "type": "boolean",
                    "default": True,
                    "description": "Whether to follow HTTP redirects",
                },
            },
            "required": ["url"],
        },
        output_schema={
            "type": "object",
            "properties": {
                "status": {"type": "number", "description": "HTTP status code"},
                "headers": {"type": "object", "description": "Response headers"},
                "body": {"type": "string", "description": "Response body as string"},
                "json": {"description": "Parsed JSON response (if JSON)"},
                "duration_ms": {
                    "type": "number",
                    "description": "Request duration in milliseconds",
                },
                "url": {"type": "string", "description": "Final URL (after redirects)"},
            },
            "required": ["status", "headers", "body", "duration_ms", "url"],
        },
        execution_mode=ModuleExecution(
            permissions=ModulePermissions(
                network_access=True,
                filesystem_access=False,
                environment_access=False,
                max_memory_mb=32,
            )
        ),
    )


def parse_method(method: str) -> str:
    """Normalize an HTTP method name.

    Raises:
        ValueError: If the method is not supported.
    """
    upper = method.upper()
    if upper not in METHODS:
        msg = f"Unsupported HTTP method: {method}"
        raise ValueError(msg)
    return upper


def build_headers(headers: dict[str, Any]) -> dict[str, str]:
    """Stringify header values; non-string values are JSON-encoded."""
    return {
        str(name): value if isinstance(value, str) else json.dumps(value)
        for name, value in headers.items()
    }


def _looks_like_json(response: httpx.Response, body: str) -> bool:
    content_type = response.headers.get("content-type")
    if content_type is not None:
        return "application/json" in content_type or "text/json" in content_type
    return body.lstrip().startswith(("{", "["))


class HttpRequestTool:
    """Outbound HTTP call tool backed by a shared ``httpx.AsyncClient``.

    Implements the :class:`Tool` protocol. The client is created on first
    use and closed by :meth:`cleanup`.
    """

    def __init__(
        self,
        config: HttpToolConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        from aceryx.config.schema import HttpToolConfig as HTConfig

        self._config = config or HTConfig()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._definition = build_definition()

    @property
    def definition(self) -> ToolDefinition:
        return self._definition

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self._config.timeout,
                headers={"User-Agent": self._config.user_agent},
                transport=self._transport,
            )
        return self._client

    def validate_input(self, input_data: Any) -> None:
        if not isinstance(input_data, dict):
            msg = "Input must be an object"
            raise ValueError(msg)

        if not isinstance(input_data.get("url"), str):
            msg = "Missing required parameter 'url'"
            raise ValueError(msg)

        method = input_data.get("method")
        if method is not None:
            if not isinstance(method, str):
                msg = "Method must be a string"
                raise ValueError(msg)
            parse_method(method)

        timeout = input_data.get("timeout")
        if timeout is not None:
            if isinstance(timeout, bool) or not isinstance(timeout, int | float):
                msg = "Timeout must be a number"
                raise ValueError(msg)
            if timeout < 1 or timeout > MAX_TIMEOUT:
                msg = f"Timeout must be between 1 and {MAX_TIMEOUT} seconds"
                raise ValueError(msg)

        headers = input_data.get("headers")
        if headers is not None and not isinstance(headers, dict):
            msg = "Headers must be an object"
            raise ValueError(msg)

    async def execute(
        self, input_data: dict[str, Any], context: ExecutionContext
    ) -> dict[str, Any]:
        """Perform the request.

        Raises:
            ValueError: If 'url' is missing or the method is unsupported.
            RuntimeError: If the request fails at the transport level.
        """
        url = input_data.get("url")
        if not isinstance(url, str):
            msg = "Missing required parameter 'url'"
            raise ValueError(msg)

        method = parse_method(input_data.get("method") or "GET")
        timeout = input_data.get("timeout") or 30
        follow_redirects = input_data.get("follow_redirects")
        if follow_redirects is None:
            follow_redirects = True

        kwargs: dict[str, Any] = {
            "timeout": timeout,
            "follow_redirects": bool(follow_redirects),
        }
        headers = input_data.get("headers")
        if headers:
            kwargs["headers"] = build_headers(headers)

        body = input_data.get("body")
        if isinstance(body, str):
            kwargs["content"] = body
        elif isinstance(body, dict | list):
            kwargs["json"] = body
        elif body is not None:
            kwargs["content"] = json.dumps(body)

        start = time.monotonic()
        try:
            response = await self._get_client().request(method, url, **kwargs)
        except httpx.HTTPError as e:
            msg = f"HTTP request failed: {e}"
            raise RuntimeError(msg) from e
        duration_ms = int((time.monotonic() - start) * 1000)

        text = response.text
        result: dict[str, Any] = {
            "status": response.status_code,
            "headers": dict(response.headers),
            "body": text,
            "duration_ms": duration_ms,
            "url": str(response.url),
        }
        if _looks_like_json(response, text):
            try:
                result["json"] = json.loads(text)
            except ValueError:
                pass
        return result

    async def cleanup(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
