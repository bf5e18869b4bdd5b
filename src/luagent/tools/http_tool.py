"""
HTTP client tools, exposed to Lua as ``http.get``, ``http.post``, ``http.put`` and
``http.delete``.

A successful request returns the table ``{status, headers, body}``.  A failed request returns
the string ``"HTTP request failed: ..."`` so scripts can report it.
"""

import json
import logging
from typing import (
    Any,
    Dict,
    List,
)

import httpx

from luagent.agent.tool_executor import ToolExecutionError
from luagent.tools import register_tool

logger = logging.getLogger(__name__)

_TIMEOUT = 30.0


def _make_client() -> httpx.Client:
    return httpx.Client(timeout=_TIMEOUT, follow_redirects=True)


def _headers(headers: Any) -> Dict[str, str] | None:
    if not headers:  # nil or empty table
        return None
    if not isinstance(headers, dict):
        raise ToolExecutionError("headers must be a table of name = value pairs")
    return {str(k): str(v) for k, v in headers.items()}


def _request(method: str, url: str, headers: Any = None, body: Any = None) -> List[Any] | str:
    kwargs: Dict[str, Any] = {"headers": _headers(headers)}
    if isinstance(body, (dict, list)):
        kwargs["json"] = body
    elif body is not None:
        kwargs["content"] = str(body)

    try:
        with _make_client() as client:
            resp = client.request(method, url, **kwargs)
    except httpx.HTTPError as exc:
        logger.warning("HTTP %s %s failed: %s", method, url, exc)
        return f"HTTP request failed: {exc}"

    logger.debug("HTTP %s %s -> %d", method, url, resp.status_code)
    return [resp.status_code, dict(resp.headers), _body_text(resp)]


def _body_text(resp: httpx.Response) -> str:
    content_type = resp.headers.get("content-type", "")
    if "json" in content_type:
        try:
            return json.dumps(resp.json(), ensure_ascii=False)
        except ValueError:
            pass
    return resp.text


@register_tool("http.get")
def get(url: str, headers: Dict[str, str] | None = None) -> List[Any] | str:
    """
    Make a GET request to the specified URL.

    Args:
        url: The URL to request
        headers: Optional table of headers
    """
    return _request("GET", url, headers)


@register_tool("http.post")
def post(url: str, body: str | Dict[str, Any], headers: Dict[str, str] | None = None) -> Any:
    """
    Make a POST request to the specified URL.

    Args:
        url: The URL to request
        body: The request body; tables are sent as JSON
        headers: Optional table of headers
    """
    return _request("POST", url, headers, body)


@register_tool("http.put")
def put(url: str, body: str | Dict[str, Any], headers: Dict[str, str] | None = None) -> Any:
    """
    Make a PUT request to the specified URL.

    Args:
        url: The URL to request
        body: The request body; tables are sent as JSON
        headers: Optional table of headers
    """
    return _request("PUT", url, headers, body)


@register_tool("http.delete")
def delete(url: str, headers: Dict[str, str] | None = None) -> List[Any] | str:
    """
    Make a DELETE request to the specified URL.

    Args:
        url: The URL to request
        headers: Optional table of headers
    """
    return _request("DELETE", url, headers)
