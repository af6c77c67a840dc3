"""curlcap parser - .http / .rest request files.

Format::

    @host = https://api.example.com

    ###
    # Get users
    GET {{host}}/users?page=1 HTTP/1.1
    Accept: application/json

    ###
    # Create user
    POST {{host}}/users
    Content-Type: application/json

    {"name": "John"}

- ``@name = value`` binds a variable for every line scanned after it.
- A line starting with ``###`` separates requests.
- ``# text`` / ``## text`` names the request; other ``#`` and ``//`` lines
  are comments.
- Request line, then ``Key: value`` headers, a blank line, then the body.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from urllib.parse import SplitResult, parse_qsl, urljoin, urlsplit

from curlcap.log import get_logger
from curlcap.models import (
    Body,
    FormDataBody,
    JsonBody,
    KeyValue,
    NoBody,
    RawBody,
    Request,
    UrlEncodedBody,
)
from curlcap.variables import VariableResolver

logger = get_logger(__name__)

SEPARATOR = re.compile(r"^#{3,}")
VARIABLE_DEFINITION = re.compile(r"^@(\w+)\s*=\s*(.+)$")
REQUEST_LINE = re.compile(
    r"^(GET|POST|PUT|PATCH|DELETE|HEAD|OPTIONS)\s+(.+?)(?:\s+HTTP/[\d.]+)?$",
    re.IGNORECASE,
)
HEADER_LINE = re.compile(r"^([A-Za-z0-9-]+):\s*(.+)$")
COMMENT_LINE = re.compile(r"^(#(?!##)|//)")
REQUEST_NAME = re.compile(r"^#{1,2}\s+(.+)$")

# Base for resolving relative request URLs ("/users?page=1").
_DUMMY_BASE = "http://localhost"
_DEFAULT_PORTS = {"http": 80, "https": 443}


@dataclass(frozen=True)
class RequestBlock:
    """One request as written in the file. Line numbers are 0-based."""

    method: str
    url: str
    headers: tuple[KeyValue, ...]
    body_text: str
    name: str | None
    start_line: int
    end_line: int


@dataclass
class _RawBlock:
    # Each line keeps the resolver in effect when it was scanned.
    lines: list[tuple[str, VariableResolver]]
    start_line: int
    end_line: int
    name: str | None


def _split_blocks(text: str, resolver: VariableResolver) -> list[_RawBlock]:
    """Split file text into raw blocks, binding variables as they appear."""
    lines = text.split("\n")
    blocks: list[_RawBlock] = []
    current: list[tuple[str, VariableResolver]] = []
    start_line = 0
    pending_name: str | None = None

    for i, raw_line in enumerate(lines):
        line = raw_line.rstrip("\r")
        stripped = line.strip()

        var_match = VARIABLE_DEFINITION.match(stripped)
        if var_match:
            resolver = resolver.bind(var_match.group(1), var_match.group(2).strip())
            continue

        if SEPARATOR.match(stripped):
            if current:
                blocks.append(_RawBlock(current, start_line, i - 1, pending_name))
            current = []
            pending_name = None
            start_line = i + 1
            continue

        name_match = REQUEST_NAME.match(stripped)
        if name_match:
            pending_name = name_match.group(1).strip()
            continue

        if not current and not stripped:
            start_line = i + 1
            continue

        if COMMENT_LINE.match(stripped):
            continue

        current.append((line, resolver))

    if current:
        blocks.append(_RawBlock(current, start_line, len(lines) - 1, pending_name))

    return blocks


def _parse_block(raw: _RawBlock) -> RequestBlock | None:
    request_index = None
    method = url = ""
    for i, (line, resolver) in enumerate(raw.lines):
        m = REQUEST_LINE.match(line.strip())
        if m:
            request_index = i
            method = m.group(1).upper()
            url = resolver.resolve(m.group(2).strip())
            break

    if request_index is None:
        logger.debug(
            "No request line in block at lines %d-%d, skipping",
            raw.start_line,
            raw.end_line,
        )
        return None

    headers: list[KeyValue] = []
    body_start = len(raw.lines)
    for i in range(request_index + 1, len(raw.lines)):
        line, resolver = raw.lines[i]
        stripped = line.strip()
        if not stripped:
            body_start = i + 1
            break
        m = HEADER_LINE.match(stripped)
        if m:
            headers.append(KeyValue(m.group(1), resolver.resolve(m.group(2))))

    body_text = "\n".join(
        resolver.resolve(line) for line, resolver in raw.lines[body_start:]
    ).strip()

    return RequestBlock(
        method=method,
        url=url,
        headers=tuple(headers),
        body_text=body_text,
        name=raw.name,
        start_line=raw.start_line,
        end_line=raw.end_line,
    )


def infer_body(headers: tuple[KeyValue, ...], body_text: str) -> Body:
    """Pick a body variant from the Content-Type header, then the text itself."""
    if not body_text:
        return NoBody()

    content_type = next(
        (h.value.lower() for h in headers if h.key.lower() == "content-type"),
        "",
    )
    if "application/json" in content_type:
        return JsonBody(body_text)
    if "application/x-www-form-urlencoded" in content_type:
        return UrlEncodedBody(body_text)
    if "multipart/form-data" in content_type:
        return FormDataBody(content=body_text)

    if body_text.startswith(("{", "[")):
        try:
            json.loads(body_text)
            return JsonBody(body_text)
        except ValueError:
            pass

    return RawBody(body_text)


def _origin(parts: SplitResult) -> str:
    """``scheme://host[:port]`` with credentials and default ports dropped."""
    host = parts.hostname or ""
    if ":" in host:
        host = f"[{host}]"
    port = parts.port
    if port is not None and port != _DEFAULT_PORTS.get(parts.scheme):
        host = f"{host}:{port}"
    return f"{parts.scheme}://{host}"


def split_query(url: str) -> tuple[str, tuple[KeyValue, ...]]:
    """Return (url without query, query params).

    Absolute URLs come back as ``scheme://host[:port]/path`` (no user
    info), relative ones as ``/path``.
    """
    try:
        parts = urlsplit(urljoin(_DUMMY_BASE, url))
        origin = _origin(parts)
    except ValueError:
        return url.split("?", 1)[0], ()

    params = tuple(
        KeyValue(key, value) for key, value in parse_qsl(parts.query, keep_blank_values=True)
    )
    path = parts.path or "/"
    if url.startswith(("http://", "https://")):
        return f"{origin}{path}", params
    return path, params


def generate_name(method: str, url: str) -> str:
    """``METHOD last-path-segment``, e.g. ``GET users``."""
    try:
        path = urlsplit(urljoin(_DUMMY_BASE, url)).path
    except ValueError:
        return f"{method} request"
    segments = [s for s in path.split("/") if s]
    return f"{method} {segments[-1] if segments else 'root'}"


def to_request(block: RequestBlock) -> Request:
    url, query_params = split_query(block.url)
    return Request(
        method=block.method,
        url=url,
        headers=block.headers,
        query_params=query_params,
        body=infer_body(block.headers, block.body_text),
        name=block.name or generate_name(block.method, block.url),
    )


def parse_blocks(text: str, variables: dict[str, str] | None = None) -> list[RequestBlock]:
    """Parse every block that has a request line.

    ``variables`` seeds the bindings; ``@name = value`` lines in the file
    add to them as scanning proceeds.
    """
    blocks: list[RequestBlock] = []
    for raw in _split_blocks(text, VariableResolver(variables)):
        block = _parse_block(raw)
        if block is not None:
            blocks.append(block)
    return blocks


def parse_all(text: str, variables: dict[str, str] | None = None) -> list[Request]:
    return [to_request(block) for block in parse_blocks(text, variables)]


def parse_at_position(
    text: str,
    line_number: int,
    variables: dict[str, str] | None = None,
) -> Request | None:
    """Return the request whose block spans ``line_number`` (0-based)."""
    for raw in _split_blocks(text, VariableResolver(variables)):
        if raw.start_line <= line_number <= raw.end_line:
            block = _parse_block(raw)
            return to_request(block) if block else None
    return None


def collect_variables(text: str) -> dict[str, str]:
    """All ``@name = value`` definitions in the file; later ones win."""
    variables: dict[str, str] = {}
    for line in text.split("\n"):
        m = VARIABLE_DEFINITION.match(line.strip())
        if m:
            variables[m.group(1)] = m.group(2).strip()
    return variables
