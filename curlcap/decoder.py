"""curlcap decoder - curl stdout -> Response.

curl runs with ``-i`` and a ``-w`` write-out, so stdout looks like::

    HTTP/1.1 302 Found
    Location: /next

    HTTP/1.1 200 OK
    Content-Type: application/json

    {"ok": true}
    ---CURL_INFO---
    200
    0.123
    12

Only the last response block counts when redirects were followed.
"""

from __future__ import annotations

import json
import re

from curlcap.models import Response

SENTINEL = "---CURL_INFO---"
WRITE_OUT_FORMAT = f"\n{SENTINEL}\n%{{http_code}}\n%{{time_total}}\n%{{size_download}}"

_RESPONSE_START = re.compile(r"(?=HTTP/[\d.]+\s+\d+)")
_STATUS_LINE = re.compile(r"HTTP/[\d.]+ \d+ (.+)")

STATUS_TEXTS = {
    200: "OK",
    201: "Created",
    204: "No Content",
    301: "Moved Permanently",
    302: "Found",
    304: "Not Modified",
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    422: "Unprocessable Entity",
    429: "Too Many Requests",
    500: "Internal Server Error",
    502: "Bad Gateway",
    503: "Service Unavailable",
    504: "Gateway Timeout",
}


def _to_int(value: str) -> int:
    try:
        return int(value.strip())
    except ValueError:
        return 0


def _to_float(value: str) -> float:
    try:
        return float(value.strip())
    except ValueError:
        return 0.0


def _parse_info(info: str) -> tuple[int, float, int]:
    """(status, time in ms, size) from the write-out lines; 0 when missing."""
    lines = info.strip().split("\n") if info.strip() else []
    lines += [""] * (3 - len(lines))
    return _to_int(lines[0]), _to_float(lines[1]) * 1000, _to_int(lines[2])


def _parse_headers_and_body(content: str) -> tuple[dict[str, str], str, str]:
    """Split the final response block into (headers, body, reason phrase)."""
    headers: dict[str, str] = {}
    status_text = ""

    blocks = _RESPONSE_START.split(content)
    last = blocks[-1] if blocks else content

    line_ending = "\r\n"
    header_end = last.find("\r\n\r\n")
    if header_end == -1:
        line_ending = "\n"
        header_end = last.find("\n\n")
    if header_end == -1:
        return headers, last.strip(), status_text

    header_section = last[:header_end]
    body = last[header_end + 2 * len(line_ending):]

    for line in header_section.split(line_ending):
        if line.startswith("HTTP/"):
            m = _STATUS_LINE.match(line)
            if m:
                status_text = m.group(1).strip()
            continue
        colon = line.find(":")
        if colon > 0:
            # repeated headers: last one wins
            headers[line[:colon].strip().lower()] = line[colon + 1:].strip()

    return headers, body.strip(), status_text


def decode(raw_output: str, external_elapsed_ms: float, command_text: str) -> Response:
    """Turn curl's stdout into a Response. Never raises on malformed output.

    curl's own timing and size win when present; otherwise the caller's
    wall-clock time and the body's UTF-8 length are used.
    """
    content, _, info = raw_output.partition(SENTINEL)
    status, curl_time_ms, size = _parse_info(info)
    headers, body, status_text = _parse_headers_and_body(content)

    return Response(
        status=status,
        status_text=status_text,
        headers=headers,
        body=body,
        content_type=headers.get("content-type", "text/plain"),
        size_bytes=size or len(body.encode("utf-8")),
        time_ms=curl_time_ms or external_elapsed_ms,
        command_text=command_text,
    )


def format_body(body: str, content_type: str) -> str:
    """Pretty-print JSON bodies; anything else comes back unchanged."""
    if "application/json" in content_type:
        try:
            return json.dumps(json.loads(body), indent=2, ensure_ascii=False)
        except ValueError:
            return body
    return body


def status_text(code: int) -> str:
    return STATUS_TEXTS.get(code, "")
