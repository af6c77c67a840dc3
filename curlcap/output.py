"""curlcap output - formatting responses and request listings for the CLI."""

from __future__ import annotations

from curlcap.decoder import format_body, status_text
from curlcap.models import Response
from curlcap.parser import RequestBlock, generate_name


def format_response(response: Response, verbose: bool = False, raw: bool = False) -> str:
    """Format a response for CLI output.

    Default output:
        STATUS: 200 OK
        TIME: 45ms
        SIZE: 17 B
        BODY:
        {"id": 1}

    verbose adds a HEADERS section; raw returns only the (formatted) body.
    """
    body = format_body(response.body, response.content_type)
    if raw:
        return body

    reason = response.status_text or status_text(response.status)
    lines = [f"STATUS: {response.status} {reason}".rstrip()]
    lines.append(f"TIME: {int(response.time_ms)}ms")
    lines.append(f"SIZE: {response.size_bytes} B")

    if verbose and response.headers:
        lines.append("HEADERS:")
        for key, value in response.headers.items():
            lines.append(f"  {key}: {value}")

    if body:
        lines.append("BODY:")
        lines.append(body)

    return "\n".join(lines)


def format_block_list(blocks: list[RequestBlock]) -> str:
    """One line per request: index, 1-based line range, method, name."""
    if not blocks:
        return "No requests found."
    lines = []
    for i, block in enumerate(blocks):
        span = f"{block.start_line + 1}-{block.end_line + 1}"
        label = block.name or generate_name(block.method, block.url)
        lines.append(f"  [{i}] {block.method:<7} {label}  (lines {span})")
    return "\n".join(lines)
