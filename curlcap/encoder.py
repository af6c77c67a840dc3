"""curlcap encoder - Request -> curl argument vector and shareable command line."""

from __future__ import annotations

import math
import re
import sys
from urllib.parse import quote

from requests.exceptions import RequestException
from requests.models import PreparedRequest

from curlcap.models import (
    ApiKeyAuth,
    BasicAuth,
    BearerAuth,
    BinaryBody,
    ExecutionOptions,
    FormDataBody,
    JsonBody,
    NoAuth,
    NoBody,
    RawBody,
    Request,
    UrlEncodedBody,
)

_POSIX_SPECIAL = re.compile(r"[\s\"'\\$`!]")
_WINDOWS_SPECIAL = re.compile(r"[\s\"^&|<>]")

# encodeURIComponent leaves these unescaped
_COMPONENT_SAFE = "-_.!~*'()"


def build_url(request: Request) -> str:
    """Append enabled query params (and an api-key in query) to the URL.

    The URL goes through requests' URL preparation when it can; relative or
    otherwise unparseable URLs get the params percent-encoded and appended
    by hand.
    """
    params = [(p.key, p.value) for p in request.query_params if p.enabled]
    auth = request.auth
    if isinstance(auth, ApiKeyAuth) and auth.location == "query" and auth.name and auth.value:
        params.append((auth.name, auth.value))

    if not params:
        return request.url

    if request.url.lower().startswith(("http://", "https://")):
        prepared = PreparedRequest()
        try:
            prepared.prepare_url(request.url, params)
            return prepared.url
        except RequestException:
            pass

    query = "&".join(
        f"{quote(k, safe=_COMPONENT_SAFE)}={quote(v, safe=_COMPONENT_SAFE)}"
        for k, v in params
    )
    separator = "&" if "?" in request.url else "?"
    return f"{request.url}{separator}{query}"


def _has_content_type(request: Request) -> bool:
    return any(h.enabled and h.key.lower() == "content-type" for h in request.headers)


def _auth_args(request: Request) -> list[str]:
    auth = request.auth
    if isinstance(auth, NoAuth):
        return []
    if isinstance(auth, BasicAuth):
        if auth.username and auth.password:
            return ["--user", f"{auth.username}:{auth.password}"]
        return []
    if isinstance(auth, BearerAuth):
        if auth.token:
            return ["--header", f"Authorization: Bearer {auth.token}"]
        return []
    if isinstance(auth, ApiKeyAuth):
        # query location is handled by build_url
        if auth.location == "header" and auth.name and auth.value:
            return ["--header", f"{auth.name}: {auth.value}"]
        return []
    raise TypeError(f"Unsupported auth: {auth!r}")


def _body_args(request: Request) -> list[str]:
    body = request.body
    args: list[str] = []

    if isinstance(body, NoBody):
        return args

    if isinstance(body, JsonBody | UrlEncodedBody):
        if not _has_content_type(request):
            content_type = (
                "application/json" if isinstance(body, JsonBody)
                else "application/x-www-form-urlencoded"
            )
            args += ["--header", f"Content-Type: {content_type}"]
        if body.content:
            args += ["--data", body.content]
        return args

    if isinstance(body, FormDataBody):
        for item in body.items:
            if not item.enabled:
                continue
            if item.kind == "file":
                args += ["--form", f"{item.key}=@{item.value}"]
            else:
                args += ["--form", f"{item.key}={item.value}"]
        if not body.items and body.content:
            args += ["--data", body.content]
        return args

    if isinstance(body, RawBody | BinaryBody):
        if body.content:
            args += ["--data", body.content]
        return args

    raise TypeError(f"Unsupported body: {body!r}")


def build_args(request: Request, options: ExecutionOptions) -> list[str]:
    """Build curl arguments. Order is fixed:

    method, URL, headers, auth, body, --location, --insecure, --max-time.
    """
    args = ["--request", request.method, build_url(request)]

    for header in request.headers:
        if header.enabled:
            args += ["--header", f"{header.key}: {header.value}"]

    args += _auth_args(request)
    args += _body_args(request)

    if options.follow_redirects:
        args.append("--location")
    if not options.verify_ssl:
        args.append("--insecure")

    args += ["--max-time", str(math.ceil(options.timeout_ms / 1000))]
    return args


def escape_arg(arg: str, windows: bool = False) -> str:
    """Quote an argument for display in a shell command line."""
    if windows:
        if _WINDOWS_SPECIAL.search(arg):
            return '"' + arg.replace('"', '\\"') + '"'
        return arg
    if _POSIX_SPECIAL.search(arg):
        return "'" + arg.replace("'", "'\\''") + "'"
    return arg


def build_command(
    request: Request,
    options: ExecutionOptions,
    windows: bool | None = None,
) -> str:
    """Human-readable curl command for copying into a terminal."""
    if windows is None:
        windows = sys.platform == "win32"
    binary = "curl.exe" if windows else "curl"
    args = build_args(request, options)
    return " ".join([binary] + [escape_arg(a, windows=windows) for a in args])
