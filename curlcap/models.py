"""curlcap models - requests, bodies, auth, execution options, responses."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar

HTTP_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS")


@dataclass(frozen=True)
class KeyValue:
    """A header or query parameter. Disabled entries are kept but not sent."""

    key: str
    value: str
    enabled: bool = True


@dataclass(frozen=True)
class FormField:
    """One multipart field. ``kind`` is ``text`` or ``file`` (value is a path)."""

    key: str
    value: str
    kind: str = "text"
    enabled: bool = True

    def __post_init__(self):
        if self.kind not in ("text", "file"):
            raise ValueError(f"Invalid form field kind: {self.kind!r}")


# ── Body variants ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class NoBody:
    type: ClassVar[str] = "none"


@dataclass(frozen=True)
class JsonBody:
    content: str = ""
    type: ClassVar[str] = "json"


@dataclass(frozen=True)
class UrlEncodedBody:
    content: str = ""
    type: ClassVar[str] = "x-www-form-urlencoded"


@dataclass(frozen=True)
class RawBody:
    content: str = ""
    type: ClassVar[str] = "raw"


@dataclass(frozen=True)
class BinaryBody:
    content: str = ""
    type: ClassVar[str] = "binary"


@dataclass(frozen=True)
class FormDataBody:
    """Multipart body.

    Structured callers fill ``items``. ``content`` holds a literal multipart
    body taken verbatim from a request file.
    """

    items: tuple[FormField, ...] = ()
    content: str = ""
    type: ClassVar[str] = "form-data"


Body = NoBody | JsonBody | UrlEncodedBody | RawBody | BinaryBody | FormDataBody

_CONTENT_BODIES: dict[str, type] = {
    JsonBody.type: JsonBody,
    UrlEncodedBody.type: UrlEncodedBody,
    RawBody.type: RawBody,
    BinaryBody.type: BinaryBody,
}


# ── Auth variants ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class NoAuth:
    type: ClassVar[str] = "none"


@dataclass(frozen=True)
class BasicAuth:
    username: str = ""
    password: str = ""
    type: ClassVar[str] = "basic"


@dataclass(frozen=True)
class BearerAuth:
    token: str = ""
    type: ClassVar[str] = "bearer"


@dataclass(frozen=True)
class ApiKeyAuth:
    name: str = ""
    value: str = ""
    location: str = "header"
    type: ClassVar[str] = "api-key"

    def __post_init__(self):
        if self.location not in ("header", "query"):
            raise ValueError(f"Invalid api-key location: {self.location!r}")


Auth = NoAuth | BasicAuth | BearerAuth | ApiKeyAuth


# ── Request / options / response ─────────────────────────────────────────


@dataclass(frozen=True)
class Request:
    """A structured HTTP request, as produced by the parser or a caller."""

    method: str
    url: str
    headers: tuple[KeyValue, ...] = ()
    query_params: tuple[KeyValue, ...] = ()
    body: Body = field(default_factory=NoBody)
    auth: Auth = field(default_factory=NoAuth)
    name: str = ""

    def __post_init__(self):
        method = self.method.upper()
        if method not in HTTP_METHODS:
            raise ValueError(f"Unsupported HTTP method: {self.method!r}")
        object.__setattr__(self, "method", method)
        object.__setattr__(self, "headers", tuple(self.headers))
        object.__setattr__(self, "query_params", tuple(self.query_params))


@dataclass(frozen=True)
class ExecutionOptions:
    follow_redirects: bool = True
    verify_ssl: bool = True
    timeout_ms: int = 30000

    def __post_init__(self):
        if isinstance(self.timeout_ms, bool) or not isinstance(self.timeout_ms, int):
            raise ValueError(f"timeout_ms must be an integer, got {self.timeout_ms!r}")
        if self.timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be positive, got {self.timeout_ms}")


@dataclass(frozen=True)
class Response:
    """Decoded result of one curl run.

    ``headers`` is a plain dict keyed by lower-cased name; a repeated header
    keeps only its last value, unlike ``Request.headers``.
    """

    status: int
    status_text: str
    headers: dict[str, str]
    body: str
    content_type: str
    size_bytes: int
    time_ms: float
    command_text: str


# ── JSON-shaped requests ─────────────────────────────────────────────────


def _key_values(items: list[dict] | None) -> tuple[KeyValue, ...]:
    return tuple(
        KeyValue(
            key=str(item.get("key", "")),
            value=str(item.get("value", "")),
            enabled=bool(item.get("enabled", True)),
        )
        for item in items or []
    )


def body_from_dict(data: dict | None) -> Body:
    """Build a body variant from ``{type, content, formData}``."""
    if not data:
        return NoBody()
    body_type = data.get("type", "none")
    content = data.get("content") or ""
    if body_type == NoBody.type:
        return NoBody()
    if body_type == FormDataBody.type:
        items = tuple(
            FormField(
                key=str(item.get("key", "")),
                value=str(item.get("value", "")),
                kind=item.get("type", "text"),
                enabled=bool(item.get("enabled", True)),
            )
            for item in data.get("formData") or []
        )
        return FormDataBody(items=items, content=content)
    if body_type in _CONTENT_BODIES:
        return _CONTENT_BODIES[body_type](content=content)
    raise ValueError(f"Unknown body type: {body_type!r}")


def auth_from_dict(data: dict | None) -> Auth:
    """Build an auth variant from the flat ``{type, username, ...}`` shape."""
    if not data:
        return NoAuth()
    auth_type = data.get("type", "none")
    if auth_type == NoAuth.type:
        return NoAuth()
    if auth_type == BasicAuth.type:
        return BasicAuth(data.get("username") or "", data.get("password") or "")
    if auth_type == BearerAuth.type:
        return BearerAuth(data.get("token") or "")
    if auth_type == ApiKeyAuth.type:
        return ApiKeyAuth(
            name=data.get("apiKeyName") or "",
            value=data.get("apiKeyValue") or "",
            location=data.get("apiKeyLocation") or "header",
        )
    raise ValueError(f"Unknown auth type: {auth_type!r}")


def request_from_dict(data: dict[str, Any]) -> Request:
    """Build a Request from a stored JSON request object.

    Accepts the camelCase keys used by saved collections
    (``queryParams``, ``formData``, ``apiKeyName``...).
    """
    return Request(
        method=data.get("method", "GET"),
        url=data.get("url", ""),
        headers=_key_values(data.get("headers")),
        query_params=_key_values(data.get("queryParams")),
        body=body_from_dict(data.get("body")),
        auth=auth_from_dict(data.get("auth")),
        name=data.get("name", ""),
    )
