"""Tests for building curl arguments and command lines."""

import pytest

from curlcap.encoder import build_args, build_command, build_url, escape_arg
from curlcap.models import (
    ApiKeyAuth,
    BasicAuth,
    BearerAuth,
    BinaryBody,
    ExecutionOptions,
    FormDataBody,
    FormField,
    JsonBody,
    KeyValue,
    RawBody,
    UrlEncodedBody,
)
from tests.conftest import make_request

OPTIONS = ExecutionOptions(follow_redirects=False, verify_ssl=True, timeout_ms=30000)


def _pairs(args, flag):
    """Values following every occurrence of flag."""
    return [args[i + 1] for i, a in enumerate(args) if a == flag]


# ── build_args ───────────────────────────────────────────────────────────


class TestBuildArgs:
    def test_basic_get(self):
        args = build_args(make_request(), OPTIONS)
        assert args == [
            "--request",
            "GET",
            "https://api.example.com/users",
            "--max-time",
            "30",
        ]

    def test_full_order(self):
        request = make_request(
            method="POST",
            headers=[("X-Trace", "1")],
            query_params=(KeyValue("page", "2"),),
            auth=BearerAuth("tok"),
            body=JsonBody('{"a":1}'),
        )
        options = ExecutionOptions(follow_redirects=True, verify_ssl=False, timeout_ms=15000)
        assert build_args(request, options) == [
            "--request",
            "POST",
            "https://api.example.com/users?page=2",
            "--header",
            "X-Trace: 1",
            "--header",
            "Authorization: Bearer tok",
            "--header",
            "Content-Type: application/json",
            "--data",
            '{"a":1}',
            "--location",
            "--insecure",
            "--max-time",
            "15",
        ]

    def test_only_enabled_headers(self):
        request = make_request(
            headers=[
                KeyValue("X-On", "1"),
                KeyValue("X-Off", "2", enabled=False),
                KeyValue("X-On", "3"),
            ],
        )
        assert _pairs(build_args(request, OPTIONS), "--header") == ["X-On: 1", "X-On: 3"]

    @pytest.mark.parametrize(
        ("timeout_ms", "expected"),
        [(15000, "15"), (30000, "30"), (1, "1"), (1500, "2")],
    )
    def test_timeout_rounds_up(self, timeout_ms, expected):
        options = ExecutionOptions(follow_redirects=False, verify_ssl=True, timeout_ms=timeout_ms)
        assert _pairs(build_args(make_request(), options), "--max-time") == [expected]

    def test_follow_and_insecure_flags(self):
        args = build_args(make_request(), ExecutionOptions(follow_redirects=True, verify_ssl=False))
        assert "--location" in args
        assert "--insecure" in args

    def test_no_optional_flags(self):
        args = build_args(make_request(), OPTIONS)
        assert "--location" not in args
        assert "--insecure" not in args


class TestAuthArgs:
    def test_basic(self):
        args = build_args(make_request(auth=BasicAuth("user", "pass")), OPTIONS)
        assert _pairs(args, "--user") == ["user:pass"]

    def test_basic_needs_both_parts(self):
        args = build_args(make_request(auth=BasicAuth("user", "")), OPTIONS)
        assert "--user" not in args

    def test_bearer(self):
        args = build_args(make_request(auth=BearerAuth("abc")), OPTIONS)
        assert _pairs(args, "--header") == ["Authorization: Bearer abc"]

    def test_bearer_without_token(self):
        assert "--header" not in build_args(make_request(auth=BearerAuth("")), OPTIONS)

    def test_api_key_header(self):
        args = build_args(make_request(auth=ApiKeyAuth("X-API-Key", "secret")), OPTIONS)
        assert _pairs(args, "--header") == ["X-API-Key: secret"]

    def test_api_key_query_goes_into_url(self):
        request = make_request(auth=ApiKeyAuth("api_key", "secret", location="query"))
        args = build_args(request, OPTIONS)
        assert args[2] == "https://api.example.com/users?api_key=secret"
        assert "--header" not in args

    def test_api_key_query_after_params(self):
        request = make_request(
            query_params=(KeyValue("page", "1"),),
            auth=ApiKeyAuth("key", "k1", location="query"),
        )
        assert build_url(request) == "https://api.example.com/users?page=1&key=k1"


class TestBodyArgs:
    def test_json_default_content_type(self):
        args = build_args(make_request(method="POST", body=JsonBody('{"name":"John"}')), OPTIONS)
        assert _pairs(args, "--header") == ["Content-Type: application/json"]
        assert _pairs(args, "--data") == ['{"name":"John"}']

    def test_existing_content_type_kept(self):
        request = make_request(
            method="POST",
            headers=[("content-type", "application/vnd.api+json")],
            body=JsonBody("{}"),
        )
        assert _pairs(build_args(request, OPTIONS), "--header") == [
            "content-type: application/vnd.api+json",
        ]

    def test_disabled_content_type_does_not_count(self):
        request = make_request(
            method="POST",
            headers=[KeyValue("Content-Type", "text/plain", enabled=False)],
            body=JsonBody("{}"),
        )
        assert _pairs(build_args(request, OPTIONS), "--header") == [
            "Content-Type: application/json",
        ]

    def test_empty_json_sends_header_only(self):
        args = build_args(make_request(method="POST", body=JsonBody("")), OPTIONS)
        assert "--data" not in args
        assert "Content-Type: application/json" in args

    def test_urlencoded(self):
        args = build_args(make_request(method="POST", body=UrlEncodedBody("a=1&b=2")), OPTIONS)
        assert _pairs(args, "--header") == ["Content-Type: application/x-www-form-urlencoded"]
        assert _pairs(args, "--data") == ["a=1&b=2"]

    def test_form_data(self):
        body = FormDataBody(
            items=(
                FormField("name", "John"),
                FormField("avatar", "/tmp/a.png", kind="file"),
                FormField("skip", "x", enabled=False),
            ),
        )
        args = build_args(make_request(method="POST", body=body), OPTIONS)
        assert _pairs(args, "--form") == ["name=John", "avatar=@/tmp/a.png"]
        assert "--header" not in args

    def test_form_data_literal_content(self):
        body = FormDataBody(content="--X\r\n--X--")
        args = build_args(make_request(method="POST", body=body), OPTIONS)
        assert _pairs(args, "--data") == ["--X\r\n--X--"]

    @pytest.mark.parametrize("body_cls", [RawBody, BinaryBody])
    def test_raw_and_binary(self, body_cls):
        args = build_args(make_request(method="PUT", body=body_cls("payload")), OPTIONS)
        assert _pairs(args, "--data") == ["payload"]

    def test_empty_raw(self):
        assert "--data" not in build_args(make_request(method="PUT", body=RawBody("")), OPTIONS)


# ── build_url ────────────────────────────────────────────────────────────


class TestBuildUrl:
    def test_no_params(self):
        assert build_url(make_request(url="https://x.io/a")) == "https://x.io/a"

    def test_enabled_params_only(self):
        request = make_request(
            query_params=(
                KeyValue("enabled", "yes"),
                KeyValue("disabled", "no", enabled=False),
            ),
        )
        url = build_url(request)
        assert "enabled=yes" in url
        assert "disabled=no" not in url

    def test_params_encoded(self):
        request = make_request(query_params=(KeyValue("q", "a b&c"),))
        assert build_url(request) == "https://api.example.com/users?q=a+b%26c"

    def test_appends_to_existing_query(self):
        request = make_request(url="https://x.io/a?x=1", query_params=(KeyValue("y", "2"),))
        assert build_url(request) == "https://x.io/a?x=1&y=2"

    def test_duplicate_keys_kept(self):
        request = make_request(query_params=(KeyValue("t", "1"), KeyValue("t", "2")))
        assert build_url(request) == "https://api.example.com/users?t=1&t=2"

    def test_relative_url_falls_back(self):
        request = make_request(url="/users", query_params=(KeyValue("q", "a b"),))
        assert build_url(request) == "/users?q=a%20b"

    def test_fallback_uses_ampersand_with_existing_query(self):
        request = make_request(url="/users?x=1", query_params=(KeyValue("y", "2"),))
        assert build_url(request) == "/users?x=1&y=2"


# ── Command string ───────────────────────────────────────────────────────


class TestEscapeArg:
    @pytest.mark.parametrize("arg", ["GET", "https://x.io/a?b=1", "--max-time"])
    def test_plain_left_bare(self, arg):
        assert escape_arg(arg) == arg
        assert escape_arg(arg, windows=True) == arg

    def test_posix_spaces(self):
        assert escape_arg("X-A: b") == "'X-A: b'"

    def test_posix_single_quote(self):
        assert escape_arg("it's") == "'it'\\''s'"

    @pytest.mark.parametrize("arg", ['a"b', "a\\b", "$HOME", "a`b", "a!b"])
    def test_posix_specials(self, arg):
        assert escape_arg(arg).startswith("'")

    def test_windows_spaces(self):
        assert escape_arg("X-A: b", windows=True) == '"X-A: b"'

    def test_windows_double_quote(self):
        assert escape_arg('{"a":1}', windows=True) == '"{\\"a\\":1}"'

    @pytest.mark.parametrize("arg", ["a&b", "a|b", "a<b", "a>b", "a^b"])
    def test_windows_specials(self, arg):
        assert escape_arg(arg, windows=True) == f'"{arg}"'

    def test_windows_leaves_dollar(self):
        assert escape_arg("$HOME", windows=True) == "$HOME"


class TestBuildCommand:
    def test_posix(self):
        request = make_request(headers=[("Authorization", "Bearer token with spaces")])
        command = build_command(request, OPTIONS, windows=False)
        assert command == (
            "curl --request GET https://api.example.com/users "
            "--header 'Authorization: Bearer token with spaces' --max-time 30"
        )

    def test_windows_binary(self):
        command = build_command(make_request(), OPTIONS, windows=True)
        assert command.startswith("curl.exe --request GET ")

    def test_platform_default(self, monkeypatch):
        monkeypatch.setattr("curlcap.encoder.sys.platform", "win32")
        assert build_command(make_request(), OPTIONS).startswith("curl.exe ")
