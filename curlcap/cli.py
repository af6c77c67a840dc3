"""curlcap CLI - run requests from .http files through curl."""

import json
import sys
from pathlib import Path

import click

TOOL_HELP = """\
curlcap — run .http / .rest request files through curl.

\b
USAGE
─────
  curlcap api.http                 Run every request in the file, in order
  curlcap api.http -l 12           Run the request around line 12
  curlcap api.http -n "Get users"  Run the request with this name
  curlcap api.http --list          List requests with their line ranges
  curlcap api.http --print-curl    Print the curl command instead of running it
  curlcap --request-json req.json  Run a saved JSON request object
  curlcap --check                  Check that curl is installed

\b
FILE FORMAT
───────────
  \b
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

  \b
  @name = value     Variable, visible to the lines below it
  {{name}}          Variable reference (left as-is when unknown)
  ###               Request separator
  # Title           Names the next request (also ## Title)
  // text           Comment

\b
VARIABLES
─────────
  -v key=value seeds variables before the file is read; @name lines in
  the file override them from that point on. Config `variables:` are
  seeded first, then -v.

\b
OUTPUT FORMAT
─────────────
    STATUS: 200 OK
    TIME: 45ms
    SIZE: 17 B
    BODY:
    {"id": 1}

  --verbose adds response headers. --raw prints the body only.

\b
CONFIG FILE FORMAT (.curlcap.yaml)
──────────────────────────────────
  Config resolution order:
    1. -c/--config flag (explicit path)
    2. .curlcap.yaml / .curlcap.yml / curlcap.yaml / curlcap.yml in CWD
    3. ~/.curlcap/config.yaml (global)

  \b
  defaults:
    curl_path: ${CURL_PATH}         # env var resolved at runtime
    env_file: .env                  # relative to the config file
    timeout_ms: 30000
    follow_redirects: true
    verify_ssl: true
    variables:
      host: https://api.example.com
"""


@click.command(
    cls=click.Command,
    help=TOOL_HELP,
    context_settings={"max_content_width": 88},
)
@click.argument(
    "file",
    required=False,
    type=click.Path(exists=True, dir_okay=False),
)
@click.option(
    "-l",
    "--line",
    "line",
    type=int,
    default=None,
    help="Run the request whose block contains this 1-based line.",
)
@click.option("-n", "--name", "request_name", default=None, help="Run the request with this name.")
@click.option(
    "-v",
    "--var",
    multiple=True,
    help="Variable as key=value. Repeatable.",
)
@click.option(
    "-c",
    "--config",
    "config_file",
    default=None,
    help="Config file path. Default: .curlcap.yaml in CWD, then ~/.curlcap/config.yaml.",
)
@click.option(
    "--timeout",
    "timeout_ms",
    type=int,
    default=None,
    help="Request timeout in milliseconds. Default: 30000.",
)
@click.option(
    "--follow/--no-follow",
    "follow_redirects",
    default=None,
    help="Follow redirects. Default: on.",
)
@click.option("--insecure", is_flag=True, default=False, help="Skip TLS certificate checks.")
@click.option("--curl-path", default=None, help="curl executable to run. Default: curl.")
@click.option(
    "--request-json",
    "request_json",
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help="Run a request stored as JSON instead of a request file.",
)
@click.option(
    "--print-curl",
    is_flag=True,
    default=False,
    help="Print the curl command line without running it.",
)
@click.option("--list", "show_list", is_flag=True, default=False, help="List requests in FILE.")
@click.option("--check", is_flag=True, default=False, help="Check that curl can be run.")
@click.option("--verbose", is_flag=True, default=False, help="Include response headers.")
@click.option("--raw", is_flag=True, default=False, help="Output the response body only.")
@click.option("--debug", is_flag=True, default=False, help="Log debug output to stderr.")
def main(
    file,
    line,
    request_name,
    var,
    config_file,
    timeout_ms,
    follow_redirects,
    insecure,
    curl_path,
    request_json,
    print_curl,
    show_list,
    check,
    verbose,
    raw,
    debug,
):
    """Run requests from a request file through curl."""
    from curlcap.core import (
        build_execution_options,
        config_variables,
        load_config,
        load_env,
        resolve_config_path,
        resolve_curl_path,
    )
    from curlcap.log import configure_logging

    if debug:
        configure_logging("DEBUG")

    # --- Load config ---
    config_path = resolve_config_path(config_file)
    config = load_config(config_path)
    defaults = config.get("defaults", {})
    env = load_env(defaults.get("env_file"), config.get("_config_dir"))

    variables = config_variables(defaults, env)
    for v_str in var:
        if "=" in v_str:
            k, val = v_str.split("=", 1)
            variables[k.strip()] = val.strip()

    curl = resolve_curl_path(defaults, env, curl_path)

    # --- Dispatch ---

    if check:
        _cmd_check(curl)
        return

    if show_list:
        if not file:
            _fail("--list needs a request FILE.")
        _cmd_list(file, variables)
        return

    try:
        options = build_execution_options(
            defaults,
            env,
            timeout_ms=timeout_ms,
            follow_redirects=follow_redirects,
            verify_ssl=False if insecure else None,
        )
    except ValueError as e:
        _fail(str(e))

    if request_json:
        selected = [_load_json_request(request_json)]
    elif file:
        selected = _select_requests(file, line, request_name, variables)
    else:
        ctx = click.get_current_context()
        click.echo(ctx.get_help())
        ctx.exit(1)

    if print_curl:
        _cmd_print_curl(selected, options)
        return

    _cmd_run(selected, options, curl, verbose, raw)


# ── Subcommand implementations ──────────────────────────────────────────


def _cmd_check(curl):
    from curlcap.executor import check_curl_available

    if check_curl_available(curl):
        click.echo(f"curl available: {curl}")
        return
    _fail(f"curl not available: {curl}")


def _cmd_list(file, variables):
    from curlcap.output import format_block_list
    from curlcap.parser import parse_blocks

    blocks = parse_blocks(_read_text(file), variables)
    if blocks:
        click.echo(f"{len(blocks)} request(s) in {file}:\n")
    click.echo(format_block_list(blocks))


def _cmd_print_curl(selected, options):
    from curlcap.encoder import build_command

    for request in selected:
        click.echo(build_command(request, options))


def _cmd_run(selected, options, curl, verbose, raw):
    from curlcap.errors import CurlcapError
    from curlcap.executor import execute_request
    from curlcap.output import format_response

    for i, request in enumerate(selected):
        if len(selected) > 1 and not raw:
            if i:
                click.echo()
            click.echo(f"### {request.name}")
        try:
            response = execute_request(request, options, curl_path=curl)
        except CurlcapError as e:
            _fail(e.detail)
        click.echo(format_response(response, verbose=verbose, raw=raw))


# ── Helpers ──────────────────────────────────────────────────────────────


def _read_text(file):
    return Path(file).read_text(encoding="utf-8")


def _select_requests(file, line, request_name, variables):
    """Pick requests from a file by line, by name, or all of them."""
    from curlcap.parser import parse_all, parse_at_position

    text = _read_text(file)

    if line is not None:
        request = parse_at_position(text, line - 1, variables)
        if request is None:
            _fail(f"No request found at line {line} in {file}.")
        return [request]

    selected = parse_all(text, variables)
    if request_name is not None:
        selected = [r for r in selected if r.name == request_name]
        if not selected:
            _fail(f"No request named '{request_name}' in {file}. Use --list to see names.")
        return selected

    if not selected:
        _fail(f"No requests found in {file}.")
    return selected


def _load_json_request(path):
    from curlcap.models import request_from_dict

    try:
        data = json.loads(_read_text(path))
        return request_from_dict(data)
    except (ValueError, TypeError, AttributeError) as e:
        _fail(f"Invalid request JSON in {path}: {e}")


def _fail(message):
    click.echo(f"ERROR: {message}", err=True)
    sys.exit(1)
