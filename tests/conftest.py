"""Shared fixtures for curlcap tests."""

import json
import os
import sys

import pytest
from click.testing import CliRunner

from curlcap import core
from curlcap.decoder import SENTINEL
from curlcap.models import KeyValue, Request


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def tmp_project(tmp_path):
    """Create a temporary project directory and cd into it."""
    original = os.getcwd()
    os.chdir(tmp_path)
    yield tmp_path
    os.chdir(original)


@pytest.fixture(autouse=True)
def global_curlcap_dir(tmp_path, monkeypatch):
    """Keep tests away from the real ~/.curlcap directory."""
    fake_global = tmp_path / "fake_home" / ".curlcap"
    fake_global.mkdir(parents=True)
    monkeypatch.setattr(core, "GLOBAL_DIR", fake_global)
    monkeypatch.setattr(core, "GLOBAL_CONFIG", fake_global / "config.yaml")
    return fake_global


class FakeCurl:
    """An executable script standing in for curl.

    It records its arguments, optionally ignores SIGTERM and sleeps, then
    writes canned stdout/stderr and exits with the given code.
    """

    def __init__(self, path, argv_file):
        self.path = str(path)
        self.argv_file = argv_file

    def argv(self):
        return json.loads(self.argv_file.read_text())

    def was_run(self):
        return self.argv_file.exists()


@pytest.fixture
def fake_curl(tmp_path):
    counter = {"n": 0}

    def _make(stdout="", stderr="", exit_code=0, sleep=0.0, ignore_term=False):
        counter["n"] += 1
        script = tmp_path / f"fake-curl-{counter['n']}"
        argv_file = tmp_path / f"fake-curl-{counter['n']}.argv.json"
        script.write_text(
            "\n".join(
                [
                    f"#!{sys.executable}",
                    "import json, signal, sys, time",
                    f"if {ignore_term!r}:",
                    "    signal.signal(signal.SIGTERM, signal.SIG_IGN)",
                    f"with open({str(argv_file)!r}, 'w') as f:",
                    "    json.dump(sys.argv[1:], f)",
                    f"time.sleep({sleep!r})",
                    f"sys.stdout.write({stdout!r})",
                    f"sys.stderr.write({stderr!r})",
                    "sys.stdout.flush()",
                    f"sys.exit({exit_code!r})",
                    "",
                ],
            ),
        )
        script.chmod(0o755)
        return FakeCurl(script, argv_file)

    return _make


def make_curl_output(
    status=200,
    reason="OK",
    headers=None,
    body="",
    seconds=0.123,
    size=0,
    line_ending="\r\n",
):
    """Build stdout as curl -i -w would print it."""
    head = [f"HTTP/1.1 {status} {reason}"]
    head += [f"{k}: {v}" for k, v in (headers or {}).items()]
    return (
        line_ending.join(head)
        + line_ending * 2
        + body
        + f"\n{SENTINEL}\n{status}\n{seconds}\n{size}"
    )


def make_request(method="GET", url="https://api.example.com/users", headers=(), **kwargs):
    """Factory for Request objects; headers may be given as (key, value) pairs."""
    headers = tuple(h if isinstance(h, KeyValue) else KeyValue(*h) for h in headers)
    return Request(method=method, url=url, headers=headers, **kwargs)
