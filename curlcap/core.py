"""curlcap core - config loading, env resolution, execution options."""

import os
import re
from pathlib import Path

import yaml
from dotenv import dotenv_values

from curlcap.models import ExecutionOptions

GLOBAL_DIR = Path.home() / ".curlcap"
GLOBAL_CONFIG = GLOBAL_DIR / "config.yaml"

CWD_CONFIG_CANDIDATES = [
    ".curlcap.yaml",
    ".curlcap.yml",
    "curlcap.yaml",
    "curlcap.yml",
]

DEFAULT_CURL_PATH = "curl"
DEFAULT_TIMEOUT_MS = 30000


def resolve_path(
    candidates: list[Path],
    default: Path | None = None,
) -> Path | None:
    """Return the first existing path from candidates, else default."""
    for p in candidates:
        if p.exists():
            return p.resolve()
    return default


def resolve_config_path(config_file: str | None) -> Path | None:
    """Find the config file to use.

    Resolution order:
      1. Explicit -c flag (hard, no fallthrough if missing)
      2. .curlcap.yaml (variants) in CWD
      3. ~/.curlcap/config.yaml
    """
    if config_file:
        return resolve_path([Path(config_file)])
    return resolve_path([Path(c) for c in CWD_CONFIG_CANDIDATES] + [GLOBAL_CONFIG])


def load_config(config_path: str | Path | None) -> dict:
    """Load YAML config file. Returns an empty defaults section if not found.

    Stores '_config_dir' so env_file can be resolved relative to the config.
    """
    if config_path is None:
        return {"defaults": {}, "_config_dir": None}
    path = Path(config_path)
    if not path.exists():
        return {"defaults": {}, "_config_dir": None}
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    return {
        "defaults": data.get("defaults") or {},
        "_config_dir": path.resolve().parent,
    }


def load_env(env_file: str | None, base_dir: str | Path | None = None) -> dict[str, str]:
    """os.environ merged with the .env file; .env values win."""
    env = dict(os.environ)
    if env_file:
        dotenv_path = Path(base_dir or ".") / env_file
        if dotenv_path.exists():
            dotenv_vars = dotenv_values(str(dotenv_path))
            env.update({k: v for k, v in dotenv_vars.items() if v is not None})
    return env


def resolve_value(value, env: dict[str, str]):
    """Resolve $VAR and ${VAR} references in a string value.

    Non-strings pass through; unknown names are left as written.
    """
    if value is None:
        return None
    if not isinstance(value, str):
        return value

    def _replace(m: re.Match) -> str:
        var_name = m.group(1) or m.group(2)
        return env.get(var_name, os.environ.get(var_name, m.group(0)))

    return re.sub(r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)", _replace, value)


def _as_bool(value, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def build_execution_options(
    defaults: dict,
    env: dict[str, str],
    timeout_ms: int | None = None,
    follow_redirects: bool | None = None,
    verify_ssl: bool | None = None,
) -> ExecutionOptions:
    """Merge CLI overrides over config defaults over built-in defaults."""
    if timeout_ms is None:
        configured = resolve_value(defaults.get("timeout_ms"), env)
        timeout_ms = int(configured) if configured not in (None, "") else DEFAULT_TIMEOUT_MS
    if follow_redirects is None:
        follow_redirects = _as_bool(resolve_value(defaults.get("follow_redirects"), env), True)
    if verify_ssl is None:
        verify_ssl = _as_bool(resolve_value(defaults.get("verify_ssl"), env), True)
    return ExecutionOptions(
        follow_redirects=follow_redirects,
        verify_ssl=verify_ssl,
        timeout_ms=timeout_ms,
    )


def resolve_curl_path(defaults: dict, env: dict[str, str], override: str | None = None) -> str:
    if override:
        return override
    return resolve_value(defaults.get("curl_path"), env) or DEFAULT_CURL_PATH


def config_variables(defaults: dict, env: dict[str, str]) -> dict[str, str]:
    """The ``variables:`` mapping from config, with ${VAR} resolved."""
    variables = defaults.get("variables") or {}
    return {
        str(k): "" if v is None else str(resolve_value(v, env))
        for k, v in variables.items()
    }
