"""curlcap variables - {{name}} interpolation."""

from __future__ import annotations

import re

VARIABLE_PATTERN = re.compile(r"\{\{(\w+)\}\}")


class VariableResolver:
    """Rewrites ``{{name}}`` tokens from a fixed name -> value mapping.

    Resolvers are never mutated after construction; ``bind`` returns a new
    one. The parser relies on this to keep the bindings each line saw.
    Unknown names are left in place as ``{{name}}``.
    """

    def __init__(self, variables: dict[str, str] | None = None):
        self._variables: dict[str, str] = dict(variables or {})

    def __contains__(self, name: str) -> bool:
        return name in self._variables

    def __len__(self) -> int:
        return len(self._variables)

    def bind(self, name: str, value: str) -> VariableResolver:
        """Return a new resolver with ``name`` bound to ``value``."""
        return VariableResolver({**self._variables, name: value})

    def resolve(self, text: str) -> str:
        if not text:
            return text

        def _replace(m: re.Match) -> str:
            return self._variables.get(m.group(1), m.group(0))

        return VARIABLE_PATTERN.sub(_replace, text)

    def unresolved(self, text: str) -> list[str]:
        """Names referenced in text that this resolver cannot fill."""
        if not text:
            return []
        return [name for name in VARIABLE_PATTERN.findall(text) if name not in self._variables]

    def as_dict(self) -> dict[str, str]:
        return dict(self._variables)
