"""Placeholder substitution for operator-authored email and SMS templates.

Only a fixed set of ``{{token}}`` names is substituted. Unknown tokens are
left verbatim and values are inserted without HTML escaping, since template
bodies are rich HTML written by operators.
"""

import re
from typing import Any, Mapping, Optional

from core.constants import OPTIONAL_TEMPLATE_KEYS, TEMPLATE_DEFAULTS

_TOKEN_RE = re.compile(r"\{\{(\w+)\}\}")


def _value(variables: Mapping[str, Any], key: str) -> str:
    value = variables.get(key)
    if value is None:
        return ""
    return str(value)


def resolve_token(key: str, variables: Mapping[str, Any]) -> Optional[str]:
    """Return the substitution for ``key``, or None to leave the token as is."""
    if key == "firstName":
        return _value(variables, "firstName") or _value(variables, "name") or TEMPLATE_DEFAULTS["firstName"]
    if key in TEMPLATE_DEFAULTS:
        return _value(variables, key) or TEMPLATE_DEFAULTS[key]
    if key in OPTIONAL_TEMPLATE_KEYS:
        return _value(variables, key) or None
    return None


def render_template(text: Optional[str], variables: Optional[Mapping[str, Any]] = None) -> str:
    """Merge ``variables`` into ``text``.

    >>> render_template("Hi {{firstName}}", {})
    'Hi Friend'
    >>> render_template("{{lastName}}|{{unknown}}", {})
    '|{{unknown}}'
    """
    if not text:
        return ""
    variables = variables or {}

    def _sub(match: re.Match) -> str:
        replacement = resolve_token(match.group(1), variables)
        return match.group(0) if replacement is None else replacement

    return _TOKEN_RE.sub(_sub, text)
