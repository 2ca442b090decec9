from __future__ import annotations

import re

from .config import FlowConfig

# ============================================================================
# Sanitization of user-supplied text and URLs
#
# Labels, titles and tooltips end up inside SVG/HTML. Unless the session runs
# with security_level="loose", angle brackets and "=" are escaped while <br>
# line breaks survive as <br/>.
# ============================================================================

_BR_PLACEHOLDER = "#br#"
_BR_TAG = re.compile(r"<br>")
_BR_SELF_CLOSING = re.compile(r"<br\S*?/>")

BLANK_URL = "about:blank"

_INVALID_PROTOCOL = re.compile(r"^([^\w]*)(javascript|data|vbscript)", re.IGNORECASE | re.MULTILINE)
_CTRL_CHARACTERS = re.compile(r"[\u0000-\u001f\u007f-\u009f\u2000-\u200d\ufeff]")
_URL_SCHEME = re.compile(r"^([^:]+):", re.MULTILINE)
_RELATIVE_FIRST_CHARS = (".", "/")


def sanitize_text(text: str, config: FlowConfig) -> str:
    """Escape markup in ``text`` according to the session's security level."""
    if config.is_loose:
        return text

    txt = _BR_TAG.sub(_BR_PLACEHOLDER, text)
    txt = _BR_SELF_CLOSING.sub(_BR_PLACEHOLDER, txt)
    txt = txt.replace("<", "&lt;").replace(">", "&gt;")
    txt = txt.replace("=", "&equals;")
    return txt.replace(_BR_PLACEHOLDER, "<br/>")


def sanitize_url(url: str | None) -> str:
    """Neutralize script-bearing URLs.

    ``javascript:``, ``data:`` and ``vbscript:`` URLs collapse to
    ``about:blank``; relative and ordinary URLs pass through with control
    characters removed.
    """
    if not url:
        return BLANK_URL

    sanitized = _CTRL_CHARACTERS.sub("", url).strip()
    if sanitized.startswith(_RELATIVE_FIRST_CHARS):
        return sanitized

    scheme = _URL_SCHEME.match(sanitized)
    if not scheme:
        return sanitized

    if _INVALID_PROTOCOL.match(scheme.group(0)):
        return BLANK_URL
    return sanitized


def strip_quotes(text: str) -> str:
    """Remove one layer of enclosing double quotes."""
    if text[:1] == '"' and text[-1:] == '"':
        return text[1:-1]
    return text
