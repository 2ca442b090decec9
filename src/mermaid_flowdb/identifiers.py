from __future__ import annotations

import re

# ============================================================================
# Identifier normalization
#
# Ids that start with a digit are not usable as structural keys by the
# renderer (they become DOM ids and CSS selectors), so they get a fixed
# non-digit prefix. Applied to every id entering the model, never to labels,
# titles, tooltips or style strings.
# ============================================================================

ID_PREFIX = "s"

_LEADING_DIGIT = re.compile(r"[0-9]")


def normalize_id(raw_id: str) -> str:
    """Return the canonical form of ``raw_id``.

    ``"1node"`` becomes ``"s1node"``; anything else is returned unchanged.
    """
    if _LEADING_DIGIT.match(raw_id):
        return ID_PREFIX + raw_id
    return raw_id


def split_ids(ids: str) -> list[str]:
    """Split a comma-delimited id list into normalized ids."""
    return [normalize_id(i) for i in ids.split(",")]
