from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

# ============================================================================
# Session configuration
# ============================================================================

SecurityLevel = Literal["strict", "loose", "antiscript"]


@dataclass(slots=True)
class FlowConfig:
    """Configuration for a flowchart session.

    ``security_level`` controls text escaping, URL sanitization of links and
    whether click callbacks may be bound at all (only when ``"loose"``).
    """

    security_level: SecurityLevel = "strict"

    @property
    def is_loose(self) -> bool:
        return self.security_level == "loose"

