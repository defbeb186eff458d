"""Compiler settings.

Environment variables:
- CIRCUITFLOW_DEFAULT_PRIORITY: Priority of forwarding/endpoint flows (default: 32768)
- CIRCUITFLOW_STATIC_MAC_PRIORITY: Priority of destination MAC flows (default: 35000)
"""
import logging
import os
from dataclasses import dataclass
from pathlib import Path

import yaml

from ..errors import CircuitConfigError

logger = logging.getLogger(__name__)

# OpenFlow default priority
DEFAULT_PRIORITY = 32768
# Destination MAC rules must beat the generic rules on the same port/tag
STATIC_MAC_PRIORITY = 35000


@dataclass(frozen=True)
class CompilerSettings:
    """Settings applied when compiling circuits to flows."""
    default_priority: int = DEFAULT_PRIORITY
    static_mac_priority: int = STATIC_MAC_PRIORITY

    def __post_init__(self):
        for name in ("default_priority", "static_mac_priority"):
            value = getattr(self, name)
            if not 0 <= value <= 65535:
                raise CircuitConfigError(f"{name} must be between 0 and 65535, got {value}")
        if self.static_mac_priority <= self.default_priority:
            raise CircuitConfigError(
                "static_mac_priority must exceed default_priority so MAC "
                "specific rules win over generic ones"
            )

    @classmethod
    def from_env(cls) -> "CompilerSettings":
        """Load settings from environment variables."""
        try:
            return cls(
                default_priority=int(
                    os.environ.get("CIRCUITFLOW_DEFAULT_PRIORITY", str(DEFAULT_PRIORITY))
                ),
                static_mac_priority=int(
                    os.environ.get("CIRCUITFLOW_STATIC_MAC_PRIORITY", str(STATIC_MAC_PRIORITY))
                ),
            )
        except ValueError as e:
            raise CircuitConfigError(f"Invalid priority in environment: {e}")

    @classmethod
    def from_yaml(cls, path: str | Path) -> "CompilerSettings":
        """Load settings from a YAML file with the same keys as the fields."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}

        settings = data.get("compiler", data)
        logger.debug(f"Loaded compiler settings from {path}")
        return cls(
            default_priority=int(settings.get("default_priority", DEFAULT_PRIORITY)),
            static_mac_priority=int(settings.get("static_mac_priority", STATIC_MAC_PRIORITY)),
        )
