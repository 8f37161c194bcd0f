"""
Version helpers for the Selendra Python SDK.
We keep a static __version__ (PEP 440) used for the HTTP User-Agent.
"""

from __future__ import annotations

# Bump this when publishing
__version__ = "0.1.0"


def user_agent() -> str:
    """Default User-Agent string sent by the HTTP backends."""
    return f"selendra-sdk-py/{__version__}"


__all__ = ["__version__", "user_agent"]
