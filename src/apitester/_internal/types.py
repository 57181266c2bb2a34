"""Shared type aliases for api-tester."""

from __future__ import annotations

# HTTP headers dictionary.
Headers = dict[str, str]

# One measured round-trip time in milliseconds.
LatencyMs = float
