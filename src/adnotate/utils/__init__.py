"""Stateless helpers with third-party I/O dependencies (aiohttp).

Importable from ``services`` without pulling in the core lifecycle.
"""

from .http import read_bounded_json, read_bounded_text


__all__ = [
    "read_bounded_json",
    "read_bounded_text",
]
