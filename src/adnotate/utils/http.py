"""HTTP utilities for adnotate.

Bounded body reading for aiohttp responses. Both remote APIs are trusted
but not controlled by us; reading with a size cap keeps a misbehaving
endpoint from exhausting memory in a long-running process.

See Also:
    [GraphActivitySource][adnotate.services.syncer.clients.GraphActivitySource]:
        Reads the activity list with
        [read_bounded_json][adnotate.utils.http.read_bounded_json].
    [PostHogAnnotationSink][adnotate.services.syncer.clients.PostHogAnnotationSink]:
        Reads error bodies with
        [read_bounded_text][adnotate.utils.http.read_bounded_text].
"""

from __future__ import annotations

import json
from typing import Any

import aiohttp


async def _read_bounded(response: aiohttp.ClientResponse, max_size: int) -> bytes:
    """Read an entire response body with size enforcement.

    Accumulates chunks until EOF, which handles chunked transfer-encoding
    where one read may return fewer bytes than requested.

    Raises:
        ValueError: If the response body exceeds *max_size*.
    """
    chunks: list[bytes] = []
    total = 0
    while True:
        chunk = await response.content.read(max_size + 1 - total)
        if not chunk:
            break
        total += len(chunk)
        if total > max_size:
            raise ValueError(f"Response body too large: >{max_size} bytes")
        chunks.append(chunk)
    return b"".join(chunks)


async def read_bounded_json(response: aiohttp.ClientResponse, max_size: int) -> Any:
    """Read and parse a JSON response body with size enforcement.

    Raises:
        ValueError: If the body exceeds *max_size* or is not valid JSON
            (``json.JSONDecodeError`` is a ``ValueError``).
        RecursionError: If the JSON nests deeper than the interpreter
            recursion limit.
    """
    body = await _read_bounded(response, max_size)
    return json.loads(body)


async def read_bounded_text(response: aiohttp.ClientResponse, max_size: int) -> str:
    """Read a response body as text for diagnostics.

    Oversized bodies are cut at *max_size* bytes instead of raising, since
    the result only ends up in a log line. Undecodable bytes are replaced.
    """
    try:
        body = await _read_bounded(response, max_size)
    except ValueError:
        return f"<body larger than {max_size} bytes>"
    return body.decode("utf-8", errors="replace")
