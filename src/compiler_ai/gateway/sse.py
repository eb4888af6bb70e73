"""Server-sent event line decoding.

Only ``data:`` lines carry content. Comments, ``id:``/``event:`` fields
and the blank lines separating events are dropped.
"""

from __future__ import annotations

import json
import logging
from typing import AsyncIterable, AsyncIterator, Optional

from ..constants import SSE_DATA_MARKER, SSE_DONE_SENTINEL
from ..domain.responses import CompletionChunk
from ..errors import DecodingError
from ..logging import log_event


def parse_sse_line(line: str) -> Optional[str]:
    """Return the content delta carried by one line, or None.

    An empty or whitespace-only ``data:`` payload is a newline delta.
    At most one space after the marker is stripped; the rest is kept
    verbatim.
    """
    if not line.startswith(SSE_DATA_MARKER):
        return None
    payload = line[len(SSE_DATA_MARKER):]
    if not payload.strip():
        return "\n"
    if payload.startswith(" "):
        payload = payload[1:]
    return payload


async def iter_sse_deltas(
    lines: AsyncIterable[str],
    *,
    debug: bool = False,
) -> AsyncIterator[str]:
    """Yield content deltas for every ``data:`` line until the lines run out."""
    async for line in lines:
        if debug:
            log_event("sse_line", level=logging.DEBUG, line=line)
        delta = parse_sse_line(line)
        if delta is not None:
            yield delta


async def iter_sse_chunks(
    lines: AsyncIterable[str],
    *,
    debug: bool = False,
) -> AsyncIterator[CompletionChunk]:
    """Yield decoded completion chunks; ``data: [DONE]`` ends the stream.

    A payload that is not a valid chunk is logged and skipped.
    """
    async for line in lines:
        if debug:
            log_event("sse_line", level=logging.DEBUG, line=line)
        payload = parse_sse_line(line)
        if payload is None or not payload.strip():
            continue
        if payload.strip() == SSE_DONE_SENTINEL:
            return
        try:
            chunk = CompletionChunk.from_raw(json.loads(payload))
        except (ValueError, DecodingError) as e:
            log_event(
                "sse_skip",
                level=logging.WARNING,
                reason=f"{type(e).__name__}: {e}",
                line=line,
            )
            continue
        yield chunk
