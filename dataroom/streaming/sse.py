"""Server-Sent Events framing for the question live stream.

Turns the text lines of an `text/event-stream` response into decoded
`LiveEvent` objects. Only the framing is handled here; what the events mean
is left to the reducer.
"""

import json
import logging
from collections.abc import AsyncIterable, AsyncIterator

from dataroom.models.live import LiveEvent

logger = logging.getLogger(__name__)


class SSEDecoder:
    """Incremental SSE line decoder.

    Feed lines one at a time; a blank line dispatches the buffered event.
    Comment lines (keep-alives) and `id`/`retry` fields are ignored.
    """

    def __init__(self) -> None:
        self._data: list[str] = []
        self._event: str | None = None

    def feed(self, line: str) -> tuple[str | None, str] | None:
        """Consume one line.

        Returns:
            `(event_name, data)` when the line completes an event, else None.
        """
        line = line.rstrip("\r\n")
        if not line:
            return self.flush()

        if line.startswith(":"):
            return None

        field, _, value = line.partition(":")
        value = value.removeprefix(" ")

        if field == "data":
            self._data.append(value)
        elif field == "event":
            self._event = value or None
        return None

    def flush(self) -> tuple[str | None, str] | None:
        """Dispatch any buffered event and reset."""
        if not self._data:
            self._event = None
            return None
        dispatched = (self._event, "\n".join(self._data))
        self._data = []
        self._event = None
        return dispatched


def decode_event(event_name: str | None, data: str) -> LiveEvent | None:
    """Decode one SSE data payload into a LiveEvent.

    Payloads that are not JSON objects or carry no type are logged and dropped.
    """
    try:
        payload = json.loads(data)
    except json.JSONDecodeError:
        logger.warning(f"Skipping non-JSON live event: {data[:200]!r}")
        return None

    if not isinstance(payload, dict):
        logger.warning(f"Skipping live event that is not an object: {data[:200]!r}")
        return None

    try:
        return LiveEvent.from_payload(payload, event_name)
    except ValueError:
        logger.warning(f"Skipping live event without type: {data[:200]!r}")
        return None


async def iter_live_events(lines: AsyncIterable[str]) -> AsyncIterator[LiveEvent]:
    """Yield decoded events from an async stream of SSE lines."""
    decoder = SSEDecoder()
    async for line in lines:
        dispatched = decoder.feed(line)
        if dispatched is None:
            continue
        event = decode_event(*dispatched)
        if event is not None:
            yield event

    # Servers may close without a trailing blank line
    dispatched = decoder.flush()
    if dispatched is not None:
        event = decode_event(*dispatched)
        if event is not None:
            yield event
