"""Live question streaming: SSE framing and the pipeline-state reducer.

Responsibilities:
    - Decode `text/event-stream` lines into typed live events
    - Fold events into the multi-stage pipeline state shown while answering
"""

from dataroom.streaming.reducer import (
    DEFAULT_STEPS,
    initial_state,
    progress_fraction,
    reduce_event,
)
from dataroom.streaming.sse import SSEDecoder, decode_event, iter_live_events

__all__ = [
    "DEFAULT_STEPS",
    "SSEDecoder",
    "decode_event",
    "initial_state",
    "iter_live_events",
    "progress_fraction",
    "reduce_event",
]
