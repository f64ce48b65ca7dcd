"""Live processing events and the pipeline state built from them."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from dataroom.models.schemas import QuestionResponse


class LiveEventType(str, Enum):
    """Event types pushed by the question live stream."""

    CONNECTED = "connected"
    STEP_STARTED = "step_started"
    STEP_PROGRESS = "step_progress"
    STEP_COMPLETED = "step_completed"
    STEP_FAILED = "step_failed"
    ANSWER_CHUNK = "answer_chunk"
    FINAL_ANSWER = "final_answer"
    ERROR = "error"
    COMPLETE = "complete"


TERMINAL_EVENTS = frozenset({LiveEventType.COMPLETE, LiveEventType.ERROR})


class LiveEvent(BaseModel):
    """A single decoded event from the live stream.

    Attributes:
        type: The raw `type` discriminator.
        data: The full JSON payload, including `type`.
    """

    type: str
    data: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: dict[str, Any], event_name: str | None = None) -> "LiveEvent":
        """Build an event from a decoded payload.

        Raises:
            ValueError: If neither the payload nor the SSE event name gives a type.
        """
        event_type = payload.get("type") or event_name
        if not event_type or not isinstance(event_type, str):
            raise ValueError("Live event has no type")
        return cls(type=event_type, data=payload)

    @property
    def kind(self) -> LiveEventType | None:
        """The known event type, or None for event types this client does not handle."""
        try:
            return LiveEventType(self.type)
        except ValueError:
            return None

    @property
    def is_terminal(self) -> bool:
        return self.kind in TERMINAL_EVENTS


class StepStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class PipelineStep(BaseModel):
    """One stage of the backend's question pipeline."""

    key: str
    label: str
    status: StepStatus = StepStatus.PENDING
    message: str = ""
    progress: int | None = Field(default=None, ge=0, le=100)
    duration_ms: int | None = None


class LiveProcessingState(BaseModel):
    """Everything the UI knows about one in-flight question.

    Attributes:
        session_id: Live-stream session the events belong to.
        status: Overall status (pending until the stream connects).
        steps: Pipeline stages in display order.
        partial_answer: Answer text received so far.
        result: Structured answer, once the final answer arrives.
        error: Failure message when the stream ends in error.
    """

    session_id: str
    status: StepStatus = StepStatus.PENDING
    steps: list[PipelineStep] = Field(default_factory=list)
    partial_answer: str = ""
    result: QuestionResponse | None = None
    error: str | None = None

    @property
    def is_finished(self) -> bool:
        return self.status in (StepStatus.COMPLETED, StepStatus.FAILED)

    def step(self, key: str) -> PipelineStep | None:
        for step in self.steps:
            if step.key == key:
                return step
        return None
