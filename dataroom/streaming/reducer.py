"""Reducer that folds live-stream events into pipeline state.

`reduce_event` is pure: it never mutates the state it is given, so the UI can
keep the previous state around and re-render from whichever one it holds.
"""

import logging

from pydantic import ValidationError

from dataroom.models.live import (
    LiveEvent,
    LiveEventType,
    LiveProcessingState,
    PipelineStep,
    StepStatus,
)
from dataroom.models.schemas import QuestionResponse

logger = logging.getLogger(__name__)

DEFAULT_STEPS: tuple[tuple[str, str], ...] = (
    ("query_analysis", "Analyzing question"),
    ("category_detection", "Detecting category"),
    ("vector_search", "Searching documents"),
    ("context_assembly", "Assembling context"),
    ("answer_generation", "Generating answer"),
)


def initial_state(session_id: str) -> LiveProcessingState:
    """Create the state for a new question with the default stages pending."""
    return LiveProcessingState(
        session_id=session_id,
        steps=[PipelineStep(key=key, label=label) for key, label in DEFAULT_STEPS],
    )


def progress_fraction(state: LiveProcessingState) -> float:
    """Share of pipeline steps that have completed."""
    if not state.steps:
        return 0.0
    done = sum(1 for step in state.steps if step.status == StepStatus.COMPLETED)
    return done / len(state.steps)


def _default_label(key: str) -> str:
    return key.replace("_", " ").replace("-", " ").strip().capitalize() or key


def _ensure_step(state: LiveProcessingState, key: str, label: str | None = None) -> PipelineStep:
    step = state.step(key)
    if step is None:
        step = PipelineStep(key=key, label=label or _default_label(key))
        state.steps.append(step)
    elif label:
        step.label = label
    return step


def _clamp_progress(value: object) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    return max(0, min(100, int(value)))


def _as_int(value: object) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    return int(value)


def reduce_event(state: LiveProcessingState, event: LiveEvent) -> LiveProcessingState:
    """Apply one live event and return the resulting state.

    Events arriving after the stream finished, and event types this client
    does not know, leave the state unchanged.
    """
    if state.is_finished:
        logger.debug(f"Ignoring {event.type} event after stream finished")
        return state

    kind = event.kind
    if kind is None:
        logger.debug(f"Ignoring unknown live event type: {event.type}")
        return state

    data = event.data
    new = state.model_copy(deep=True)
    step_key = data.get("step") if isinstance(data.get("step"), str) else None
    message = data.get("message") if isinstance(data.get("message"), str) else None
    label = data.get("label") if isinstance(data.get("label"), str) else None

    if kind == LiveEventType.CONNECTED:
        new.status = StepStatus.RUNNING

    elif kind == LiveEventType.STEP_STARTED and step_key:
        for other in new.steps:
            if other.status == StepStatus.RUNNING and other.key != step_key:
                other.status = StepStatus.COMPLETED
                other.progress = 100
        step = _ensure_step(new, step_key, label)
        step.status = StepStatus.RUNNING
        if message:
            step.message = message
        new.status = StepStatus.RUNNING

    elif kind == LiveEventType.STEP_PROGRESS and step_key:
        step = _ensure_step(new, step_key, label)
        if step.status == StepStatus.PENDING:
            step.status = StepStatus.RUNNING
        if message:
            step.message = message
        progress = _clamp_progress(data.get("progress"))
        if progress is not None:
            step.progress = progress
        new.status = StepStatus.RUNNING

    elif kind == LiveEventType.STEP_COMPLETED and step_key:
        step = _ensure_step(new, step_key, label)
        step.status = StepStatus.COMPLETED
        step.progress = 100
        step.duration_ms = _as_int(data.get("duration_ms"))
        if message:
            step.message = message

    elif kind == LiveEventType.STEP_FAILED and step_key:
        step = _ensure_step(new, step_key, label)
        step.status = StepStatus.FAILED
        step.message = message or "Step failed"

    elif kind == LiveEventType.ANSWER_CHUNK:
        content = data.get("content")
        if isinstance(content, str):
            new.partial_answer += content

    elif kind == LiveEventType.FINAL_ANSWER:
        try:
            result = QuestionResponse.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Discarding malformed final answer: {e}")
            return state
        new.result = result
        new.partial_answer = result.answer

    elif kind == LiveEventType.COMPLETE:
        for step in new.steps:
            if step.status == StepStatus.RUNNING:
                step.status = StepStatus.COMPLETED
                step.progress = 100
        new.status = StepStatus.COMPLETED

    elif kind == LiveEventType.ERROR:
        for step in new.steps:
            if step.status == StepStatus.RUNNING:
                step.status = StepStatus.FAILED
        new.status = StepStatus.FAILED
        new.error = message or "Processing failed"

    else:
        # Step events without a step key carry nothing to apply
        return state

    return new
