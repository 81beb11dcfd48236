"""
Session state container for the meme generator.

The state is an immutable pydantic model and every user action or
completed external call is a pure function ``state -> new state``.
External calls themselves run through ``run_task`` which turns them into
a ``TaskOutcome`` (value or error) instead of raising.
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Generic, Optional, Sequence, TypeVar

from pydantic import BaseModel, Field

from app.schemas.meme import (
    ConversationInput,
    ConversationType,
    GenerationErrorKind,
    MemeTemplate,
    ProcessedText,
    TemplatesStatus,
)
from app.services.binder import bind_captions

logger = logging.getLogger(__name__)

T = TypeVar("T")


class UnknownTemplateError(KeyError):
    """Raised when selecting a template id that is not in the gallery."""
    pass


class MemeSessionState(BaseModel):
    """Everything the presentation layer needs to render the page."""

    input: ConversationInput = Field(default_factory=ConversationInput)
    templates: list[MemeTemplate] = Field(default_factory=list)
    templates_status: TemplatesStatus = TemplatesStatus.IDLE
    templates_error: Optional[str] = None
    selected_template: Optional[MemeTemplate] = None
    processed_text: ProcessedText = Field(default_factory=ProcessedText)

    model_config = {"frozen": True}


# =============================================================================
# TASK OUTCOMES
# =============================================================================

@dataclass(frozen=True)
class TaskOutcome(Generic[T]):
    """Result of an external call: exactly one of value or error is meaningful."""

    value: Optional[T] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def run_task(
    awaitable: Awaitable[T],
    expected: tuple[type[Exception], ...],
) -> TaskOutcome[T]:
    """
    Await an external call and capture the expected failures.

    Exceptions outside ``expected`` propagate unchanged.
    """
    try:
        return TaskOutcome(value=await awaitable)
    except expected as e:
        return TaskOutcome(error=e)


# =============================================================================
# INPUT TRANSITIONS
# =============================================================================

def set_input_text(state: MemeSessionState, text: str) -> MemeSessionState:
    new_input = state.input.model_copy(update={"text": text})
    return state.model_copy(update={"input": new_input})


def set_conversation_type(
    state: MemeSessionState, conversation_type: ConversationType
) -> MemeSessionState:
    new_input = state.input.model_copy(update={"type": ConversationType(conversation_type)})
    return state.model_copy(update={"input": new_input})


# =============================================================================
# TEMPLATE TRANSITIONS
# =============================================================================

def templates_requested(state: MemeSessionState) -> MemeSessionState:
    return state.model_copy(
        update={"templates_status": TemplatesStatus.LOADING, "templates_error": None}
    )


def templates_loaded(
    state: MemeSessionState, templates: Sequence[MemeTemplate]
) -> MemeSessionState:
    """Store a fresh gallery and select its first template, if any."""
    templates = list(templates)
    return state.model_copy(
        update={
            "templates": templates,
            "templates_status": TemplatesStatus.READY,
            "templates_error": None,
            "selected_template": templates[0] if templates else None,
        }
    )


def templates_failed(state: MemeSessionState, message: str) -> MemeSessionState:
    """Fail closed: no templates and no selection."""
    return state.model_copy(
        update={
            "templates": [],
            "templates_status": TemplatesStatus.UNAVAILABLE,
            "templates_error": message,
            "selected_template": None,
        }
    )


def select_template(state: MemeSessionState, template_id: str) -> MemeSessionState:
    """
    Select a gallery template by id.

    Raises:
        UnknownTemplateError: If no template with that id is loaded
    """
    for template in state.templates:
        if template.id == template_id:
            return state.model_copy(update={"selected_template": template})
    raise UnknownTemplateError(template_id)


# =============================================================================
# GENERATION TRANSITIONS
# =============================================================================

def can_generate(state: MemeSessionState) -> bool:
    """Generation needs text, a selected template with boxes, and no run in flight."""
    return (
        not state.processed_text.loading
        and state.selected_template is not None
        and bool(state.selected_template.text_boxes)
        and bool(state.input.text.strip())
    )


def generation_started(state: MemeSessionState) -> MemeSessionState:
    processed = state.processed_text.model_copy(
        update={"loading": True, "error": None, "error_kind": None}
    )
    return state.model_copy(update={"processed_text": processed})


def generation_succeeded(
    state: MemeSessionState, template: MemeTemplate, lines: Sequence[str]
) -> MemeSessionState:
    """
    Bind the generated lines into the template they were requested for.

    The bound template becomes the selection even if another template was
    selected while the request was in flight.
    """
    lines = list(lines)
    processed = ProcessedText(lines=lines, loading=False, error=None, error_kind=None)
    return state.model_copy(
        update={
            "selected_template": bind_captions(template, lines),
            "processed_text": processed,
        }
    )


def generation_failed(
    state: MemeSessionState, kind: GenerationErrorKind, message: str
) -> MemeSessionState:
    """Record the failure; the selected template keeps its previous text."""
    processed = state.processed_text.model_copy(
        update={"loading": False, "error": message, "error_kind": kind}
    )
    return state.model_copy(update={"processed_text": processed})


def describe(state: MemeSessionState) -> dict[str, Any]:
    """Small summary for log lines."""
    return {
        "templates": len(state.templates),
        "templates_status": state.templates_status.value,
        "selected": state.selected_template.id if state.selected_template else None,
        "loading": state.processed_text.loading,
    }
