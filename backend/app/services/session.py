"""
Meme Session Orchestrator.

Drives the conversation-to-caption pipeline for the single in-memory
session: it runs the external calls and maps their outcomes onto the pure
transitions in ``app.state``. Every external failure ends up in the state
(``templates_error`` / ``processed_text.error``); nothing here raises for
an upstream problem.
"""

import logging
from typing import Optional

from app.schemas.meme import ConversationType, GenerationErrorKind
from app.services.captions import (
    CaptionConfigurationError,
    CaptionEmptyResponseError,
    CaptionService,
    CaptionServiceError,
)
from app.services.catalog import TemplateCatalogService, TemplateFetchError
from app.services.renderer import MemeRenderService, get_render_service
from app.state import (
    MemeSessionState,
    can_generate,
    describe,
    generation_failed,
    generation_started,
    generation_succeeded,
    run_task,
    select_template,
    set_conversation_type,
    set_input_text,
    templates_failed,
    templates_loaded,
    templates_requested,
)

logger = logging.getLogger(__name__)

GENERIC_GENERATION_ERROR = "Failed to process text. Please try again."


class NothingToRenderError(Exception):
    """Raised when download is requested before any caption is bound."""
    pass


def classify_caption_error(error: CaptionServiceError) -> GenerationErrorKind:
    if isinstance(error, CaptionConfigurationError):
        return GenerationErrorKind.CONFIGURATION
    if isinstance(error, CaptionEmptyResponseError):
        return GenerationErrorKind.EMPTY_RESPONSE
    return GenerationErrorKind.UPSTREAM


class MemeSession:
    """
    Owner of one MemeSessionState.

    Only one generation runs at a time: the ``loading`` flag is checked
    and set before the first await, so a second trigger while a request
    is in flight is a no-op.
    """

    def __init__(
        self,
        catalog: TemplateCatalogService,
        captions: CaptionService,
        renderer: MemeRenderService,
        state: Optional[MemeSessionState] = None,
    ):
        self.catalog = catalog
        self.captions = captions
        self.renderer = renderer
        self.state = state or MemeSessionState()

    async def refresh_templates(self) -> MemeSessionState:
        """(Re)load the template gallery; failures leave an empty gallery."""
        self.state = templates_requested(self.state)
        outcome = await run_task(self.catalog.fetch_templates(), (TemplateFetchError,))
        if outcome.ok:
            self.state = templates_loaded(self.state, outcome.value)
        else:
            logger.warning(f"Meme templates unavailable: {outcome.error}")
            self.state = templates_failed(self.state, str(outcome.error))
        logger.info(f"Template refresh finished: {describe(self.state)}")
        return self.state

    def update_input(
        self,
        text: Optional[str] = None,
        conversation_type: Optional[ConversationType] = None,
    ) -> MemeSessionState:
        if text is not None:
            self.state = set_input_text(self.state, text)
        if conversation_type is not None:
            self.state = set_conversation_type(self.state, conversation_type)
        return self.state

    def select(self, template_id: str) -> MemeSessionState:
        """
        Raises:
            UnknownTemplateError: If the id is not in the gallery
        """
        self.state = select_template(self.state, template_id)
        return self.state

    async def generate(self) -> MemeSessionState:
        """
        Generate captions for the current input and bind them.

        Silently returns the unchanged state when there is no text, no
        selected template, or a generation already in progress.
        """
        if not can_generate(self.state):
            logger.debug(f"Generate ignored: {describe(self.state)}")
            return self.state

        self.state = generation_started(self.state)
        template = self.state.selected_template
        conversation = self.state.input

        try:
            outcome = await run_task(
                self.captions.generate_captions(
                    conversation.text,
                    conversation.type,
                    len(template.text_boxes),
                ),
                (CaptionServiceError,),
            )
        except BaseException:
            logger.exception("Caption generation aborted")
            self.state = generation_failed(
                self.state, GenerationErrorKind.UPSTREAM, GENERIC_GENERATION_ERROR
            )
            raise

        if outcome.ok:
            self.state = generation_succeeded(self.state, template, outcome.value)
        else:
            kind = classify_caption_error(outcome.error)
            message = str(outcome.error) or GENERIC_GENERATION_ERROR
            logger.warning(f"Caption generation failed ({kind.value}): {outcome.error}")
            self.state = generation_failed(self.state, kind, message)
        return self.state

    async def render(self) -> bytes:
        """
        Render the selected, captioned template as a PNG.

        Raises:
            NothingToRenderError: If no template is selected or it has no text
            RenderServiceError: If the image cannot be fetched or decoded
        """
        template = self.state.selected_template
        if template is None or not template.has_text:
            raise NothingToRenderError("Generate captions before downloading the meme")
        return await self.renderer.render(template)


# Dependency injection support
_meme_session = None


def get_meme_session() -> MemeSession:
    global _meme_session
    if _meme_session is None:
        _meme_session = MemeSession(
            catalog=TemplateCatalogService(),
            captions=CaptionService(),
            renderer=get_render_service(),
        )
    return _meme_session
