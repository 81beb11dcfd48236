"""
Conversation classification and instruction phrasing.

The conversation type is chosen by the user, never inferred. Its only
effect is the wording of the instruction sent to the completion model;
the conversation text itself passes through untouched.
"""

from app.schemas.meme import ConversationType

# Adding a type means extending ConversationType and this table together.
CONVERSATION_LABELS: dict[ConversationType, str] = {
    ConversationType.TEXT: "text",
    ConversationType.TWEET: "tweet",
    ConversationType.CHAT: "chat conversation",
}

SYSTEM_INSTRUCTION = (
    "You are a meme expert who excels at converting conversations into witty, "
    "memorable meme text. Be concise and impactful."
)

CAPTION_INSTRUCTION = """Convert this {label} into {line_count} short, punchy meme-worthy lines that capture its essence.
Make it funny and memorable, but keep each line under {max_chars} characters.
Format: Return only the lines, separated by newlines, no additional text.

{text}"""


def conversation_label(conversation_type: ConversationType | str) -> str:
    """
    Return the phrase used to describe a conversation type to the model.

    Raises:
        ValueError: If the value is not one of the supported types
    """
    kind = ConversationType(conversation_type)
    return CONVERSATION_LABELS[kind]


def build_caption_instruction(
    text: str,
    conversation_type: ConversationType | str,
    line_count: int,
    max_chars: int = 50,
) -> str:
    """Build the user instruction for caption generation."""
    return CAPTION_INSTRUCTION.format(
        label=conversation_label(conversation_type),
        line_count=line_count,
        max_chars=max_chars,
        text=text,
    )
