import pytest

from app.schemas.meme import ConversationType
from app.services.conversation import (
    CONVERSATION_LABELS,
    build_caption_instruction,
    conversation_label,
)


def test_every_type_has_a_label():
    assert set(CONVERSATION_LABELS) == set(ConversationType)


@pytest.mark.parametrize(
    "value, label",
    [("text", "text"), ("tweet", "tweet"), ("chat", "chat conversation")],
)
def test_labels_accept_raw_values(value, label):
    assert conversation_label(value) == label


def test_unknown_type_is_rejected():
    with pytest.raises(ValueError):
        conversation_label("email")


def test_instruction_keeps_text_verbatim():
    text = "  @user: THIS is   fine 🔥\n\n"
    instruction = build_caption_instruction(text, ConversationType.TWEET, 3)
    assert instruction.startswith("Convert this tweet into 3 short, punchy")
    assert instruction.endswith(text)


def test_only_the_label_changes_between_types():
    tweet = build_caption_instruction("hi", ConversationType.TWEET, 2)
    chat = build_caption_instruction("hi", ConversationType.CHAT, 2)
    assert tweet.replace("tweet", "chat conversation", 1) == chat
