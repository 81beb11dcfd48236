"""Caption-to-template binding."""

from typing import Sequence

from app.schemas.meme import MemeTemplate


def bind_captions(template: MemeTemplate, lines: Sequence[str]) -> MemeTemplate:
    """
    Return a copy of ``template`` with caption line *i* in text box *i*.

    Every box is rewritten, so boxes without a matching line end up empty
    rather than keeping text from an earlier run. Geometry and box count
    are left as they are; the input template is not modified.
    """
    boxes = [
        box.model_copy(update={"text": lines[i] if i < len(lines) else ""})
        for i, box in enumerate(template.text_boxes)
    ]
    return template.model_copy(update={"text_boxes": boxes})
