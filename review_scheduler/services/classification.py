"""Helpers turning detected learner errors into review item content."""

from typing import Any, Dict, Optional

from ..models.review_item import ItemType


# Checked in order; the first matching group wins
ERROR_TYPE_KEYWORDS = (
    ("pronunciation", ("pronunciation", "phoneme")),
    ("grammar_pattern", ("grammar", "conjugation")),
    ("vocab", ("vocab", "word")),
)

SPOKEN_ITEM_TYPES = ("pronunciation", "sentence")


def classify_error_type(error_type: str) -> ItemType:
    """Map an upstream error type string to an item type by substring match.

    Examples:
        "pronunciation" -> pronunciation, "verb_conjugation" -> grammar_pattern,
        "word_choice" -> vocab, "fluency" -> sentence.
    """
    lowered = (error_type or "").lower()
    for item_type, keywords in ERROR_TYPE_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return item_type
    return "sentence"


def requires_spoken_answer(item_type: str) -> bool:
    return item_type in SPOKEN_ITEM_TYPES


def synthesize_content(
    item_type: ItemType,
    token: str,
    correction: str,
    explanation: str = "",
    context: Optional[str] = None,
    user_level: Optional[str] = None,
    position: Optional[int] = None,
) -> Dict[str, Any]:
    """Build deterministic question/answer content for an error-derived item.

    Args:
        item_type: Resolved item type.
        token: What the learner actually produced.
        correction: The expected form.
        explanation: Upstream explanation of the error.
        context: Surrounding utterance, if known.
        user_level: Learner's CEFR level, kept for renderers.
        position: Token offset in the evaluated transcript, if known.

    Returns:
        Content dict with at least question, answer and context keys.
    """
    correction = correction or token
    context = context or ""

    if item_type == "pronunciation":
        content = {
            "question": f'Say "{correction}" aloud.',
            "answer": correction,
            "word": correction,
            "phoneme": token,
            "tip": explanation,
            "context": context,
        }
    elif item_type == "grammar_pattern":
        content = {
            "question": f'Correct the mistake: "{context or token}"',
            "answer": correction,
            "rule": explanation,
            "pattern": f"{token} -> {correction}",
            "context": context,
        }
    elif item_type == "vocab":
        content = {
            "question": f'Which word fits instead of "{token}"?',
            "answer": correction,
            "example": context,
            "context": explanation,
        }
    else:
        content = {
            "question": f'Say the corrected sentence: "{context or token}"',
            "answer": correction,
            "hint": explanation,
            "context": context,
        }

    if user_level:
        content["level"] = user_level
    if position is not None:
        content["position"] = position
    return content
