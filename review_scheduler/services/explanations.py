"""Remediation explanation templates for repeatedly failed items."""

from typing import Any, Dict, Optional

from .config import DEFAULT_CONFIG, SrsConfig


GENERIC_EXPLANATION = (
    "This item keeps slipping. Review it carefully: read the answer aloud, "
    "cover it, and try to reproduce it from memory before moving on."
)

SENTENCE_FALLBACK_HINT = (
    "Break the sentence into chunks: find the verb first, then the subject, "
    "then add the remaining parts one at a time."
)


def _text(content: Dict[str, Any], *keys: str) -> str:
    """First non-empty string value among keys."""
    for key in keys:
        value = content.get(key)
        if value:
            return str(value).strip()
    return ""


def generate_explanation(item_type: str, content: Optional[Dict[str, Any]]) -> str:
    """Build the remediation text for an item.

    Args:
        item_type: One of vocab, grammar_pattern, sentence, pronunciation.
            Anything else gets the generic text.
        content: The item's content payload.

    Returns:
        Human-readable explanation. Content lacking the fields a template
        restates gets the generic text rather than a template with blanks.
    """
    content = content or {}

    if item_type == "pronunciation":
        word = _text(content, "word", "question")
        if not word:
            return GENERIC_EXPLANATION
        phoneme = _text(content, "phoneme", "answer") or word
        return (
            f'Listen for the sound "{phoneme}" in "{word}". '
            "Practice it slowly, one syllable at a time, then build up to normal speed."
        )

    if item_type == "vocab":
        answer = _text(content, "answer")
        if not answer:
            return GENERIC_EXPLANATION
        example = _text(content, "example", "example_sentence")
        explanation = f'The answer is "{answer}".'
        if example:
            explanation += f" Example: {example}"
        return explanation

    if item_type == "grammar_pattern":
        rule = _text(content, "rule", "context")
        pattern = _text(content, "pattern", "answer")
        if not pattern:
            return f"Rule: {rule}." if rule else GENERIC_EXPLANATION
        return f"Rule: {rule or 'see the corrected form'}. Pattern: {pattern}."

    if item_type == "sentence":
        hint = _text(content, "hint", "decomposition")
        return hint or SENTENCE_FALLBACK_HINT

    return GENERIC_EXPLANATION


def maybe_generate_explanation(
    item_type: str,
    content: Optional[Dict[str, Any]],
    failure_count: int,
    current_explanation: Optional[str],
    config: SrsConfig = DEFAULT_CONFIG,
) -> Optional[str]:
    """Return a new explanation only when one should be created now.

    An explanation is created the first time ``failure_count`` reaches the
    failure threshold. An item that already has one never gets another.

    Returns:
        The new explanation, or None when nothing should be written.
    """
    if current_explanation is not None:
        return None
    if failure_count < config.failure_threshold:
        return None
    return generate_explanation(item_type, content)
