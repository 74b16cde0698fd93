"""Unit tests for remediation explanations."""

from review_scheduler.services.config import SrsConfig
from review_scheduler.services.explanations import (
    GENERIC_EXPLANATION,
    SENTENCE_FALLBACK_HINT,
    generate_explanation,
    maybe_generate_explanation,
)


class TestGenerateExplanation:
    """Tests for per-type explanation templates."""

    def test_pronunciation_cites_phoneme_and_word(self):
        text = generate_explanation("pronunciation", {"word": "ich", "phoneme": "ç"})

        assert '"ç"' in text
        assert '"ich"' in text
        assert "slowly" in text

    def test_vocab_with_example(self):
        text = generate_explanation(
            "vocab",
            {"answer": "der Bahnhof", "example": "Ich gehe zum Bahnhof."},
        )

        assert text == 'The answer is "der Bahnhof". Example: Ich gehe zum Bahnhof.'

    def test_vocab_without_example(self):
        text = generate_explanation("vocab", {"answer": "der Bahnhof"})

        assert text == 'The answer is "der Bahnhof".'

    def test_grammar_pattern_restates_rule_and_pattern(self):
        text = generate_explanation(
            "grammar_pattern",
            {"rule": "The verb goes second", "pattern": "Heute gehe ich"},
        )

        assert "The verb goes second" in text
        assert "Heute gehe ich" in text

    def test_sentence_uses_hint(self):
        text = generate_explanation("sentence", {"hint": "Split at the comma."})

        assert text == "Split at the comma."

    def test_sentence_fallback(self):
        assert generate_explanation("sentence", {"question": "q"}) == SENTENCE_FALLBACK_HINT

    def test_unknown_type_fallback(self):
        assert generate_explanation("listening", {"answer": "x"}) == GENERIC_EXPLANATION

    def test_missing_content(self):
        assert generate_explanation("sentence", None) == SENTENCE_FALLBACK_HINT

    def test_vocab_without_answer_uses_generic_text(self):
        text = generate_explanation("vocab", {"question": "station?", "back": "Bahnhof"})

        assert text == GENERIC_EXPLANATION

    def test_grammar_pattern_without_rule_or_pattern_uses_generic_text(self):
        text = generate_explanation("grammar_pattern", {"question": "q", "answer": ""})

        assert text == GENERIC_EXPLANATION

    def test_grammar_pattern_rule_only(self):
        text = generate_explanation("grammar_pattern", {"rule": "The verb goes second"})

        assert text == "Rule: The verb goes second."

    def test_pronunciation_without_word_uses_generic_text(self):
        assert generate_explanation("pronunciation", {"tip": "x"}) == GENERIC_EXPLANATION


class TestMaybeGenerateExplanation:
    """Tests for the once-only explanation trigger."""

    def test_below_threshold(self):
        assert maybe_generate_explanation("vocab", {"answer": "a"}, 1, None) is None

    def test_threshold_reached(self):
        text = maybe_generate_explanation("vocab", {"answer": "a"}, 2, None)

        assert text == 'The answer is "a".'

    def test_existing_explanation_never_regenerated(self):
        assert maybe_generate_explanation("vocab", {"answer": "a"}, 5, "old text") is None

    def test_custom_threshold(self):
        config = SrsConfig(failure_threshold=4)

        assert maybe_generate_explanation("vocab", {"answer": "a"}, 3, None, config) is None
        assert maybe_generate_explanation("vocab", {"answer": "a"}, 4, None, config) is not None
