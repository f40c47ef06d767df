"""
Alias tables for raw question records.

Authoring tools and legacy imports spell the same concept in several ways.
Each concept has one ordered table here; the first alias holding a usable
value wins. New legacy spellings are added to the tables, not to the
normalizer.
"""
from typing import Any, List, Mapping, Optional, Sequence

from exam_engine import config

PROMPT_ALIASES = ("question", "question_text", "statement", "prompt")
MEDIA_ALIASES = ("media", "imageUrl", "image_url", "image")
OPTION_LIST_ALIASES = ("options", "choices")
LETTERED_OPTION_ALIASES = (
    ("optionA", "optionB", "optionC", "optionD"),
    ("optionsA", "optionsB", "optionsC", "optionsD"),
    ("option_a", "option_b", "option_c", "option_d"),
)
INDEX_ALIASES = ("correctAnswerIndex", "correct_index", "correctIndex", "answerIndex")
MULTI_INDEX_ALIASES = ("correctIndices", "correct_indices")
ANSWER_ALIASES = ("answer", "correctAnswer", "correct_answer")
MODEL_ANSWER_ALIASES = ("modelAnswer", "model_answer", "correctAnswer", "answer")
STATEMENT_ALIASES = ("statements", "items")
TRUTH_ALIASES = ("correctBooleans", "correctAnswers", "correct_answers")
SEGMENT_ALIASES = ("textParts", "sentences", "segments", "sentence")
WORD_BANK_ALIASES = ("wordBank", "word_bank")
INLINE_CHOICE_ALIASES = ("inlineChoices", "inline_choices", "choices")
CORRECT_ANSWERS_ALIASES = ("correctAnswers", "correct_answers")
TARGET_ALIASES = ("points", "targets")
TOLERANCE_ALIASES = ("tolerance",)
MIN_WORDS_ALIASES = ("minWords", "min_words")
INSTRUCTION_ALIASES = ("instruction",)


def is_blank(value: Any) -> bool:
    """True for None, empty strings and whitespace-only strings."""
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def first_present(raw: Mapping[str, Any], names: Sequence[str]) -> Any:
    """Return the first non-blank value stored under any of ``names``."""
    for name in names:
        value = raw.get(name)
        if not is_blank(value):
            return value
    return None


def resolve_text(raw: Mapping[str, Any], names: Sequence[str]) -> Optional[str]:
    """Return the first non-blank scalar under ``names`` as a stripped string."""
    for name in names:
        value = raw.get(name)
        if isinstance(value, (str, int, float)) and not isinstance(value, bool) and not is_blank(value):
            return str(value).strip()
    return None


def resolve_prompt(raw: Mapping[str, Any]) -> Optional[str]:
    return resolve_text(raw, PROMPT_ALIASES)


def resolve_media(raw: Mapping[str, Any]) -> Optional[str]:
    return resolve_text(raw, MEDIA_ALIASES)


def resolve_answer_value(raw: Mapping[str, Any]) -> Any:
    """Return the authored answer token (letter, word, bool or list)."""
    return first_present(raw, ANSWER_ALIASES)


def resolve_options(raw: Mapping[str, Any]) -> List[str]:
    """
    Collect the option list from whichever shape the record uses.

    Accepts a list, a mapping of values (``{"a": "...", "b": "..."}``) or
    four discrete lettered fields. Blank entries are dropped.
    """
    for name in OPTION_LIST_ALIASES:
        value = raw.get(name)
        if isinstance(value, Mapping):
            if name == "choices":
                # keyed choices belong to inline fill-gap dropdowns
                continue
            value = list(value.values())
        if isinstance(value, (list, tuple)):
            options = [text for text in map(_option_text, value) if text]
            if options:
                return options

    for letters in LETTERED_OPTION_ALIASES:
        options = [str(raw[name]).strip() for name in letters if not is_blank(raw.get(name))]
        if options:
            return options

    return []


def _option_text(option: Any) -> str:
    if isinstance(option, Mapping):
        option = option.get("text", "")
    return "" if option is None else str(option).strip()


def boolean_literal(value: Any) -> Optional[bool]:
    """Read true/false, Σ/Λ and similar literals; None if not boolean-like."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        token = value.strip().casefold()
        if token in config.TRUE_LITERALS:
            return True
        if token in config.FALSE_LITERALS:
            return False
    return None
