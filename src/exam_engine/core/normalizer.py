"""
Question Normalizer.

Turns hand-authored question records, in any of the legacy shapes that
coexist in the question collections, into canonical ``Question`` objects.

Normalization is defensive: it never raises for bad content. A record that
cannot be understood still yields a scorable question built from
placeholders, and every fallback is logged at DEBUG level.

Re-normalizing the serialized form of a canonical question returns an equal
question.
"""
import hashlib
import json
import logging
import re
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from pydantic import ValidationError

from exam_engine import config
from exam_engine.core import aliases
from exam_engine.core.geo import as_coordinates, resolve_tolerance
from exam_engine.models.exam_models import ListeningLesson, ReadingLesson, SpeakingLesson
from exam_engine.models.question_models import (
    FillGap,
    GeoMap,
    MapPoint,
    Matching,
    MatchingPair,
    MultiChoice,
    OpenResponse,
    Question,
    QuestionType,
    SingleChoice,
    TrueFalse,
    TrueFalseStatement,
)

logger = logging.getLogger(__name__)

CANONICAL_TYPES = {question_type.value.lower(): question_type for question_type in QuestionType}
READING_CATEGORY = "reading"
TRANSFORMATION_ARROW = "->"


# ============================================================================
# SMALL COERCIONS
# ============================================================================

def _raw_type(raw: Mapping[str, Any]) -> str:
    value = raw.get("type")
    return value.strip().lower() if isinstance(value, str) else ""


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str) and re.fullmatch(r"\s*-?\d+\s*", value):
        try:
            return int(value)
        except ValueError:
            # beyond the interpreter's int conversion digit limit
            return None
    return None


def _signals_not_given(raw: Mapping[str, Any]) -> bool:
    raw_type = _raw_type(raw)
    if "not_given" in raw_type or "not given" in raw_type:
        return True
    answer = aliases.resolve_answer_value(raw)
    return isinstance(answer, str) and answer.strip().casefold() in config.NOT_GIVEN_LITERALS


def _pick(values: Any, index: int) -> Any:
    """Element ``index`` of a list, or of a mapping keyed by index."""
    if isinstance(values, (list, tuple)):
        return values[index] if index < len(values) else None
    if isinstance(values, Mapping):
        return values.get(index, values.get(str(index)))
    return None


def _string_list(value: Any) -> List[str]:
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    if isinstance(value, (list, tuple)):
        return [str(item).strip() for item in value if not aliases.is_blank(item)]
    return []


def _index_keyed(value: Any) -> Dict[int, Any]:
    """Re-key a mapping (or list) by integer index, dropping non-numeric keys."""
    if isinstance(value, (list, tuple)):
        return dict(enumerate(value))
    if not isinstance(value, Mapping):
        return {}
    keyed = {}
    for key, item in value.items():
        index = _as_int(key)
        if index is not None:
            keyed[index] = item
    return keyed


def _string_keyed(value: Any) -> Any:
    """Copy of ``value`` with every mapping key turned into a string, so keys sort."""
    if isinstance(value, Mapping):
        return {str(key): _string_keyed(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_string_keyed(item) for item in value]
    return value


def _resolve_id(raw: Mapping[str, Any]) -> str:
    value = raw.get("id")
    if not aliases.is_blank(value):
        return str(value).strip()
    digest = hashlib.sha1(
        json.dumps(_string_keyed(raw), sort_keys=True, default=str, ensure_ascii=False).encode("utf-8")
    ).hexdigest()
    logger.debug("Record without id, derived %s from its content", digest[:9])
    return digest[:9]


# ============================================================================
# VARIANT CLASSIFICATION
# ============================================================================

def classify_variant(raw: Mapping[str, Any]) -> QuestionType:
    """
    Decide which canonical variant a raw record describes.

    Signals overlap between legacy formats, so the checks run in a fixed
    order and the first match wins.

    Args:
        raw: The raw question record.

    Returns:
        The QuestionType tag of the record.
    """
    raw_type = _raw_type(raw)

    if raw_type in CANONICAL_TYPES:
        return CANONICAL_TYPES[raw_type]

    targets = aliases.first_present(raw, aliases.TARGET_ALIASES)
    if (isinstance(targets, list) and targets) or "map" in raw_type:
        return QuestionType.MAP

    if raw.get("pairs") is not None or "match" in raw_type:
        return QuestionType.MATCHING

    names_open = "open" in raw_type or "short" in raw_type
    fill_named = "fill" in raw_type or "gap" in raw_type or ("text" in raw_type and not names_open)
    if aliases.first_present(raw, aliases.SEGMENT_ALIASES) is not None or fill_named:
        return QuestionType.FILL_GAP

    if "true" in raw_type or "σωστό" in raw_type or isinstance(raw.get("statements"), list):
        if _signals_not_given(raw):
            return QuestionType.SINGLE
        return QuestionType.TRUE_FALSE

    if names_open or raw.get("modelAnswer") is not None or raw.get("model_answer") is not None:
        return QuestionType.OPEN

    if not aliases.resolve_options(raw) and aliases.boolean_literal(aliases.resolve_answer_value(raw)) is not None:
        return QuestionType.TRUE_FALSE

    # "multiple-choice" alone is single choice; "multiple-choice-multiple" is not
    if raw_type.count("multi") >= 2 or aliases.first_present(raw, aliases.MULTI_INDEX_ALIASES) is not None:
        return QuestionType.MULTI

    return QuestionType.SINGLE


# ============================================================================
# ANSWER INDEX RESOLUTION
# ============================================================================

def index_from_token(token: Any, options: List[str]) -> Optional[int]:
    """
    Resolve a letter, digit or option text to an option index.

    The alphabet table maps a/α/1 to 0, b/β/2 to 1 and so on,
    case-insensitively. Anything else is matched against the option texts.
    """
    if token is None or isinstance(token, bool):
        return None
    text = str(token).strip().casefold()
    if not text:
        return None
    for position, letters in enumerate(config.ANSWER_ALPHABET):
        if text in letters and position < len(options):
            return position
    for position, option in enumerate(options):
        if option.strip().casefold() == text:
            return position
    return None


def resolve_answer_index(raw: Mapping[str, Any], options: List[str]) -> int:
    """Index of the correct option; 0 when nothing resolves."""
    explicit = _as_int(aliases.first_present(raw, aliases.INDEX_ALIASES))
    if explicit is not None and 0 <= explicit < len(options):
        return explicit

    found = index_from_token(aliases.resolve_answer_value(raw), options)
    if found is not None:
        return found

    logger.debug("No resolvable answer for options %s, defaulting to index 0", options)
    return 0


def resolve_answer_indices(raw: Mapping[str, Any], options: List[str]) -> List[int]:
    """All correct option indices of a multi choice record; ``[0]`` when none resolve."""
    explicit = aliases.first_present(raw, aliases.MULTI_INDEX_ALIASES)
    if isinstance(explicit, (list, tuple)):
        indices = [_as_int(value) for value in explicit]
        indices = [i for i in indices if i is not None and 0 <= i < len(options)]
        if indices:
            return sorted(set(indices))

    answer = aliases.resolve_answer_value(raw)
    if isinstance(answer, str):
        tokens = [token for token in re.split(r"[,;/\s]+", answer) if token]
    elif isinstance(answer, (list, tuple)):
        tokens = list(answer)
    else:
        tokens = [answer]
    indices = {index_from_token(token, options) for token in tokens}
    indices.discard(None)
    if indices:
        return sorted(indices)

    logger.debug("No resolvable answers for multi choice, defaulting to [0]")
    return [0]


# ============================================================================
# VARIANT BUILDERS
# ============================================================================

def _options_or_placeholder(raw: Mapping[str, Any]) -> List[str]:
    options = aliases.resolve_options(raw)
    if not options:
        logger.debug("No options found, using placeholder options")
        return list(config.PLACEHOLDER_OPTIONS)
    return options


def _build_single(raw, prompt, category):
    options = aliases.resolve_options(raw)
    if not options and _signals_not_given(raw):
        return _build_not_given(raw, prompt)
    options = options or _options_or_placeholder(raw)
    variant = SingleChoice(options=options, correct_index=resolve_answer_index(raw, options))
    return prompt or config.QUESTION_TEXT_MISSING, variant


def _build_not_given(raw, prompt):
    """True / False / Not Given statements collapse to a three-way single choice."""
    options = list(config.NOT_GIVEN_OPTIONS)
    answer = aliases.resolve_answer_value(raw)
    truth = aliases.boolean_literal(answer)
    if truth is not None:
        correct_index = 0 if truth else 1
    else:
        found = index_from_token(answer, options)
        correct_index = found if found is not None else 2
    if not prompt:
        statements = _string_list(raw.get("statements"))
        prompt = statements[0] if statements else config.QUESTION_TEXT_MISSING
    return prompt, SingleChoice(options=options, correct_index=correct_index)


def _build_multi(raw, prompt, category):
    options = _options_or_placeholder(raw)
    variant = MultiChoice(options=options, correct_indices=resolve_answer_indices(raw, options))
    return prompt or config.QUESTION_TEXT_MISSING, variant


def _statement(entry: Any, truth_source: Any, index: int) -> Optional[TrueFalseStatement]:
    if isinstance(entry, Mapping):
        text = aliases.resolve_text(entry, ("text", "statement", "question")) or ""
        truth = None
        for name in ("is_true", "isTrue", "answer", "correctAnswer"):
            truth = aliases.boolean_literal(entry.get(name))
            if truth is not None:
                break
        return TrueFalseStatement(text=text, is_true=True if truth is None else truth)
    if aliases.is_blank(entry):
        return None
    truth = aliases.boolean_literal(_pick(truth_source, index))
    return TrueFalseStatement(text=str(entry).strip(), is_true=True if truth is None else truth)


def _build_true_false(raw, prompt, category):
    entries = aliases.first_present(raw, aliases.STATEMENT_ALIASES)
    truth_source = aliases.first_present(raw, aliases.TRUTH_ALIASES)
    statements = []
    if isinstance(entries, (list, tuple)):
        for index, entry in enumerate(entries):
            statement = _statement(entry, truth_source, index)
            if statement is not None:
                statements.append(statement)

    if not statements:
        truth = aliases.boolean_literal(aliases.resolve_answer_value(raw))
        if truth is None:
            truth = aliases.boolean_literal(raw.get("isTrue"))
        statements = [TrueFalseStatement(text=prompt or "", is_true=True if truth is None else truth)]

    return prompt or config.TRUE_FALSE_PROMPT, TrueFalse(statements=statements)


def _build_matching(raw, prompt, category):
    raw_pairs = raw.get("pairs")
    if isinstance(raw_pairs, Mapping):
        raw_pairs = [{"left": left, "right": right} for left, right in raw_pairs.items()]
    pairs = []
    for entry in raw_pairs if isinstance(raw_pairs, (list, tuple)) else []:
        if not isinstance(entry, Mapping):
            continue
        left, right = aliases.resolve_text(entry, ("left",)), aliases.resolve_text(entry, ("right",))
        if left is None or right is None:
            logger.debug("Dropping incomplete matching pair %r", entry)
            continue
        pairs.append(MatchingPair(left=left, right=right))
    return prompt or config.QUESTION_TEXT_MISSING, Matching(pairs=pairs)


def rewrite_transformation(raw: Mapping[str, Any], prompt: Optional[str]) -> Tuple[str, List[str]]:
    """
    Rewrite a reading sentence-transformation record.

    The record stores ``"source -> target"`` in its prompt field. The source
    joins the instruction as the displayed prompt and the target becomes the
    single gapped segment. Without an arrow the whole field stays in the
    prompt and the segment is empty.

    Args:
        raw: The raw record (read for ``instruction`` and authored segments).
        prompt: The resolved prompt field.

    Returns:
        Tuple of (prompt, segments).
    """
    instruction = aliases.resolve_text(raw, aliases.INSTRUCTION_ALIASES) or ""
    field = prompt or ""

    if TRANSFORMATION_ARROW in field:
        source, _, target = field.partition(TRANSFORMATION_ARROW)
        quoted = f"«{source.strip()}»"
        return (f"{instruction}\n\n{quoted}" if instruction else quoted), [target.strip()]

    text = f"{instruction}\n\n{field}" if instruction and field else (instruction or field)
    segments = _string_list(aliases.first_present(raw, aliases.SEGMENT_ALIASES))
    return text, segments or [""]


def _correct_answers(raw: Mapping[str, Any]) -> Dict[int, str]:
    value = aliases.first_present(raw, aliases.CORRECT_ANSWERS_ALIASES)
    if isinstance(value, str):
        return {0: value.strip()}
    answers = {index: str(item).strip() for index, item in _index_keyed(value).items() if item is not None}
    if answers:
        return answers
    answer = aliases.resolve_answer_value(raw)
    if isinstance(answer, (str, int, float)) and not isinstance(answer, bool):
        return {0: str(answer).strip()}
    return {}


def _build_fill_gap(raw, prompt, category):
    if category == READING_CATEGORY:
        prompt, segments = rewrite_transformation(raw, prompt)
    else:
        segments = _string_list(aliases.first_present(raw, aliases.SEGMENT_ALIASES)) or [prompt or ""]
        prompt = prompt or config.QUESTION_TEXT_MISSING

    word_bank = _string_list(aliases.first_present(raw, aliases.WORD_BANK_ALIASES)) or aliases.resolve_options(raw)

    inline_choices = None
    for name in aliases.INLINE_CHOICE_ALIASES:
        value = raw.get(name)
        if isinstance(value, Mapping):
            inline_choices = {index: _string_list(item) for index, item in _index_keyed(value).items()}
            break

    variant = FillGap(
        segments=segments,
        word_bank=word_bank or None,
        inline_choices=inline_choices or None,
        correct_answers=_correct_answers(raw),
    )
    return prompt, variant


def _build_map(raw, prompt, category):
    entries = aliases.first_present(raw, aliases.TARGET_ALIASES)
    targets = []
    for entry in entries if isinstance(entries, (list, tuple)) else []:
        coordinates = as_coordinates(entry)
        if coordinates is None:
            logger.debug("Dropping map point without coordinates %r", entry)
            continue
        label = aliases.resolve_text(entry, ("label", "name")) if isinstance(entry, Mapping) else None
        targets.append(MapPoint(lat=coordinates[0], lng=coordinates[1], label=label or ""))
    tolerance = resolve_tolerance(aliases.first_present(raw, aliases.TOLERANCE_ALIASES))
    return prompt or config.QUESTION_TEXT_MISSING, GeoMap(targets=targets, tolerance=tolerance)


def _build_open(raw, prompt, category):
    model_answer = aliases.resolve_text(raw, aliases.MODEL_ANSWER_ALIASES)
    min_words = _as_int(aliases.first_present(raw, aliases.MIN_WORDS_ALIASES))
    variant = OpenResponse(model_answer=model_answer, min_words=min_words)
    return prompt or config.QUESTION_TEXT_MISSING, variant


_BUILDERS: Dict[QuestionType, Callable] = {
    QuestionType.SINGLE: _build_single,
    QuestionType.MULTI: _build_multi,
    QuestionType.TRUE_FALSE: _build_true_false,
    QuestionType.MATCHING: _build_matching,
    QuestionType.FILL_GAP: _build_fill_gap,
    QuestionType.MAP: _build_map,
    QuestionType.OPEN: _build_open,
}


# ============================================================================
# PUBLIC API
# ============================================================================

def normalize_question(raw: Any, category: Optional[str] = None) -> Question:
    """
    Normalize one raw question record into a canonical Question.

    Args:
        raw: The raw record. Anything that is not a mapping is treated as an
            empty record.
        category: Authoring category of the record (e.g. "history",
            "reading"). Reading fill-gap records get the sentence
            transformation rewrite.

    Returns:
        A canonical Question. Never raises for bad content.
    """
    if not isinstance(raw, Mapping):
        logger.warning("Expected a mapping, got %s; normalizing an empty record", type(raw).__name__)
        raw = {}
    raw = dict(raw)

    variant = raw.get("variant")
    if isinstance(variant, Mapping):
        try:
            return Question.model_validate(raw)
        except ValidationError as e:
            logger.debug("Canonical record %r failed validation, re-normalizing: %s", raw.get("id"), e)
            raw = {**{k: v for k, v in raw.items() if k != "variant"}, **variant}

    question_type = classify_variant(raw)
    question_id = _resolve_id(raw)
    prompt, built = _BUILDERS[question_type](raw, aliases.resolve_prompt(raw), category)

    try:
        return Question(
            id=question_id,
            prompt=prompt,
            media=aliases.resolve_media(raw),
            variant=built,
            order=_as_int(raw.get("order")),
            category=aliases.resolve_text(raw, ("category",)) or category,
        )
    except ValidationError as e:
        logger.warning("Question %s could not be built, using a placeholder: %s", question_id, e)
        return Question(
            id=question_id,
            prompt=config.QUESTION_TEXT_MISSING,
            variant=SingleChoice(options=list(config.PLACEHOLDER_OPTIONS), correct_index=0),
            category=category,
        )


def normalize_questions(raws: Any, category: Optional[str] = None) -> List[Question]:
    """Normalize a list of raw records; non-list input yields an empty list."""
    if not isinstance(raws, (list, tuple)):
        return []
    return [normalize_question(raw, category) for raw in raws]


# ============================================================================
# LESSONS
# ============================================================================

def _lesson_identity(raw: Mapping[str, Any]) -> Tuple[str, int]:
    lesson_id = _resolve_id(raw)
    order = _as_int(raw.get("order"))
    if order is None:
        order = _as_int(raw.get("id"))
    return lesson_id, 999 if order is None else order


def _part_questions(part: Any) -> list:
    if isinstance(part, list):
        return part
    if isinstance(part, Mapping) and isinstance(part.get("questions"), list):
        return part["questions"]
    return []


def split_parts(raw: Mapping[str, Any]) -> Tuple[list, list, Mapping[str, Any]]:
    """
    Extract part A, part B and part C from a lesson record.

    Lessons store their parts either as a list (``[{"id": "A", "questions":
    [...]}, ...]``), as an object (``{"partA": [...], "partB": {"questions":
    [...]}, "partC": {...}}``) or, once normalized, as top-level
    ``part_a``/``part_b``/``part_c`` fields.
    """
    parts = raw.get("parts")
    if isinstance(parts, list):
        by_id = {str(p.get("id")).upper(): p for p in parts if isinstance(p, Mapping)}
        part_c = by_id.get("C") or {}
        return _part_questions(by_id.get("A")), _part_questions(by_id.get("B")), part_c
    if isinstance(parts, Mapping):
        part_c = parts.get("partC") or parts.get("part_c") or {}
        return (
            _part_questions(parts.get("partA", parts.get("part_a"))),
            _part_questions(parts.get("partB", parts.get("part_b"))),
            part_c if isinstance(part_c, Mapping) else {},
        )
    part_c = raw.get("part_c") or {}
    return (
        _part_questions(raw.get("part_a")),
        _part_questions(raw.get("part_b")),
        part_c if isinstance(part_c, Mapping) else {},
    )


def _image_urls(raw: Mapping[str, Any]) -> List[str]:
    urls = _string_list(aliases.first_present(raw, ("imageUrls", "image_urls", "images")))
    if not urls and not aliases.is_blank(raw.get("image")):
        urls = [str(raw["image"]).strip()]
    return urls


def normalize_reading_lesson(raw: Any) -> ReadingLesson:
    """Normalize a reading lesson: passage, parts A and B, writing task C."""
    raw = raw if isinstance(raw, Mapping) else {}
    lesson_id, order = _lesson_identity(raw)
    part_a, part_b, part_c = split_parts(raw)

    writing_prompt = (
        aliases.resolve_prompt(part_c)
        or aliases.resolve_text(part_c, ("text_content",))
        or aliases.resolve_text(raw, ("writing_prompt",))
        or config.WRITING_TASK_PROMPT
    )
    writing = normalize_question(
        {**part_c, "id": f"{lesson_id}-C", "type": "OPEN", "prompt": writing_prompt},
        READING_CATEGORY,
    )

    return ReadingLesson(
        id=lesson_id,
        order=order,
        title=aliases.resolve_text(raw, ("title",)) or f"Lesson {lesson_id}",
        text_content=aliases.resolve_text(raw, ("textContent", "text_content", "text")) or "",
        image_urls=_image_urls(raw),
        part_a=normalize_questions(part_a, READING_CATEGORY),
        part_b=normalize_questions(part_b, READING_CATEGORY),
        part_c=writing,
    )


def normalize_listening_lesson(raw: Any) -> ListeningLesson:
    """Normalize a listening lesson; part A is single choice, part B true/false."""
    raw = raw if isinstance(raw, Mapping) else {}
    lesson_id, order = _lesson_identity(raw)
    part_a, part_b, _ = split_parts(raw)

    return ListeningLesson(
        id=lesson_id,
        order=order,
        title=aliases.resolve_text(raw, ("title",)) or f"Lesson {lesson_id}",
        audio_url=aliases.resolve_text(raw, ("audioUrl", "audio_url", "mp3_url")) or "",
        transcript=aliases.resolve_text(raw, ("transcript",)) or "",
        part_a=[normalize_question({**q, "type": "SINGLE"}, "listening") for q in part_a if isinstance(q, Mapping)],
        part_b=[normalize_question({**q, "type": "TRUE_FALSE"}, "listening") for q in part_b if isinstance(q, Mapping)],
    )


def normalize_speaking_lesson(raw: Any) -> SpeakingLesson:
    """Normalize a speaking topic."""
    raw = raw if isinstance(raw, Mapping) else {}
    lesson_id, order = _lesson_identity(raw)

    return SpeakingLesson(
        id=lesson_id,
        order=order,
        title=aliases.resolve_text(raw, ("title",)) or "Speaking Topic",
        prompt=aliases.resolve_text(raw, ("prompt", "content")) or "",
        image_urls=_image_urls(raw),
        tips=_string_list(raw.get("tips")),
    )
