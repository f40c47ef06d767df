"""
Unit tests for the question normalizer (normalizer.py).

Tests cover:
- Variant classification order
- Answer resolution through the alphabet table and option texts
- Placeholders for malformed records
- Reading sentence-transformation rewrite
- True / False / Not Given downgrade
- Idempotence on canonical questions
- Lesson normalization
"""
import pytest

from exam_engine import config
from exam_engine.core.normalizer import (
    classify_variant,
    index_from_token,
    normalize_listening_lesson,
    normalize_question,
    normalize_questions,
    normalize_reading_lesson,
    normalize_speaking_lesson,
    rewrite_transformation,
    split_parts,
)
from exam_engine.models.question_models import (
    FillGap,
    GeoMap,
    Matching,
    MultiChoice,
    OpenResponse,
    QuestionType,
    SingleChoice,
    TrueFalse,
)


# ============================================================================
# CLASSIFICATION TESTS
# ============================================================================

@pytest.mark.unit
class TestClassifyVariant:
    """Test variant classification."""

    def test_canonical_tag_wins(self):
        """An explicit canonical type overrides every other signal."""
        assert classify_variant({"type": "open", "points": [[1, 2]]}) is QuestionType.OPEN

    def test_points_mean_map(self):
        assert classify_variant({"points": [{"x": 1, "y": 2}]}) is QuestionType.MAP

    def test_pairs_mean_matching(self):
        assert classify_variant({"pairs": []}) is QuestionType.MATCHING

    def test_segments_mean_fill_gap(self):
        assert classify_variant({"textParts": ["a"], "options": ["x"]}) is QuestionType.FILL_GAP

    def test_statements_mean_true_false(self):
        assert classify_variant({"statements": ["a", "b"]}) is QuestionType.TRUE_FALSE

    def test_model_answer_means_open(self):
        assert classify_variant({"question": "q", "modelAnswer": "a"}) is QuestionType.OPEN

    def test_boolean_answer_without_options(self):
        """A bare true/false answer with no options is a true/false question."""
        assert classify_variant({"question": "q", "answer": "Σ"}) is QuestionType.TRUE_FALSE

    @pytest.mark.parametrize("raw_type", ["SHORT_ANSWER", "short", "OPEN_TEXT", "short_text"])
    def test_short_and_open_names_mean_open(self, raw_type):
        assert classify_variant({"type": raw_type, "question": "Ποιος;", "correctAnswer": "x"}) is QuestionType.OPEN

    @pytest.mark.parametrize("raw_type", ["TEXT", "text_input", "FILL_TEXT"])
    def test_text_names_mean_fill_gap(self, raw_type):
        assert classify_variant({"type": raw_type, "question": "Γράψτε"}) is QuestionType.FILL_GAP

    def test_multiple_choice_is_single(self):
        """The legacy "multiple-choice" tag means one correct option."""
        assert classify_variant({"type": "multiple-choice", "options": ["a", "b"]}) is QuestionType.SINGLE

    def test_multiple_choice_multiple_is_multi(self):
        assert classify_variant({"type": "multiple-choice-multiple", "options": ["a"]}) is QuestionType.MULTI

    def test_correct_indices_mean_multi(self):
        assert classify_variant({"options": ["a", "b"], "correctIndices": [0, 1]}) is QuestionType.MULTI

    def test_default_is_single(self):
        assert classify_variant({}) is QuestionType.SINGLE


# ============================================================================
# ANSWER RESOLUTION TESTS
# ============================================================================

@pytest.mark.unit
class TestAnswerResolution:
    """Test answer token resolution."""

    @pytest.mark.parametrize("token,expected", [
        ("a", 0), ("A", 0), ("α", 0), ("1", 0),
        ("b", 1), ("Β", 1), ("2", 1),
        ("c", 2), ("γ", 2), ("3", 2),
        ("d", 3), ("δ", 3), ("4", 3),
    ])
    def test_alphabet_table(self, token, expected):
        assert index_from_token(token, ["w", "x", "y", "z"]) == expected

    def test_letter_beyond_options(self):
        """A letter past the last option does not resolve."""
        assert index_from_token("d", ["w", "x"]) is None

    def test_option_text_match(self):
        assert index_from_token(" πάτρα ", ["Αθήνα", "Πάτρα"]) == 1

    def test_unresolvable(self):
        assert index_from_token("z", ["Αθήνα", "Πάτρα"]) is None
        assert index_from_token(None, ["Αθήνα"]) is None

    def test_out_of_range_index_falls_back_to_answer(self):
        question = normalize_question({"options": ["a", "b"], "correctAnswerIndex": 5, "answer": "b"})
        assert question.variant.correct_index == 1

    def test_unresolvable_answer_defaults_to_first(self):
        question = normalize_question({"options": ["a", "b"], "answer": "κάτι"})
        assert question.variant.correct_index == 0


# ============================================================================
# VARIANT NORMALIZATION TESTS
# ============================================================================

@pytest.mark.unit
class TestNormalizeQuestion:
    """Test normalization of each legacy shape."""

    def test_greek_lettered_single_choice(self, raw_greek_single):
        """Lettered option fields with a letter answer become a SingleChoice."""
        question = normalize_question(raw_greek_single, "history")

        assert question.id == "hist-001"
        assert question.prompt == "Ποια είναι η πρωτεύουσα;"
        assert question.category == "history"
        assert isinstance(question.variant, SingleChoice)
        assert question.variant.options == ["Αθήνα", "Θεσσαλονίκη", "Πάτρα"]
        assert question.variant.correct_index == 0

    def test_legacy_options_spelling(self):
        question = normalize_question({"question": "q", "optionsA": "x", "optionsB": "y", "answer": "β"})
        assert question.variant.options == ["x", "y"]
        assert question.variant.correct_index == 1

    def test_options_mapping(self):
        question = normalize_question({"question": "q", "options": {"a": "x", "b": "y"}, "answer": "y"})
        assert question.variant.options == ["x", "y"]
        assert question.variant.correct_index == 1

    def test_multi_choice_from_answer_list(self):
        question = normalize_question({
            "type": "multiple-choice-multiple",
            "question": "Ποια είναι νησιά;",
            "options": ["Κρήτη", "Ήπειρος", "Ρόδος"],
            "answer": "a, c",
        })
        assert isinstance(question.variant, MultiChoice)
        assert question.variant.correct_indices == [0, 2]

    def test_true_false_statements(self, raw_true_false):
        question = normalize_question(raw_true_false)

        assert isinstance(question.variant, TrueFalse)
        assert question.prompt == config.TRUE_FALSE_PROMPT
        assert [s.is_true for s in question.variant.statements] == [True, False]

    def test_true_false_parallel_truth_list(self):
        question = normalize_question({
            "type": "TRUE_FALSE",
            "statements": ["α", "β"],
            "correctBooleans": [False, "σωστό"],
        })
        assert [s.is_true for s in question.variant.statements] == [False, True]

    def test_true_false_from_bare_answer(self):
        question = normalize_question({"question": "Η Αθήνα είναι πρωτεύουσα.", "answer": "Σ"})
        assert isinstance(question.variant, TrueFalse)
        assert question.variant.statements[0].text == "Η Αθήνα είναι πρωτεύουσα."
        assert question.variant.statements[0].is_true is True

    def test_matching_drops_incomplete_pairs(self):
        question = normalize_question({
            "type": "matching",
            "pairs": [{"left": "1821", "right": "Επανάσταση"}, {"left": "1940"}],
        })
        assert isinstance(question.variant, Matching)
        assert len(question.variant.pairs) == 1
        assert question.variant.pairs[0].right == "Επανάσταση"

    def test_fill_gap_with_word_bank(self):
        question = normalize_question({
            "type": "fill_gap",
            "question": "Συμπληρώστε",
            "textParts": ["Η πρωτεύουσα είναι η", "Το νησί είναι η"],
            "wordBank": ["Αθήνα", "Κρήτη"],
            "correctAnswers": ["Αθήνα", "Κρήτη"],
        })
        assert isinstance(question.variant, FillGap)
        assert question.variant.word_bank == ["Αθήνα", "Κρήτη"]
        assert question.variant.correct_answers == {0: "Αθήνα", 1: "Κρήτη"}

    def test_fill_gap_inline_choices(self):
        question = normalize_question({
            "type": "fill_gap",
            "textParts": ["Πάω"],
            "choices": {"0": ["στο", "στη"]},
            "correctAnswers": {"0": "στη"},
        })
        assert question.variant.inline_choices == {0: ["στο", "στη"]}
        assert question.variant.word_bank is None
        assert question.variant.correct_answers == {0: "στη"}

    def test_map_points(self):
        question = normalize_question({
            "type": "map",
            "question": "Βρείτε την Αθήνα",
            "points": [{"x": 100, "y": 50, "label": "Αθήνα"}, {"x": "?"}],
            "tolerance": "abc",
        })
        assert isinstance(question.variant, GeoMap)
        assert len(question.variant.targets) == 1
        assert question.variant.targets[0].lat == 50
        assert question.variant.targets[0].lng == 100
        assert question.variant.tolerance == config.DEFAULT_MAP_TOLERANCE

    def test_open_with_model_answer(self):
        question = normalize_question({"question": "Πότε;", "modelAnswer": "Το 1821", "minWords": "50"})
        assert isinstance(question.variant, OpenResponse)
        assert question.variant.model_answer == "Το 1821"
        assert question.variant.min_words == 50

    def test_media_alias(self):
        question = normalize_question({"question": "q", "options": ["a"], "imageUrl": "https://img/1.png"})
        assert question.media == "https://img/1.png"

    def test_short_answer_type_is_open(self):
        question = normalize_question({
            "type": "SHORT_ANSWER",
            "question": "Ποιος ήταν ο πρώτος κυβερνήτης;",
            "correctAnswer": "Καποδίστριας",
        }, "history")
        assert isinstance(question.variant, OpenResponse)
        assert question.variant.model_answer == "Καποδίστριας"

    def test_id_from_mixed_key_record(self):
        """Records built in Python may mix int and str keys; the derived id stays stable."""
        raw = {"question": "Συμπληρώστε", "type": "FILL_GAP", "correctAnswers": {0: "a", "1": "b"}}

        first, second = normalize_question(raw), normalize_question(dict(raw))

        assert len(first.id) == 9
        assert first.id == second.id
        assert first.variant.correct_answers == {0: "a", 1: "b"}

    def test_oversized_numbers_do_not_raise(self):
        question = normalize_question({"id": "x", "question": "q", "order": "1" * 5000,
                                       "modelAnswer": "a", "minWords": "9" * 5000})
        assert question.id == "x"
        assert question.prompt == "q"

    def test_overflowing_map_point_dropped(self):
        question = normalize_question({"type": "map", "points": [{"x": 10 ** 400, "y": 1}, {"x": 5, "y": 6}]})
        assert len(question.variant.targets) == 1
        assert question.variant.targets[0].lng == 5


# ============================================================================
# PLACEHOLDER AND FALLBACK TESTS
# ============================================================================

@pytest.mark.unit
class TestPlaceholders:
    """Test that malformed records still yield questions."""

    def test_empty_record(self):
        question = normalize_question({})
        assert question.prompt == config.QUESTION_TEXT_MISSING
        assert question.variant.options == config.PLACEHOLDER_OPTIONS
        assert question.variant.correct_index == 0
        assert question.id

    def test_non_mapping_record(self):
        """Non-mapping input is treated as an empty record, never raised."""
        question = normalize_question(["not", "a", "record"])
        assert question.type is QuestionType.SINGLE

    def test_missing_id_is_stable(self):
        """Records without an id get the same derived id every time."""
        raw = {"question": "q", "options": ["a", "b"]}
        assert normalize_question(raw).id == normalize_question(dict(raw)).id

    def test_invalid_canonical_variant_is_repaired(self):
        """A canonical record with a bad index is re-normalized, not rejected."""
        question = normalize_question({
            "id": "x",
            "prompt": "p",
            "variant": {"type": "SINGLE", "options": ["a", "b"], "correct_index": 7},
        })
        assert question.id == "x"
        assert question.variant.correct_index == 0

    def test_normalize_questions_non_list(self):
        assert normalize_questions(None) == []
        assert normalize_questions({"id": "x"}) == []


# ============================================================================
# NOT GIVEN DOWNGRADE TESTS
# ============================================================================

@pytest.mark.unit
class TestNotGiven:
    """Test True / False / Not Given records."""

    @pytest.mark.parametrize("answer,expected", [
        ("true", 0),
        ("Λάθος", 1),
        ("not given", 2),
        ("Δεν αναφέρεται", 2),
    ])
    def test_three_way_single_choice(self, answer, expected):
        question = normalize_question({
            "type": "true_false_not_given",
            "question": "Ο Όλυμπος είναι στην Κρήτη.",
            "answer": answer,
        })
        assert isinstance(question.variant, SingleChoice)
        assert question.variant.options == config.NOT_GIVEN_OPTIONS
        assert question.variant.correct_index == expected
        assert question.prompt == "Ο Όλυμπος είναι στην Κρήτη."


# ============================================================================
# READING TRANSFORMATION TESTS
# ============================================================================

@pytest.mark.unit
class TestReadingTransformation:
    """Test the sentence transformation rewrite."""

    def test_arrow_splits_source_and_target(self, raw_reading_transformation):
        question = normalize_question(raw_reading_transformation, "reading")

        assert question.prompt == "Μετατρέψτε στον πληθυντικό\n\n«ο δρόμος»"
        assert question.variant.segments == ["οι δρόμοι"]
        assert question.variant.correct_answers == {0: "δρόμοι"}

    def test_arrow_without_instruction(self):
        prompt, segments = rewrite_transformation({}, "ο δρόμος -> οι δρόμοι")
        assert prompt == "«ο δρόμος»"
        assert segments == ["οι δρόμοι"]

    def test_no_arrow_keeps_text(self):
        prompt, segments = rewrite_transformation({"instruction": "Συμπληρώστε"}, "Η Αθήνα είναι ___")
        assert prompt == "Συμπληρώστε\n\nΗ Αθήνα είναι ___"
        assert segments == [""]

    def test_no_arrow_keeps_authored_segments(self):
        prompt, segments = rewrite_transformation({"textParts": ["Πάω"]}, "Συμπληρώστε")
        assert prompt == "Συμπληρώστε"
        assert segments == ["Πάω"]

    def test_rewrite_only_for_reading(self, raw_reading_transformation):
        """Outside the reading category the arrow text is left alone."""
        question = normalize_question(raw_reading_transformation, "history")
        assert question.prompt == "ο δρόμος -> οι δρόμοι"
        assert question.variant.segments == ["ο δρόμος -> οι δρόμοι"]


# ============================================================================
# IDEMPOTENCE TESTS
# ============================================================================

@pytest.mark.unit
class TestIdempotence:
    """Re-normalizing a canonical question returns an equal question."""

    def test_canonical_dump(self, all_variant_questions):
        for question in all_variant_questions:
            assert normalize_question(question.model_dump()) == question

    def test_canonical_json_dump(self, all_variant_questions):
        for question in all_variant_questions:
            assert normalize_question(question.model_dump(mode="json")) == question

    def test_normalized_legacy_record(self, raw_greek_single, raw_true_false, raw_reading_transformation):
        for raw, category in [
            (raw_greek_single, "history"),
            (raw_true_false, None),
            (raw_reading_transformation, "reading"),
        ]:
            once = normalize_question(raw, category)
            assert normalize_question(once.model_dump(), category) == once


# ============================================================================
# LESSON TESTS
# ============================================================================

@pytest.mark.unit
class TestLessons:
    """Test lesson normalization."""

    def test_split_parts_list_form(self):
        part_a, part_b, part_c = split_parts({"parts": [
            {"id": "A", "questions": [{"id": 1}]},
            {"id": "b", "questions": [{"id": 2}]},
            {"id": "C", "question": "Γράψτε"},
        ]})
        assert part_a == [{"id": 1}]
        assert part_b == [{"id": 2}]
        assert part_c["question"] == "Γράψτε"

    def test_split_parts_object_form(self):
        part_a, part_b, part_c = split_parts({"parts": {
            "partA": [{"id": 1}],
            "partB": {"questions": [{"id": 2}]},
        }})
        assert part_a == [{"id": 1}]
        assert part_b == [{"id": 2}]
        assert part_c == {}

    def test_reading_lesson(self, raw_greek_single, raw_reading_transformation):
        lesson = normalize_reading_lesson({
            "id": "3",
            "title": "Η γειτονιά",
            "textContent": "Μένω στην Αθήνα.",
            "parts": [
                {"id": "A", "questions": [raw_greek_single]},
                {"id": "B", "questions": [raw_reading_transformation]},
                {"id": "C", "question": "Γράψτε ένα email"},
            ],
        })

        assert lesson.order == 3
        assert lesson.part_a[0].variant.correct_index == 0
        assert lesson.part_b[0].variant.segments == ["οι δρόμοι"]
        assert lesson.part_c.id == "3-C"
        assert lesson.part_c.prompt == "Γράψτε ένα email"
        assert isinstance(lesson.part_c.variant, OpenResponse)

    def test_reading_lesson_without_writing_task(self):
        lesson = normalize_reading_lesson({"id": "r2", "parts": {"partA": []}})
        assert lesson.order == 999
        assert lesson.part_c.prompt == config.WRITING_TASK_PROMPT
        assert lesson.part_c.type is QuestionType.OPEN

    def test_reading_lesson_renormalizes(self, raw_greek_single):
        lesson = normalize_reading_lesson({
            "id": "r3",
            "parts": [{"id": "A", "questions": [raw_greek_single]}, {"id": "C", "question": "Γράψτε"}],
        })
        assert normalize_reading_lesson(lesson.model_dump()) == lesson

    def test_listening_lesson_forces_part_types(self):
        lesson = normalize_listening_lesson({
            "id": "l1",
            "audioUrl": "https://audio/1.mp3",
            "parts": {
                "partA": [{"question": "Πού πάει;", "options": ["σπίτι", "σχολείο"], "answer": "b"}],
                "partB": [{"question": "Βρέχει", "answer": "false"}],
            },
        })

        assert lesson.audio_url == "https://audio/1.mp3"
        assert lesson.part_a[0].type is QuestionType.SINGLE
        assert lesson.part_a[0].variant.correct_index == 1
        assert lesson.part_b[0].type is QuestionType.TRUE_FALSE
        assert lesson.part_b[0].variant.statements[0].is_true is False

    def test_speaking_lesson(self):
        lesson = normalize_speaking_lesson({
            "id": "lesson_0",
            "order": 0,
            "content": "Συστηθείτε",
            "tips": ["Μιλήστε αργά", ""],
        })
        assert lesson.order == 0
        assert lesson.title == "Speaking Topic"
        assert lesson.prompt == "Συστηθείτε"
        assert lesson.tips == ["Μιλήστε αργά"]
