"""
Configuration file for the Exam Engine.

Modify these values to customize normalization, composition and grading.
"""

# Model Configuration
MODEL_NAME = "gemini-2.5-flash"

# Output Configuration
OUTPUT_DIR = "output"
EXAM_FILE = "exam.json"
ANSWERS_FILE = "answers.json"
EXAM_RESULT_FILE = "exam_result.json"

# Oracle Settings
ORACLE_TIMEOUT_SECONDS = 30.0
MIN_ANSWER_CHARS = 2
GRADING_UNAVAILABLE = "grading_unavailable"
EMPTY_ANSWER = "empty_answer"

# Normalization Settings
QUESTION_TEXT_MISSING = "Question Text Missing"
TRUE_FALSE_PROMPT = "Σημειώστε Σωστό ή Λάθος"
PLACEHOLDER_OPTIONS = ["Option A", "Option B", "Option C"]
NOT_GIVEN_OPTIONS = ["Σωστό", "Λάθος", "Δεν αναφέρεται"]
WRITING_TASK_PROMPT = "Writing Task"

# Answer letters, one row per option position
ANSWER_ALPHABET = [
    ("a", "α", "1"),
    ("b", "β", "2"),
    ("c", "γ", "3"),
    ("d", "δ", "4"),
]
TRUE_LITERALS = {"true", "t", "σ", "σωστό", "σωστο"}
FALSE_LITERALS = {"false", "f", "λ", "λάθος", "λαθος"}
NOT_GIVEN_LITERALS = {"not_given", "not given", "ng", "δεν αναφέρεται"}

# Map Settings (flat image overlay coordinates)
DEFAULT_MAP_TOLERANCE = 30.0

# Composition Settings
DIVERSITY_CAP = 2
THEORY_BLUEPRINT = [
    {"pool": "history", "count": 6},
    {"pool": "politics", "count": 6},
    {"pool": "culture", "count": 4},
    {"pool": "geography", "count": 2, "max_order": 50},
    {"pool": "geography", "count": 2, "min_order": 50, "max_order": 70},
]
SPEAKING_WARMUP_ID = "lesson_0"

# Scoring Settings (points per item)
SECTION_POINTS = {
    "theory": 2.0,
    "reading": 1.0,
    "listening": 1.5,
    "writing": 12.0,
    "speaking": 15.0,
}
LANGUAGE_SECTIONS = ("reading", "listening", "writing", "speaking")

# Pass Thresholds
PASS_THRESHOLD_TOTAL = 70.0
PASS_THRESHOLD_LANG = 40.0
PASS_THRESHOLD_THEORY = 20.0

# System Instruction
GRADING_SYSTEM_INSTRUCTION = """You are a Greek language and civics examiner grading answers
for the Greek naturalization exam.

IMPORTANT RULES:
1. Grade only what the candidate wrote; never invent content on their behalf
2. Never award more than the maximum points stated in the request
3. Write all feedback ONLY in GREEK
4. Be strict but fair; partial answers earn partial credit
5. Respond with JSON only, matching the requested schema
"""

# Prompt Templates, one per grading kind
SHORT_ANSWER_PROMPT_TEMPLATE = """Compare the Student Answer with the Model Answer.

Question: "{prompt}"
Model Answer: "{reference_answer}"
Student Answer: "{answer_text}"

Scoring: from 0 (wrong) to {max_points} (excellent), partial credit allowed.
Set isCorrect to true only if the answer is essentially right.
Output JSON: {{ "score": number, "isCorrect": boolean, "feedback": "string" }}"""

ESSAY_PROMPT_TEMPLATE = """Evaluate this piece of Greek writing.

Topic: "{prompt}"
Text: "{answer_text}"

Criteria: Content, Vocabulary, Grammar, Coherence.
Scoring: from 0 to {max_points} points in total.
Output JSON: {{ "score": number, "feedback": "string" }}"""

SPEAKING_PROMPT_TEMPLATE = """Evaluate this transcript of Greek speech.

Topic: "{prompt}"
Transcript: "{answer_text}"

Criteria: Pronunciation, Vocabulary, Fluency.
Scoring: from 0 to {max_points} points in total.
Output JSON: {{ "score": number, "feedback": "string" }}"""
