"""
Grading oracle contract and the Gemini-backed oracle.

The oracle grades free text (short theory answers, essays, speech
transcripts). It is an untrusted capability: it may be slow, fail, or
answer with something that is not a grade. The orchestrator handles all of
that; an oracle only has to implement ``grade``.
"""
import os
from typing import Optional, Protocol

from google import genai
from pydantic import ValidationError

from exam_engine import config
from exam_engine.exceptions import OracleResponseError
from exam_engine.models.scoring_models import GradingRequest, GradingResponse
from exam_engine.utils.env_loader import load_env

PROMPT_TEMPLATES = {
    "short_answer": config.SHORT_ANSWER_PROMPT_TEMPLATE,
    "essay": config.ESSAY_PROMPT_TEMPLATE,
    "speaking": config.SPEAKING_PROMPT_TEMPLATE,
}


class GradingOracle(Protocol):
    """Anything that can grade one free-text answer asynchronously."""

    async def grade(self, request: GradingRequest) -> GradingResponse:
        ...


def parse_grading_response(text: Optional[str]) -> GradingResponse:
    """
    Parse the oracle's JSON answer.

    Models sometimes wrap the JSON object in prose or code fences, so when
    the text is not valid JSON the outermost ``{...}`` is tried.

    Raises:
        OracleResponseError: If no grade can be read from ``text``.
    """
    if not text:
        raise OracleResponseError("Empty response from grading oracle", raw_text=text)
    try:
        return GradingResponse.model_validate_json(text)
    except ValidationError:
        start, end = text.find("{"), text.rfind("}")
        if start == -1 or end <= start:
            raise OracleResponseError("No JSON found in grading response", raw_text=text)
        try:
            return GradingResponse.model_validate_json(text[start:end + 1])
        except ValidationError as e:
            raise OracleResponseError(f"Invalid grading response: {e}", raw_text=text) from e


def build_prompt(request: GradingRequest) -> str:
    """Render the prompt template for the request's grading kind."""
    return PROMPT_TEMPLATES[request.kind].format(
        prompt=request.prompt,
        answer_text=request.answer_text,
        reference_answer=request.reference_answer or "",
        max_points=f"{request.max_points:g}",
    )


class GeminiGradingOracle:
    """Grade free-text answers with Gemini structured output."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: Optional[str] = None,
        system_instruction: Optional[str] = None
    ):
        """
        Initialize the Gemini oracle.

        Args:
            api_key: Google AI API key. If not provided, uses GEMINI_API_KEY environment variable.
            model_name: Name of the Gemini model to use. If not provided, uses config.MODEL_NAME
            system_instruction: Custom system instruction. If not provided, uses config.GRADING_SYSTEM_INSTRUCTION
        """
        load_env()

        if api_key:
            os.environ["GEMINI_API_KEY"] = api_key

        self.client = genai.Client(api_key=api_key)
        self.model_name = model_name or config.MODEL_NAME
        self.system_instruction = system_instruction or config.GRADING_SYSTEM_INSTRUCTION

    async def grade(self, request: GradingRequest) -> GradingResponse:
        """
        Ask Gemini to grade one answer.

        Args:
            request: The answer to grade and its maximum points.

        Returns:
            GradingResponse parsed from the model's JSON output.

        Raises:
            OracleResponseError: If the model's output is not a grade.
        """
        response = await self.client.aio.models.generate_content(
            model=self.model_name,
            contents=build_prompt(request),
            config={
                "system_instruction": self.system_instruction,
                "response_mime_type": "application/json",
                "response_json_schema": GradingResponse.model_json_schema(),
            }
        )
        return parse_grading_response(response.text)
