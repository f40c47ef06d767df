"""
Pydantic models for the canonical question schema.

Every authoring format is normalized into a ``Question`` whose ``variant``
holds exactly one of the seven question kinds.
"""
from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from exam_engine import config


class QuestionType(str, Enum):
    """Tag of the canonical question variants."""
    SINGLE = "SINGLE"
    MULTI = "MULTI"
    TRUE_FALSE = "TRUE_FALSE"
    MATCHING = "MATCHING"
    FILL_GAP = "FILL_GAP"
    MAP = "MAP"
    OPEN = "OPEN"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class TrueFalseStatement(_Frozen):
    """One statement of a true/false question."""
    text: str = Field(default="", description="Statement text")
    is_true: bool = Field(description="Whether the statement is true")


class MatchingPair(_Frozen):
    """A left item and the right value it must be matched with."""
    left: str = Field(description="Left-hand prompt")
    right: str = Field(description="Right-hand value expected for this pair")


class MapPoint(_Frozen):
    """A point on the flat map overlay."""
    lat: float = Field(description="Vertical coordinate on the map image")
    lng: float = Field(description="Horizontal coordinate on the map image")
    label: str = Field(default="", description="Name of the place (e.g. Αθήνα)")


class SingleChoice(_Frozen):
    """Pick exactly one option."""
    type: Literal["SINGLE"] = "SINGLE"
    options: List[str] = Field(min_length=1, description="Answer options")
    correct_index: int = Field(description="Index of the correct option")

    @model_validator(mode="after")
    def _check_index(self):
        if not 0 <= self.correct_index < len(self.options):
            raise ValueError(
                f"correct_index {self.correct_index} out of range for {len(self.options)} options")
        return self


class MultiChoice(_Frozen):
    """Pick every correct option."""
    type: Literal["MULTI"] = "MULTI"
    options: List[str] = Field(min_length=1, description="Answer options")
    correct_indices: List[int] = Field(description="Indices of all correct options")

    @field_validator("correct_indices")
    @classmethod
    def _sorted_unique(cls, value: List[int]) -> List[int]:
        return sorted(set(value))

    @model_validator(mode="after")
    def _check_indices(self):
        bad = [i for i in self.correct_indices if not 0 <= i < len(self.options)]
        if bad:
            raise ValueError(f"correct_indices {bad} out of range for {len(self.options)} options")
        return self


class TrueFalse(_Frozen):
    """Mark each statement as true or false."""
    type: Literal["TRUE_FALSE"] = "TRUE_FALSE"
    statements: List[TrueFalseStatement] = Field(description="Statements to judge")


class Matching(_Frozen):
    """Match every left item with its right value."""
    type: Literal["MATCHING"] = "MATCHING"
    pairs: List[MatchingPair] = Field(description="Expected pairs")


class FillGap(_Frozen):
    """Fill the gap that follows each text segment."""
    type: Literal["FILL_GAP"] = "FILL_GAP"
    segments: List[str] = Field(description="Text segments, one gap each")
    word_bank: Optional[List[str]] = Field(
        default=None, description="Shared bank of words offered for every gap")
    inline_choices: Optional[Dict[int, List[str]]] = Field(
        default=None, description="Per-gap dropdown choices, keyed as authored")
    correct_answers: Dict[int, str] = Field(
        default_factory=dict, description="Expected text per segment index")


class GeoMap(_Frozen):
    """Place each target on the map, in the order listed."""
    type: Literal["MAP"] = "MAP"
    targets: List[MapPoint] = Field(description="Targets, in presentation order")
    tolerance: float = Field(
        default=config.DEFAULT_MAP_TOLERANCE, gt=0,
        description="Maximum planar distance still counted as correct")


class OpenResponse(_Frozen):
    """Free text graded by the oracle."""
    type: Literal["OPEN"] = "OPEN"
    model_answer: Optional[str] = Field(default=None, description="Reference answer")
    min_words: Optional[int] = Field(default=None, description="Minimum length for essays")


Variant = Annotated[
    Union[SingleChoice, MultiChoice, TrueFalse, Matching, FillGap, GeoMap, OpenResponse],
    Field(discriminator="type"),
]


class Question(_Frozen):
    """A canonical, immutable exam item."""
    id: str = Field(description="Stable identifier")
    prompt: str = Field(default="", description="Display text")
    media: Optional[str] = Field(default=None, description="Image or audio URL")
    variant: Variant
    order: Optional[int] = Field(default=None, description="Authoring order within its category")
    category: Optional[str] = Field(default=None, description="Authoring category")

    @property
    def type(self) -> QuestionType:
        return QuestionType(self.variant.type)
