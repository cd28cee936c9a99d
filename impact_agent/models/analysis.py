"""
Data models for the language-model analysis results.

Every field carries a default so that a response missing any part of the
JSON contract still produces a complete object. Renderers substitute their
own display defaults for empty values.
"""

from enum import Enum
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class RiskLevel(str, Enum):
    """Overall risk score assigned by the impact analysis."""

    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class TestPriority(str, Enum):
    """Priority of a generated manual test case."""

    __test__ = False

    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class RiskAssessment(BaseModel):
    """Risk score with the model's reasoning."""

    score: Optional[RiskLevel] = None
    reasoning: str = ""

    @field_validator("score", mode="before")
    @classmethod
    def _normalize_score(cls, value):
        if value is None or isinstance(value, RiskLevel):
            return value
        candidate = str(value).strip().upper()
        return candidate if candidate in RiskLevel.__members__ else None

    @field_validator("reasoning", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return "" if value is None else value


class RequirementsAlignment(BaseModel):
    """How well the change matches the linked ticket's requirements."""

    fully_addressed: bool = Field(
        False, validation_alias=AliasChoices("fullyAddressed", "fully_addressed")
    )
    missing_requirements: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("missingRequirements", "missing_requirements"),
    )
    additional_changes: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("additionalChanges", "additional_changes"),
    )
    alignment_score: Optional[str] = Field(
        None, validation_alias=AliasChoices("alignmentScore", "alignment_score")
    )

    @field_validator("alignment_score", mode="before")
    @classmethod
    def _stringify_score(cls, value):
        return None if value is None else str(value)

    @field_validator("fully_addressed", mode="before")
    @classmethod
    def _none_to_false(cls, value):
        return False if value is None else value

    @field_validator("missing_requirements", "additional_changes", mode="before")
    @classmethod
    def _none_to_list(cls, value):
        return [] if value is None else value


class TechnicalDetails(BaseModel):
    """Free-text impact per fixed category."""

    model_config = ConfigDict(populate_by_name=True)

    api: str = Field("", validation_alias=AliasChoices("API Impact", "API", "api"))
    database: str = Field("", validation_alias=AliasChoices("Database Impact", "Database", "database"))
    logic: str = Field("", validation_alias=AliasChoices("Logic Impact", "Logic", "logic"))
    ui: str = Field("", validation_alias=AliasChoices("UI Impact", "UI", "ui"))
    security: str = Field("", validation_alias=AliasChoices("Security Impact", "Security", "security"))

    @field_validator("api", "database", "logic", "ui", "security", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return "" if value is None else value


class ImpactAnalysis(BaseModel):
    """Parsed architectural impact analysis."""

    risk: RiskAssessment = Field(default_factory=RiskAssessment)
    key_changes: List[str] = Field(
        default_factory=list, validation_alias=AliasChoices("keyChanges", "key_changes")
    )
    requirements_alignment: Optional[RequirementsAlignment] = Field(
        None, validation_alias=AliasChoices("requirementsAlignment", "requirements_alignment")
    )
    technical_details: TechnicalDetails = Field(
        default_factory=TechnicalDetails,
        validation_alias=AliasChoices("technicalDetails", "technical_details"),
    )

    @field_validator("risk", "technical_details", mode="before")
    @classmethod
    def _none_to_default(cls, value):
        return {} if value is None else value

    @field_validator("key_changes", mode="before")
    @classmethod
    def _none_to_list(cls, value):
        return [] if value is None else value


class TestCase(BaseModel):
    """Manual test case drafted by the model."""

    __test__ = False

    title: str = "Untitled test case"
    steps: List[str] = Field(default_factory=list)
    expected_result: str = Field(
        "", validation_alias=AliasChoices("expectedResult", "expected_result")
    )
    priority: TestPriority = TestPriority.MEDIUM

    @field_validator("priority", mode="before")
    @classmethod
    def _normalize_priority(cls, value):
        if isinstance(value, TestPriority):
            return value
        candidate = str(value or "").strip().upper()
        return candidate if candidate in TestPriority.__members__ else TestPriority.MEDIUM

    @field_validator("steps", mode="before")
    @classmethod
    def _coerce_steps(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("title", "expected_result", mode="before")
    @classmethod
    def _none_to_text(cls, value, info):
        if value is None:
            return "Untitled test case" if info.field_name == "title" else ""
        return value


class TestCaseSet(BaseModel):
    """Generated test cases; may legitimately be empty."""

    __test__ = False

    summary: str = ""
    test_cases: List[TestCase] = Field(
        default_factory=list, validation_alias=AliasChoices("testCases", "test_cases")
    )

    @field_validator("summary", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return "" if value is None else value

    @field_validator("test_cases", mode="before")
    @classmethod
    def _none_to_list(cls, value):
        return [] if value is None else value
