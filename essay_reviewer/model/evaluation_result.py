from typing import List
from pydantic import BaseModel, ConfigDict, Field, field_validator

COMPETENCY_SCORE_STEPS = (0, 40, 80, 120, 160, 200)
COMPETENCY_COUNT = 5


class CompetencyEvaluation(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Competency label, e.g. 'Competência I'")
    score: int = Field(description="Score for the competency (0, 40, 80, 120, 160 or 200)")
    feedback: str = Field(default="", description="Paragraph explaining the score")


class Deviation(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    competency: str = Field(description="Affected competency, from 'I' to 'V'")
    type: str = Field(description="Error category, e.g. 'Concordância Verbal'")
    original_excerpt: str = Field(default="", alias="originalExcerpt", description="Excerpt containing the error")
    correction: str = Field(default="", description="Suggested correction")
    comment: str = Field(default="", description="Short explanation of the error")


class EvaluationResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    overall_score: int = Field(alias="overallScore", description="Total score (sum of all competencies, 0-1000)")
    summary: str = Field(default="", description="General summary of the evaluation")
    competencies: List[CompetencyEvaluation] = Field(description="One evaluation per ENEM competency, in rubric order")
    improvement_insights: List[str] = Field(
        default_factory=list, alias="improvementInsights", description="Up to five actionable tips"
    )
    deviations: List[Deviation] = Field(default_factory=list, description="Grammatical deviations found in the text")

    @field_validator("improvement_insights", "deviations", mode="before")
    @classmethod
    def _missing_as_empty(cls, value):
        return [] if value is None else value

    def competency_total(self) -> int:
        return sum(c.score for c in self.competencies)
