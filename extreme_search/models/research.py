from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class SearchCategory(str, Enum):
    NEWS = "news"
    COMPANY = "company"
    RESEARCH_PAPER = "research paper"
    GITHUB = "github"
    FINANCIAL_REPORT = "financial report"


MAX_QUERY_CHARS = 100

SearchQuery = Annotated[str, Field(max_length=MAX_QUERY_CHARS)]


class PlanSection(BaseModel):
    """One research sub-topic with exactly one focused search query."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    title: str = Field(min_length=10, max_length=70)
    queries: list[SearchQuery] = Field(
        min_length=1,
        max_length=1,
        validation_alias=AliasChoices("queries", "todos"),
    )

    @field_validator("queries")
    @classmethod
    def _queries_not_blank(cls, value: list[str]) -> list[str]:
        cleaned = [" ".join(q.split()) for q in value]
        if any(not q for q in cleaned):
            raise ValueError("search queries must not be blank")
        return cleaned


class ResearchPlan(BaseModel):
    """Ordered 2-3 section plan produced once per request."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    sections: list[PlanSection] = Field(
        min_length=2,
        max_length=3,
        validation_alias=AliasChoices("sections", "plan"),
    )
    fallback: bool = False

    @property
    def queries(self) -> list[str]:
        return [query for section in self.sections for query in section.queries]

    @property
    def total_queries(self) -> int:
        return len(self.queries)

    def summary(self) -> str:
        return "\n".join(
            f'{idx}. {section.title}: "{section.queries[0]}"'
            for idx, section in enumerate(self.sections, 1)
        )


class SearchResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str = ""
    url: str
    content: str = ""
    published_date: str = ""
    favicon: str = ""


class ContentResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str
    title: str = ""
    content: str = ""
    published_date: str = ""
    favicon: str = ""


# --- Tool boundary ---


class WebSearchArgs(BaseModel):
    query: str = Field(min_length=1, max_length=MAX_QUERY_CHARS, description="The search query to achieve the todo")
    category: SearchCategory | None = Field(
        default=None, description="The category of the search if relevant"
    )


class CodeRunnerArgs(BaseModel):
    title: str = Field(min_length=1, description="The title of what you are running the code for")
    code: str = Field(min_length=1, description="The Python code to run with proper syntax and imports")


class CodeRunnerOutput(BaseModel):
    result: str = ""
    charts: list[dict[str, Any]] = Field(default_factory=list)


class WebSearchCall(BaseModel):
    model_config = ConfigDict(frozen=True)

    tool_name: Literal["webSearch"] = "webSearch"
    step_index: int
    arguments: WebSearchArgs
    result: list[SearchResult] = Field(default_factory=list)
    error: str | None = None


class CodeRunnerCall(BaseModel):
    model_config = ConfigDict(frozen=True)

    tool_name: Literal["codeRunner"] = "codeRunner"
    step_index: int
    arguments: CodeRunnerArgs
    result: CodeRunnerOutput | None = None
    error: str | None = None


ToolCallRecord = Annotated[Union[WebSearchCall, CodeRunnerCall], Field(discriminator="tool_name")]


class ResearchReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    sources: list[SearchResult] = Field(default_factory=list)
    tool_results: list[ToolCallRecord] = Field(default_factory=list)
    charts: list[dict[str, Any]] = Field(default_factory=list)
    plan: ResearchPlan
    degraded_stages: list[str] = Field(default_factory=list)
