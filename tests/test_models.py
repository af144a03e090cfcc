from __future__ import annotations

import pytest
from pydantic import ValidationError

from extreme_search.models.research import (
    CodeRunnerArgs,
    CodeRunnerCall,
    CodeRunnerOutput,
    ResearchPlan,
    ResearchReport,
    SearchCategory,
    SearchResult,
    WebSearchArgs,
    WebSearchCall,
)


def _section(title: str = "Background of the research topic", query: str = "topic basics 2026"):
    return {"title": title, "todos": [query]}


def test_plan_accepts_model_output_shape():
    plan = ResearchPlan.model_validate({"plan": [_section(), _section("Recent developments in the field")]})

    assert len(plan.sections) == 2
    assert plan.total_queries == 2
    assert plan.fallback is False


@pytest.mark.parametrize("count", [1, 4])
def test_plan_rejects_wrong_section_count(count):
    with pytest.raises(ValidationError):
        ResearchPlan.model_validate({"plan": [_section() for _ in range(count)]})


@pytest.mark.parametrize("title", ["short", "x" * 71])
def test_plan_rejects_title_out_of_bounds(title):
    with pytest.raises(ValidationError):
        ResearchPlan.model_validate({"plan": [_section(title), _section()]})


def test_plan_requires_exactly_one_query_per_section():
    two_queries = {"title": "Background of the research topic", "queries": ["a query", "b query"]}
    with pytest.raises(ValidationError):
        ResearchPlan.model_validate({"plan": [two_queries, _section()]})

    with pytest.raises(ValidationError):
        ResearchPlan.model_validate({"plan": [_section(query="   "), _section()]})


def test_plan_summary_lists_titles_and_queries():
    plan = ResearchPlan.model_validate(
        {"sections": [_section(), _section("Recent developments in the field", "topic news 2026")]}
    )

    assert plan.summary() == (
        '1. Background of the research topic: "topic basics 2026"\n'
        '2. Recent developments in the field: "topic news 2026"'
    )
    assert plan.queries == ["topic basics 2026", "topic news 2026"]


def test_web_search_args_bounds():
    assert WebSearchArgs(query="fusion", category="news").category is SearchCategory.NEWS
    with pytest.raises(ValidationError):
        WebSearchArgs(query="q" * 101)
    with pytest.raises(ValidationError):
        WebSearchArgs(query="fusion", category="blogs")


def test_report_round_trips_tagged_tool_records():
    plan = ResearchPlan.model_validate({"plan": [_section(), _section("Recent developments in the field")]})
    report = ResearchReport(
        text="report",
        sources=[SearchResult(url="https://a.com", title="A")],
        tool_results=[
            WebSearchCall(step_index=0, arguments=WebSearchArgs(query="fusion")),
            CodeRunnerCall(
                step_index=1,
                arguments=CodeRunnerArgs(title="Plot", code="print(1)"),
                result=CodeRunnerOutput(result="1"),
            ),
        ],
        plan=plan,
    )

    restored = ResearchReport.model_validate(report.model_dump(mode="json"))

    assert isinstance(restored.tool_results[0], WebSearchCall)
    assert isinstance(restored.tool_results[1], CodeRunnerCall)
    assert restored.tool_results[1].result.result == "1"
