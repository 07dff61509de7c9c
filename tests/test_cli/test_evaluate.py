"""Tests for offline accuracy evaluation."""

import io

import pytest
from rich.console import Console

from github_issue_labeler.ai.context import ContextBuilder
from github_issue_labeler.ai.retry import RetryPolicy
from github_issue_labeler.errors import ProviderError
from github_issue_labeler.evaluate import EvaluationStats, print_stats, run_evaluation
from github_issue_labeler.service import LabelerService


class TestEvaluationStats:
    """Test EvaluationStats class."""

    def test_record(self) -> None:
        stats = EvaluationStats()

        stats.record(["bug", "ui"], ["bug", "docs"], tokens=100, latency=1.5)
        stats.record(["docs"], [], tokens=50, latency=0.5)

        assert stats.n_issues == 2
        assert stats.hits == ["bug"]
        assert stats.false_adds == ["docs"]
        assert stats.false_removes == ["ui", "docs"]
        assert stats.tokens == 150
        assert stats.rate(stats.false_removes) == pytest.approx(100.0)
        assert stats.mean_latency() == pytest.approx(1.0)

    def test_top(self) -> None:
        assert EvaluationStats.top(["a", "b", "a", "c", "a", "b"], 2) == [("a", 3), ("b", 2)]

    def test_empty_rates(self) -> None:
        stats = EvaluationStats()
        assert stats.rate(stats.hits) == 0.0
        assert stats.mean_latency() == 0.0

    def test_print(self) -> None:
        stats = EvaluationStats()
        stats.record(["bug"], ["bug"], tokens=10, latency=0.1)
        output = io.StringIO()

        print_stats(stats, Console(file=output, width=120))

        text = output.getvalue()
        assert "False adds" in text
        assert "bug: 1" in text


class TestRunEvaluation:
    """Test run_evaluation function."""

    @pytest.mark.asyncio
    async def test_scores_recent_issues_in_test_mode(
        self,
        make_issue,
        make_label,
        fake_client_class,
        fake_resolver_class,
        scripted_completion_class,
        tool_response,
        cost_counter,
    ) -> None:
        client = fake_client_class(
            issues=[make_issue(1, labels=["bug"]), make_issue(2, labels=["docs"])],
            labels=[make_label("bug"), make_label("docs")],
        )
        completion = scripted_completion_class(
            tool_response('{"labels": ["bug"]}', 10),
            ProviderError("bad", status_code=400),
        )
        service = LabelerService(
            resolver=fake_resolver_class(client),
            completion=completion,
            context_builder=ContextBuilder(cost_counter),
            retry_policy=RetryPolicy(max_attempts=1),
        )

        stats = await run_evaluation(service, "42", "acme", "widgets", n_issues=2, concurrency=1)

        assert stats.n_issues == 1
        assert stats.failures == 1
        assert stats.tokens == 10
        assert all("labels:" not in p.messages[-1].content for p in completion.prompts)
