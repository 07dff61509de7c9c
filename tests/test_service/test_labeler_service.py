"""Tests for the inference orchestrator."""

import asyncio

import pytest

from github_issue_labeler.ai.context import ContextBuilder
from github_issue_labeler.ai.models import CompletionChoice, CompletionResponse, ToolCall
from github_issue_labeler.ai.prompts import DISABLE_SENTINEL
from github_issue_labeler.ai.retry import RetryPolicy
from github_issue_labeler.errors import (
    ConfigError,
    ProtocolError,
    ProviderError,
    TransientProviderError,
)
from github_issue_labeler.github_client.models import RepoConfig
from github_issue_labeler.service import LabelerService

FAST_RETRIES = RetryPolicy(max_attempts=3, initial_delay=0.001, max_delay=0.001)


@pytest.fixture
def repo(make_issue, make_label, fake_client_class):
    """Repository with three labeled history issues and one unlabeled target."""
    issues = [
        make_issue(1, labels=["bug"]),
        make_issue(2, labels=["docs"]),
        make_issue(3, labels=["bug", "ui"]),
        make_issue(4, labels=["ui"], title="Button is misaligned"),
    ]
    labels = [
        make_label("bug", "Something is broken"),
        make_label("docs"),
        make_label("ui"),
        make_label("roadmap", DISABLE_SENTINEL),
        make_label("release/1.0"),
    ]
    return fake_client_class(
        issues=issues, labels=labels, repo_config=RepoConfig(exclude=["^release/"])
    )


@pytest.fixture
def make_service(repo, fake_resolver_class, cost_counter):
    def _make(completion, **kwargs) -> LabelerService:
        kwargs.setdefault("retry_policy", FAST_RETRIES)
        return LabelerService(
            resolver=fake_resolver_class(repo),
            completion=completion,
            context_builder=ContextBuilder(cost_counter),
            **kwargs,
        )

    return _make


class TestInfer:
    """Test LabelerService.infer."""

    @pytest.mark.asyncio
    async def test_returns_sanitized_labels(
        self, make_service, scripted_completion_class, tool_response
    ) -> None:
        completion = scripted_completion_class(
            tool_response('{"labels": ["ui", "roadmap", "release/1.0", "ghost"]}', 321)
        )
        service = make_service(completion)

        result = await service.infer("42", "acme", "widgets", 4)

        assert result.set_labels == ["ui"]
        assert result.disabled_labels == ["roadmap", "release/1.0"]
        assert result.tokens_used == 321

    @pytest.mark.asyncio
    async def test_prompt_contents(
        self, make_service, scripted_completion_class, tool_response
    ) -> None:
        completion = scripted_completion_class(tool_response())
        service = make_service(completion)

        await service.infer("42", "acme", "widgets", 4)

        prompt = completion.prompts[0]
        assert [issue.number for issue in prompt.history] == [1, 2, 3]
        assert "labels: ui" in prompt.messages[-1].content
        assert prompt.label_names == ["bug", "docs", "ui", "roadmap", "release/1.0"]

    @pytest.mark.asyncio
    async def test_test_mode_hides_target_labels(
        self, make_service, scripted_completion_class, tool_response
    ) -> None:
        completion = scripted_completion_class(tool_response())
        service = make_service(completion)

        await service.infer("42", "acme", "widgets", 4, test_mode=True)

        target = completion.prompts[0].messages[-1].content
        assert "Button is misaligned" in target
        assert "labels:" not in target

    @pytest.mark.asyncio
    async def test_string_encoded_labels_accepted(
        self, make_service, scripted_completion_class, tool_response
    ) -> None:
        completion = scripted_completion_class(tool_response('{"labels": "bug ui"}'))
        service = make_service(completion)

        result = await service.infer("42", "acme", "widgets", 4)

        assert result.set_labels == ["bug", "ui"]

    @pytest.mark.asyncio
    async def test_transient_errors_retried(
        self, make_service, scripted_completion_class, tool_response
    ) -> None:
        completion = scripted_completion_class(
            ProviderError("overloaded", status_code=503),
            ProviderError("rate limited", status_code=429),
            tool_response(),
        )
        service = make_service(completion)

        result = await service.infer("42", "acme", "widgets", 4)

        assert result.set_labels == ["bug"]
        assert len(completion.prompts) == 3

    @pytest.mark.asyncio
    async def test_retry_ceiling(self, make_service, scripted_completion_class) -> None:
        completion = scripted_completion_class(
            *[ProviderError("down", status_code=500) for _ in range(3)]
        )
        service = make_service(completion)

        with pytest.raises(TransientProviderError):
            await service.infer("42", "acme", "widgets", 4)

    @pytest.mark.asyncio
    async def test_client_error_not_retried(
        self, make_service, scripted_completion_class
    ) -> None:
        completion = scripted_completion_class(ProviderError("bad", status_code=400))
        service = make_service(completion)

        with pytest.raises(ProviderError):
            await service.infer("42", "acme", "widgets", 4)

        assert len(completion.prompts) == 1

    @pytest.mark.asyncio
    async def test_deadline(self, make_service, scripted_completion_class) -> None:
        completion = scripted_completion_class(
            *[ProviderError("down", status_code=500) for _ in range(100)]
        )
        service = make_service(
            completion, retry_policy=RetryPolicy(max_attempts=None, initial_delay=5.0)
        )

        with pytest.raises(TimeoutError):
            await service.infer("42", "acme", "widgets", 4, timeout=0.05)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "choices",
        [
            [],
            [
                CompletionChoice(tool_calls=[ToolCall(name="setLabels", arguments="{}")]),
                CompletionChoice(tool_calls=[ToolCall(name="setLabels", arguments="{}")]),
            ],
            [CompletionChoice(content="bug")],
            [CompletionChoice(tool_calls=[ToolCall(name="other", arguments="{}")])],
            [
                CompletionChoice(
                    tool_calls=[
                        ToolCall(name="setLabels", arguments='{"labels": []}'),
                        ToolCall(name="setLabels", arguments='{"labels": []}'),
                    ]
                )
            ],
            [CompletionChoice(tool_calls=[ToolCall(name="setLabels", arguments="[")])],
        ],
    )
    async def test_malformed_responses_are_protocol_errors(
        self, make_service, scripted_completion_class, choices
    ) -> None:
        response = CompletionResponse(choices=choices, raw='{"id": "raw-payload"}')
        service = make_service(scripted_completion_class(response))

        with pytest.raises(ProtocolError) as exc_info:
            await service.infer("42", "acme", "widgets", 4)

        assert exc_info.value.raw == '{"id": "raw-payload"}'
        assert "acme/widgets#4" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_unparsable_arguments_report_raw_once(
        self, make_service, scripted_completion_class
    ) -> None:
        choices = [CompletionChoice(tool_calls=[ToolCall(name="setLabels", arguments="[")])]
        response = CompletionResponse(choices=choices, raw='{"id": "raw-payload"}')
        service = make_service(scripted_completion_class(response))

        with pytest.raises(ProtocolError) as exc_info:
            await service.infer("42", "acme", "widgets", 4)

        message = str(exc_info.value)
        assert message.count(", raw: ") == 1
        assert message.endswith(', raw: {"id": "raw-payload"}')

    @pytest.mark.asyncio
    async def test_metadata_cached_between_calls(
        self, repo, make_service, scripted_completion_class, tool_response
    ) -> None:
        completion = scripted_completion_class(tool_response(), tool_response())
        service = make_service(completion)

        await service.infer("42", "acme", "widgets", 4)
        await service.infer("42", "acme", "widgets", 3)

        assert repo.calls.count("list_issues") == 1
        assert repo.calls.count("list_labels") == 1
        assert repo.calls.count("get_issue") == 2
        assert repo.calls.count("get_repo_config") == 2

    @pytest.mark.asyncio
    async def test_concurrent_calls_share_metadata_fetch(
        self, repo, make_service, scripted_completion_class, tool_response
    ) -> None:
        completion = scripted_completion_class(*[tool_response() for _ in range(5)])
        service = make_service(completion)

        await asyncio.gather(
            *(service.infer("42", "acme", "widgets", 4) for _ in range(5))
        )

        assert repo.calls.count("list_issues") == 1
        assert repo.calls.count("list_labels") == 1

    @pytest.mark.asyncio
    async def test_resolver_failure_is_config_error(
        self, make_service, scripted_completion_class
    ) -> None:
        service = make_service(scripted_completion_class())

        def broken(install_id):
            raise RuntimeError("bad key")

        service.resolver.client_for_install = broken

        with pytest.raises(ConfigError):
            await service.infer("42", "acme", "widgets", 4)
