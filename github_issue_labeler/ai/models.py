"""Pydantic models for prompts, completions and inference results."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from ..github_client.models import GitHubIssue

SET_LABELS_TOOL = "setLabels"


class ToolCall(BaseModel):
    """A function call emitted by (or replayed to) the model."""

    id: str = ""
    name: str
    arguments: str = Field(description="JSON encoded call arguments")


class PromptMessage(BaseModel):
    """A role-tagged block of the labeling prompt."""

    model_config = ConfigDict(frozen=True)

    role: Literal["system", "user", "assistant", "tool"]
    content: str = ""
    tool_calls: list[ToolCall] = Field(default_factory=list)

    def to_openai(self) -> dict[str, Any]:
        """Chat completions wire format."""
        message: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_calls:
            message["tool_calls"] = [
                {
                    "id": call.id,
                    "type": "function",
                    "function": {"name": call.name, "arguments": call.arguments},
                }
                for call in self.tool_calls
            ]
        return message


class LabelingPrompt(BaseModel):
    """Everything needed to ask the model for labels."""

    model: str
    messages: list[PromptMessage]
    label_names: list[str] = Field(
        description="Enumeration of valid labels the output schema allows"
    )
    history: list[GitHubIssue] = Field(
        description="History issues that survived token-budget pruning"
    )
    token_count: int
    token_limit: int
    rebuilds: int = Field(0, description="Number of pruning rounds performed")

    def tools(self) -> list[dict[str, Any]]:
        """Tool definition constraining the answer to known labels."""
        return [
            {
                "type": "function",
                "function": {
                    "name": SET_LABELS_TOOL,
                    "description": "Label the GitHub issue with the given labels.",
                    "parameters": {
                        "type": "object",
                        "properties": {
                            "labels": {
                                "type": "array",
                                "items": {"type": "string", "enum": self.label_names},
                            }
                        },
                        "required": ["labels"],
                    },
                },
            }
        ]


class TokenUsage(BaseModel):
    """Token accounting reported by the provider."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class CompletionChoice(BaseModel):
    """One completion alternative."""

    content: str | None = None
    tool_calls: list[ToolCall] = Field(default_factory=list)
    logprobs: list[float] | None = Field(
        None, description="Per-token log probabilities, when requested"
    )


class CompletionResponse(BaseModel):
    """Provider-neutral chat completion response."""

    choices: list[CompletionChoice]
    usage: TokenUsage = Field(default_factory=TokenUsage)
    raw: str = Field("", description="Provider payload, kept for debugging")


class CompletionOptions(BaseModel):
    """Generation options sent with every labeling request."""

    temperature: float = 0.0
    logprobs: bool = True


class SanitizedLabels(BaseModel):
    """Result of filtering model output against the repository."""

    labels: list[str] = Field(description="Labels safe to apply, in model order")
    disabled_labels: list[str] = Field(
        description="Repository labels that may never be applied automatically"
    )
    unknown_labels: list[str] = Field(
        default_factory=list,
        description="Model output that does not exist in the repository",
    )


class InferenceResult(BaseModel):
    """Outcome of one Infer call."""

    set_labels: list[str] = Field(default_factory=list)
    disabled_labels: list[str] = Field(default_factory=list)
    tokens_used: int = 0
