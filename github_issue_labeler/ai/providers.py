"""OpenAI-backed completion and embedding providers."""

from typing import Protocol

from openai import APIConnectionError, APIError, APIStatusError, AsyncOpenAI
from openai.types.chat import ChatCompletion

from ..errors import ProtocolError, ProviderError
from .models import (
    CompletionChoice,
    CompletionOptions,
    CompletionResponse,
    LabelingPrompt,
    TokenUsage,
    ToolCall,
)


class CompletionProvider(Protocol):
    """Stateless request/response completion call."""

    async def complete(
        self, prompt: LabelingPrompt, options: CompletionOptions
    ) -> CompletionResponse: ...


class EmbeddingProvider(Protocol):
    """Turns text into a fixed-size vector."""

    async def embed(self, text: str, dimensions: int) -> list[float]: ...


def strip_provider_prefix(model: str) -> str:
    """'openai:gpt-4o' -> 'gpt-4o'."""
    return model.split(":", 1)[-1]


def translate_openai_error(e: APIError) -> ProviderError:
    """Map an OpenAI SDK error onto the provider error taxonomy."""
    if isinstance(e, APIStatusError):
        return ProviderError(str(e), status_code=e.status_code)
    if isinstance(e, APIConnectionError):
        return ProviderError(str(e), transient=True)
    return ProviderError(str(e))


def _convert_completion(completion: ChatCompletion) -> CompletionResponse:
    choices = []
    for choice in completion.choices:
        tool_calls = []
        for call in choice.message.tool_calls or []:
            function = getattr(call, "function", None)
            tool_calls.append(
                ToolCall(
                    id=call.id,
                    name=function.name if function else call.type,
                    arguments=function.arguments if function else "",
                )
            )
        logprobs = None
        if choice.logprobs is not None and choice.logprobs.content is not None:
            logprobs = [token.logprob for token in choice.logprobs.content]
        choices.append(
            CompletionChoice(
                content=choice.message.content,
                tool_calls=tool_calls,
                logprobs=logprobs,
            )
        )

    usage = TokenUsage()
    if completion.usage is not None:
        usage = TokenUsage(
            prompt_tokens=completion.usage.prompt_tokens,
            completion_tokens=completion.usage.completion_tokens,
            total_tokens=completion.usage.total_tokens,
        )
    return CompletionResponse(
        choices=choices, usage=usage, raw=completion.model_dump_json()
    )


class OpenAICompletionProvider:
    """Chat completions with a forced setLabels tool call."""

    def __init__(self, client: AsyncOpenAI):
        self.client = client

    async def complete(
        self, prompt: LabelingPrompt, options: CompletionOptions
    ) -> CompletionResponse:
        tools = prompt.tools()
        try:
            completion = await self.client.chat.completions.create(
                model=strip_provider_prefix(prompt.model),
                messages=[message.to_openai() for message in prompt.messages],
                tools=tools,
                tool_choice={
                    "type": "function",
                    "function": {"name": tools[0]["function"]["name"]},
                },
                temperature=options.temperature,
                logprobs=options.logprobs,
            )
        except APIError as e:
            raise translate_openai_error(e) from e
        return _convert_completion(completion)


class OpenAIEmbeddingProvider:
    """OpenAI embeddings with caller-chosen dimensionality."""

    def __init__(self, client: AsyncOpenAI, model: str = "text-embedding-3-small"):
        self.client = client
        self.model = strip_provider_prefix(model)

    async def embed(self, text: str, dimensions: int) -> list[float]:
        try:
            response = await self.client.embeddings.create(
                model=self.model, input=[text], dimensions=dimensions
            )
        except APIError as e:
            raise translate_openai_error(e) from e

        if len(response.data) != 1:
            raise ProtocolError(f"expected 1 embedding, got {len(response.data)}")
        return [float(x) for x in response.data[0].embedding]
