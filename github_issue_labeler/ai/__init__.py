"""AI processing module for GitHub issue labeling."""

from .context import ContextBuilder, issue_to_text, model_token_limit, truncate_body
from .models import (
    CompletionChoice,
    CompletionOptions,
    CompletionResponse,
    InferenceResult,
    LabelingPrompt,
    PromptMessage,
    SanitizedLabels,
    TokenUsage,
    ToolCall,
)
from .prompts import DISABLE_SENTINEL, LABELING_SYSTEM_PROMPT
from .providers import (
    CompletionProvider,
    EmbeddingProvider,
    OpenAICompletionProvider,
    OpenAIEmbeddingProvider,
)
from .retry import RetryPolicy, retry_transient
from .sanitizer import parse_label_arguments, sanitize_labels
from .tokens import TiktokenCounter, TokenCounter

__all__ = [
    # Models
    "CompletionChoice",
    "CompletionOptions",
    "CompletionResponse",
    "InferenceResult",
    "LabelingPrompt",
    "PromptMessage",
    "SanitizedLabels",
    "TokenUsage",
    "ToolCall",
    # Prompt construction
    "ContextBuilder",
    "TiktokenCounter",
    "TokenCounter",
    "issue_to_text",
    "model_token_limit",
    "truncate_body",
    # Providers
    "CompletionProvider",
    "EmbeddingProvider",
    "OpenAICompletionProvider",
    "OpenAIEmbeddingProvider",
    "RetryPolicy",
    "retry_transient",
    # Output handling
    "parse_label_arguments",
    "sanitize_labels",
    # Prompts
    "DISABLE_SENTINEL",
    "LABELING_SYSTEM_PROMPT",
]
