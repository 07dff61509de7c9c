"""Token accounting against model context windows."""

from collections.abc import Iterable
from typing import Protocol

import tiktoken

from .models import PromptMessage

ENCODING_NAME = "cl100k_base"


class TokenCounter(Protocol):
    """Anything that can count the tokens of a prompt."""

    def count(self, messages: Iterable[PromptMessage]) -> int: ...


class TiktokenCounter:
    """Counts cl100k tokens of message content and tool-call arguments.

    The encoding is loaded eagerly; failing to load it is fatal for the
    process rather than for a single call.
    """

    def __init__(self, encoding_name: str = ENCODING_NAME):
        self.encoding = tiktoken.get_encoding(encoding_name)

    def count_text(self, text: str) -> int:
        return len(self.encoding.encode(text, disallowed_special=()))

    def count(self, messages: Iterable[PromptMessage]) -> int:
        tokens = 0
        for message in messages:
            tokens += self.count_text(message.content)
            for call in message.tool_calls:
                tokens += self.count_text(call.arguments)
        return tokens

    def truncate(self, text: str, max_tokens: int) -> str:
        """Cut text down to at most max_tokens tokens."""
        tokens = self.encoding.encode(text, disallowed_special=())
        if len(tokens) <= max_tokens:
            return text
        return self.encoding.decode(tokens[:max_tokens])
