"""
Token accounting for a single model invocation.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class TokenUsage:
    """Token counts reported by the completion endpoint.

    Counts are taken from the provider response as-is, never estimated.
    """
    input_tokens: int
    output_tokens: int

    @property
    def total_tokens(self) -> int:
        """Total tokens used (input + output)."""
        return self.input_tokens + self.output_tokens
