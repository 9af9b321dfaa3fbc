"""
SDK for the writing assistant.

Provides the language model invoker.
"""

from .openai_client import ModelInvocation, ModelInvoker

__all__ = ["ModelInvocation", "ModelInvoker"]
