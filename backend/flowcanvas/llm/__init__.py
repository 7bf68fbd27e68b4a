"""
LLM Package.

Request / response contract for model calls plus a LangChain
chat-model adapter.
"""
from flowcanvas.llm.llm_client import (
    ChatModelInvoker,
    ImageInput,
    LlmInvoker,
    LlmRequest,
    LlmResponse,
    build_messages,
)

__all__ = [
    "ChatModelInvoker",
    "ImageInput",
    "LlmInvoker",
    "LlmRequest",
    "LlmResponse",
    "build_messages",
]
