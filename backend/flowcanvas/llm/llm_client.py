"""
LLM Client — the contract between LLM nodes and a model provider.

``LlmRequest`` / ``LlmResponse`` describe one call. Anything with an
``async invoke(request) -> LlmResponse`` method can serve LLM nodes
(``LlmInvoker``). ``ChatModelInvoker`` adapts any LangChain chat model;
provider-specific setup (keys, model names) stays with whoever builds
the chat model.
"""

from __future__ import annotations

from logging import getLogger
from typing import Any, Dict, List, Optional, Protocol, Union

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

logger = getLogger(__name__)

_MODEL_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ImageInput(BaseModel):
    """An image forwarded from a connected image node."""

    model_config = _MODEL_CONFIG

    node_id: str
    image_url: str = Field(min_length=1)


class LlmRequest(BaseModel):
    """One model call."""

    model_config = _MODEL_CONFIG

    prompt: str = Field(min_length=1)
    system_prompt: Optional[str] = None
    temperature: Optional[float] = Field(default=None, ge=0, le=2)
    max_tokens: Optional[int] = Field(default=None, gt=0)
    images: List[ImageInput] = Field(default_factory=list)


class LlmResponse(BaseModel):
    model_config = _MODEL_CONFIG

    success: bool
    response: Optional[str] = None
    error: Optional[str] = None


class LlmInvoker(Protocol):
    async def invoke(self, request: LlmRequest) -> LlmResponse:
        ...


class ChatModelInvoker:
    """Serve ``LlmRequest``s with a LangChain chat model.

    Images become ``image_url`` content blocks ahead of the prompt text.
    Provider exceptions are returned as failed responses.
    """

    def __init__(self, chat_model: BaseChatModel) -> None:
        self._model = chat_model

    async def invoke(self, request: LlmRequest) -> LlmResponse:
        messages = build_messages(request)
        params: Dict[str, Any] = {}
        if request.temperature is not None:
            params["temperature"] = request.temperature
        if request.max_tokens is not None:
            params["max_tokens"] = request.max_tokens

        try:
            reply = await self._model.ainvoke(messages, **params)
        except Exception as e:
            logger.error(f"LLM call failed: {type(e).__name__}: {e}")
            return LlmResponse(success=False, error=str(e) or type(e).__name__)

        return LlmResponse(success=True, response=_content_text(reply.content))


def build_messages(request: LlmRequest) -> List[BaseMessage]:
    """Shape a request into chat messages."""
    messages: List[BaseMessage] = []
    if request.system_prompt:
        messages.append(SystemMessage(content=request.system_prompt))

    if request.images:
        content: List[Union[str, Dict[str, Any]]] = [
            {"type": "image_url", "image_url": {"url": image.image_url}}
            for image in request.images
        ]
        content.append({"type": "text", "text": request.prompt})
        messages.append(HumanMessage(content=content))
    else:
        messages.append(HumanMessage(content=request.prompt))
    return messages


def _content_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    parts = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)
