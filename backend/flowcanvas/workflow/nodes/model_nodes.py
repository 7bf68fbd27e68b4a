"""
Model Nodes — running an LLM invocation node.

Collects what is wired into an LLM node (prompt, system prompt,
images), checks the engine-side preconditions, calls the model
through an ``LlmInvoker`` and writes the result back to the node's
``output``.

Each run takes a request id from a monotonic counter. A response is
applied only if its id is still the latest one issued for that node;
responses from superseded runs are dropped.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from flowcanvas.llm.llm_client import ImageInput, LlmInvoker, LlmRequest, LlmResponse
from flowcanvas.workflow.connection_validator import parse_handle_index
from flowcanvas.workflow.nodes.base import NODE_CAPABILITIES, InputSlot
from flowcanvas.workflow.workflow_model import NodeType

if TYPE_CHECKING:
    from flowcanvas.workflow.workflow_editor import WorkflowEditor

logger = getLogger(__name__)

PROCESSING_PLACEHOLDER = "Processing..."

MISSING_PROMPT_ERROR = (
    "Missing prompt: when using an image node, you must also connect "
    "a text node to provide a prompt."
)
NO_INPUT_ERROR = "No input text found. Please connect a text node to the Prompt input."

_LLM_CAPABILITY = NODE_CAPABILITIES[NodeType.LLM_INVOCATION]


@dataclass
class LlmNodeInputs:
    """Everything wired into one LLM node."""
    prompt: str = ""
    system_prompt: Optional[str] = None
    images: List[ImageInput] = field(default_factory=list)
    has_text_source: bool = False
    has_image_source: bool = False


@dataclass
class LlmRunResult:
    node_id: str
    success: bool
    output: Optional[str] = None
    error: Optional[str] = None
    request_id: Optional[int] = None
    stale: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "node_id": self.node_id,
            "success": self.success,
            "output": self.output,
            "error": self.error,
            "request_id": self.request_id,
            "stale": self.stale,
        }


def gather_inputs(editor: "WorkflowEditor", node_id: str) -> LlmNodeInputs:
    """Read the prompt, system prompt and images feeding ``node_id``.

    Text comes from text nodes' ``text`` and upstream LLM nodes'
    ``output``; slot 1 feeds the system prompt, every other text slot
    the prompt. The first non-empty text per slot wins.
    """
    inputs = LlmNodeInputs()
    for edge in editor.edges_into(node_id):
        source = editor.get_node(edge.source)
        if source is None:
            continue

        if source.node_type == NodeType.IMAGE_SOURCE:
            inputs.has_image_source = True
            image_url = getattr(source.data, "image_url", None)
            if image_url:
                inputs.images.append(ImageInput(node_id=source.id, image_url=image_url))
            continue

        if source.node_type == NodeType.TEXT_SOURCE:
            inputs.has_text_source = True
            text = getattr(source.data, "text", "") or ""
        elif source.node_type == NodeType.LLM_INVOCATION:
            text = getattr(source.data, "output", None) or ""
            if text == PROCESSING_PLACEHOLDER:
                text = ""
        else:
            continue

        slot = _LLM_CAPABILITY.slot_for(parse_handle_index(edge.target_handle))
        if slot == InputSlot.SYSTEM_PROMPT:
            if text and not inputs.system_prompt:
                inputs.system_prompt = text
        elif text and not inputs.prompt:
            inputs.prompt = text
    return inputs


class LlmNodeRunner:
    """Runs LLM nodes of one editor against one invoker.

    Sampling settings default to the editor config and are range-checked
    up front (``ValueError``) so ``run`` never fails on request building.
    """

    def __init__(
        self,
        editor: "WorkflowEditor",
        invoker: LlmInvoker,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> None:
        self._editor = editor
        self._invoker = invoker
        self._temperature = (
            temperature if temperature is not None else editor.config.llm_temperature
        )
        self._max_tokens = max_tokens if max_tokens is not None else editor.config.llm_max_tokens
        if not 0 <= self._temperature <= 2:
            raise ValueError(f"temperature must be within [0, 2], got {self._temperature}")
        if self._max_tokens <= 0:
            raise ValueError(f"max_tokens must be positive, got {self._max_tokens}")
        self._counter = itertools.count(1)
        self._latest: Dict[str, int] = {}

    def latest_request_id(self, node_id: str) -> Optional[int]:
        return self._latest.get(node_id)

    def check_preconditions(self, node_id: str) -> Optional[str]:
        """Return the local rejection reason for running ``node_id``, if any."""
        node = self._editor.get_node(node_id)
        if node is None or node.node_type != NodeType.LLM_INVOCATION:
            return f"LLM node not found: {node_id}"
        inputs = gather_inputs(self._editor, node_id)
        if inputs.has_image_source and not inputs.has_text_source:
            return MISSING_PROMPT_ERROR
        if not inputs.prompt:
            return NO_INPUT_ERROR
        return None

    def build_request(self, node_id: str) -> LlmRequest:
        inputs = gather_inputs(self._editor, node_id)
        return LlmRequest(
            prompt=inputs.prompt,
            system_prompt=inputs.system_prompt,
            temperature=self._temperature,
            max_tokens=self._max_tokens,
            images=inputs.images,
        )

    async def run(self, node_id: str) -> LlmRunResult:
        """Invoke the model for one node and store its output.

        Local precondition failures return without touching the graph.
        Otherwise the node shows ``"Processing..."`` until the call
        resolves, then the response text, or ``""`` on failure.
        """
        error = self.check_preconditions(node_id)
        if error is not None:
            logger.info(f"LLM run for {node_id} rejected: {error}")
            return LlmRunResult(node_id=node_id, success=False, error=error)

        request = self.build_request(node_id)
        request_id = next(self._counter)
        self._latest[node_id] = request_id
        self._editor.update_node_data(node_id, output=PROCESSING_PLACEHOLDER)

        try:
            response = await self._invoker.invoke(request)
        except Exception as e:
            logger.error(f"LLM invoker raised for {node_id}: {type(e).__name__}: {e}")
            response = LlmResponse(success=False, error=str(e) or type(e).__name__)

        if self._latest.get(node_id) != request_id:
            logger.warning(
                f"Discarding stale LLM response for {node_id} "
                f"(request {request_id}, latest {self._latest.get(node_id)})"
            )
            return LlmRunResult(
                node_id=node_id,
                success=response.success,
                output=response.response,
                error=response.error,
                request_id=request_id,
                stale=True,
            )

        if response.success:
            output = response.response or ""
            self._editor.update_node_data(node_id, output=output)
            return LlmRunResult(
                node_id=node_id, success=True, output=output, request_id=request_id,
            )

        self._editor.update_node_data(node_id, output="")
        return LlmRunResult(
            node_id=node_id,
            success=False,
            output="",
            error=response.error or "Unknown error occurred",
            request_id=request_id,
        )
