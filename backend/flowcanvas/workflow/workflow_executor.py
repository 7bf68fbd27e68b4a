"""
Workflow Executor — run every LLM node of a canvas with LangGraph.

The canvas graph is validated, its LLM nodes are put in topological
order and chained into a ``StateGraph``; each graph node delegates to
``LlmNodeRunner.run`` so upstream outputs are written to the editor
before downstream nodes read them.

Usage::

    executor = WorkflowExecutor(editor, ChatModelInvoker(chat_model))
    result = await executor.run()
    result["outputs"]   # {node_id: text}
    result["errors"]    # {node_id: reason}
"""

from logging import getLogger
from typing import Annotated, Any, Dict, List, Optional, TypedDict

from langgraph.graph import END, START, StateGraph
from langgraph.graph.state import CompiledStateGraph

from flowcanvas.llm.llm_client import LlmInvoker
from flowcanvas.workflow.connection_validator import topological_order
from flowcanvas.workflow.exceptions import WorkflowValidationError
from flowcanvas.workflow.nodes.model_nodes import LlmNodeRunner
from flowcanvas.workflow.workflow_editor import WorkflowEditor
from flowcanvas.workflow.workflow_model import NodeType

logger = getLogger(__name__)


def _merge(left: Dict[str, str], right: Dict[str, str]) -> Dict[str, str]:
    return {**(left or {}), **(right or {})}


class RunState(TypedDict):
    outputs: Annotated[Dict[str, str], _merge]
    errors: Annotated[Dict[str, str], _merge]


class WorkflowExecutor:
    """Compile the editor's graph into a LangGraph and execute it."""

    def __init__(
        self,
        editor: WorkflowEditor,
        invoker: LlmInvoker,
        runner: Optional[LlmNodeRunner] = None,
    ) -> None:
        self._editor = editor
        self._runner = runner or LlmNodeRunner(editor, invoker)
        self._graph: Optional[CompiledStateGraph] = None
        self._order: List[str] = []

    # ========================================================================
    # Compilation
    # ========================================================================

    def compile(self) -> Optional[CompiledStateGraph]:
        """Build the execution graph. ``None`` when there are no LLM nodes.

        Raises:
            WorkflowValidationError: If the canvas fails validation.
        """
        check = self._editor.validate()
        if not check.valid:
            raise WorkflowValidationError(check.errors)

        llm_nodes = [
            n for n in topological_order(self._editor.nodes, self._editor.edges)
            if n.node_type == NodeType.LLM_INVOCATION
        ]
        self._order = [n.id for n in llm_nodes]

        if not llm_nodes:
            self._graph = None
            logger.info(f"Workflow '{self._editor.workflow_name}' has no LLM nodes to run")
            return None

        builder = StateGraph(RunState)
        step_names = []
        for index, node in enumerate(llm_nodes):
            step_name = f"llm_{index}"
            builder.add_node(step_name, self._make_node_function(node.id, node.label))
            step_names.append(step_name)

        builder.add_edge(START, step_names[0])
        for current, following in zip(step_names, step_names[1:]):
            builder.add_edge(current, following)
        builder.add_edge(step_names[-1], END)

        self._graph = builder.compile()
        logger.info(
            f"Workflow '{self._editor.workflow_name}' compiled: "
            f"{len(step_names)} LLM node(s)"
        )
        return self._graph

    # ========================================================================
    # Execution
    # ========================================================================

    async def run(self) -> Dict[str, Any]:
        """Compile the current graph and run every LLM node once, upstream first.

        The graph is rebuilt on each call so edits made since the last
        run are validated and picked up.
        """
        self.compile()
        if self._graph is None:
            return {"outputs": {}, "errors": {}}

        logger.info(f"Running workflow '{self._editor.workflow_name}' …")
        final_state = await self._graph.ainvoke({"outputs": {}, "errors": {}})
        return dict(final_state)

    @property
    def order(self) -> List[str]:
        """LLM node ids in execution order (after ``compile``)."""
        return list(self._order)

    @property
    def graph(self) -> Optional[CompiledStateGraph]:
        return self._graph

    # ========================================================================
    # Internal helpers
    # ========================================================================

    def _make_node_function(self, node_id: str, label: str):
        runner = self._runner

        async def _node_fn(state: RunState) -> Dict[str, Any]:
            result = await runner.run(node_id)
            if result.success:
                return {"outputs": {node_id: result.output or ""}}
            logger.warning(f"LLM node '{label}' ({node_id}) failed: {result.error}")
            return {"errors": {node_id: result.error or "Unknown error occurred"}}

        _node_fn.__name__ = f"node_{node_id}"
        _node_fn.__qualname__ = _node_fn.__name__
        return _node_fn
