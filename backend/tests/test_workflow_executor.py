"""Tests for running a whole canvas through the LangGraph executor."""

import asyncio

import pytest

from flowcanvas.workflow.connection_validator import WORKFLOW_CYCLE_ERROR
from flowcanvas.workflow.exceptions import WorkflowValidationError
from flowcanvas.workflow.nodes.model_nodes import NO_INPUT_ERROR
from flowcanvas.workflow.workflow_executor import WorkflowExecutor
from flowcanvas.workflow.workflow_model import Edge, NodeType

from tests.fakes import FakeInvoker, fail, ok

TEXT = NodeType.TEXT_SOURCE
LLM = NodeType.LLM_INVOCATION


@pytest.fixture
def chain(editor):
    """text -> outline -> draft, with the downstream node placed first."""
    draft = editor.add_node(LLM)
    outline = editor.add_node(LLM)
    prompt = editor.add_node(TEXT)
    editor.update_node_data(prompt.id, text="Topic: ponds")
    editor.connect(prompt.id, outline.id, "input-0")
    editor.connect(outline.id, draft.id, "input-0")
    editor.set_workflow_name("Essay")
    return prompt, outline, draft


class TestCompile:

    def test_orders_llm_nodes_upstream_first(self, editor, chain):
        _, outline, draft = chain
        executor = WorkflowExecutor(editor, FakeInvoker())
        assert executor.compile() is not None
        assert executor.order == [outline.id, draft.id]

    def test_invalid_graph_raises(self, editor):
        editor.import_json({
            "name": "Loop",
            "nodes": [{"id": "a", "type": "llmNode"}, {"id": "b", "type": "llmNode"}],
            "edges": [
                {"id": "ab", "source": "a", "target": "b", "targetHandle": "input-0"},
                {"id": "ba", "source": "b", "target": "a", "targetHandle": "input-0"},
            ],
        })
        with pytest.raises(WorkflowValidationError) as exc_info:
            WorkflowExecutor(editor, FakeInvoker()).compile()
        assert exc_info.value.errors == [WORKFLOW_CYCLE_ERROR]

    def test_no_llm_nodes(self, editor):
        editor.add_node(TEXT)
        executor = WorkflowExecutor(editor, FakeInvoker())
        assert executor.compile() is None
        assert asyncio.run(executor.run()) == {"outputs": {}, "errors": {}}


class TestRun:

    def test_outputs_flow_downstream(self, editor, chain):
        _, outline, draft = chain
        invoker = FakeInvoker(ok("1. Still water"), ok("An essay about still water"))

        result = asyncio.run(WorkflowExecutor(editor, invoker).run())

        assert result["outputs"] == {
            outline.id: "1. Still water",
            draft.id: "An essay about still water",
        }
        assert result["errors"] == {}
        assert [r.prompt for r in invoker.requests] == ["Topic: ponds", "1. Still water"]
        assert editor.get_node(draft.id).data.output == "An essay about still water"

    def test_each_run_picks_up_graph_edits(self, editor, chain):
        _, outline, draft = chain
        invoker = FakeInvoker(ok("o1"), ok("d1"), ok("o2"), ok("d2"), ok("p2"))
        executor = WorkflowExecutor(editor, invoker)
        asyncio.run(executor.run())

        polish = editor.add_node(LLM)
        editor.connect(draft.id, polish.id, "input-0")
        result = asyncio.run(executor.run())

        assert executor.order == [outline.id, draft.id, polish.id]
        assert result["outputs"] == {outline.id: "o2", draft.id: "d2", polish.id: "p2"}
        assert result["errors"] == {}

    def test_each_run_drops_deleted_nodes(self, editor, chain):
        _, outline, draft = chain
        invoker = FakeInvoker(ok("o1"), ok("d1"), ok("o2"))
        executor = WorkflowExecutor(editor, invoker)
        asyncio.run(executor.run())

        editor.delete_node(draft.id)
        result = asyncio.run(executor.run())

        assert result == {"outputs": {outline.id: "o2"}, "errors": {}}

    def test_each_run_revalidates(self, editor, chain):
        prompt, outline, _ = chain
        executor = WorkflowExecutor(editor, FakeInvoker(ok("o1"), ok("d1")))
        asyncio.run(executor.run())

        editor.replace_graph(
            editor.nodes,
            editor.edges + (Edge(id="bad", source=outline.id, target=prompt.id),),
            "Essay",
        )
        with pytest.raises(WorkflowValidationError):
            asyncio.run(executor.run())

    def test_node_failures_are_collected(self, editor, chain):
        _, outline, draft = chain
        invoker = FakeInvoker(fail("quota exceeded"))

        result = asyncio.run(WorkflowExecutor(editor, invoker).run())

        assert result["outputs"] == {}
        assert result["errors"] == {
            outline.id: "quota exceeded",
            draft.id: NO_INPUT_ERROR,
        }
        assert len(invoker.requests) == 1
