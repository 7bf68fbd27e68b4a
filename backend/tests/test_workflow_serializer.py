"""Tests for export / import of the portable workflow document."""

import json

import pytest

from flowcanvas.workflow.connection_validator import WORKFLOW_CYCLE_ERROR
from flowcanvas.workflow.exceptions import WorkflowImportError
from flowcanvas.workflow.workflow_model import LlmInvocationData, NodeType
from flowcanvas.workflow.workflow_serializer import (
    DEFAULT_EXPORT_NAME,
    parse_document,
    read_file,
)

TEXT = NodeType.TEXT_SOURCE
IMAGE = NodeType.IMAGE_SOURCE
LLM = NodeType.LLM_INVOCATION


@pytest.fixture
def populated(editor):
    text = editor.add_node(TEXT, {"x": 10, "y": 20})
    image = editor.add_node(IMAGE, {"x": 10, "y": 220})
    llm = editor.add_node(LLM, {"x": 400, "y": 100})
    editor.update_node_data(text.id, text="Describe the picture")
    editor.connect(text.id, llm.id, "input-0")
    editor.connect(image.id, llm.id, "input-2")
    editor.set_workflow_name("Captioner")
    return editor


class TestExport:

    def test_document_shape_uses_wire_names(self, populated):
        document = json.loads(populated.export_json())

        assert set(document) == {"name", "nodes", "edges", "exportedAt"}
        assert document["name"] == "Captioner"
        text_node = document["nodes"][0]
        assert text_node["type"] == "textNode"
        assert text_node["position"] == {"x": 10.0, "y": 20.0}
        assert text_node["data"] == {"label": "Text", "isEditing": False, "text": "Describe the picture"}
        assert text_node["draggable"] is True
        edge = document["edges"][1]
        assert edge["targetHandle"] == "input-2"
        assert edge["style"] == {"stroke": "#10b981", "strokeWidth": 3}

    def test_unnamed_workflow_exports_default_name(self, editor):
        assert json.loads(editor.export_json())["name"] == DEFAULT_EXPORT_NAME

    def test_export_does_not_touch_history(self, populated):
        before = len(populated.history)
        populated.export_json()
        assert len(populated.history) == before


class TestImport:

    def test_round_trip(self, populated, editor_config):
        from flowcanvas.workflow.workflow_editor import WorkflowEditor

        target = WorkflowEditor(config=editor_config)
        target.import_json(populated.export_json())

        assert target.nodes == populated.nodes
        assert target.edges == populated.edges
        assert target.workflow_name == "Captioner"

    def test_import_records_one_entry_and_clears_redo(self, populated, editor):
        raw = populated.export_json()
        other = editor.__class__(config=editor.config)
        other.add_node(TEXT)
        other.add_node(TEXT)
        other.undo()

        other.import_json(raw)

        assert len(other.history) == 3
        assert other.history.redo_stack == []
        assert other.workflow_id is None

    def test_accepts_bytes_and_dicts(self, populated):
        raw = populated.export_json()
        assert len(parse_document(raw.encode("utf-8")).nodes) == 3
        assert len(parse_document(json.loads(raw)).edges) == 2

    def test_keeps_unknown_payload_fields(self):
        raw = {
            "name": "Legacy",
            "nodes": [
                {
                    "id": "llmNode-1",
                    "type": "llmNode",
                    "position": {"x": 0, "y": 0},
                    "data": {"label": "Any LLM", "output": "hi", "model": "gpt-4o"},
                }
            ],
            "edges": [],
        }
        document = parse_document(raw)
        (node,) = document.nodes
        assert isinstance(node.data, LlmInvocationData)
        assert node.data.output == "hi"
        assert node.data.model_dump(by_alias=True)["model"] == "gpt-4o"

    def test_non_string_name_becomes_empty(self):
        document = parse_document({"name": 5, "nodes": [], "edges": []})
        assert document.name == ""

    def test_cyclic_graph_is_accepted_but_flagged(self, editor):
        raw = {
            "name": "Loop",
            "nodes": [
                {"id": "a", "type": "llmNode"},
                {"id": "b", "type": "llmNode"},
            ],
            "edges": [
                {"id": "ab", "source": "a", "target": "b", "targetHandle": "input-0"},
                {"id": "ba", "source": "b", "target": "a", "targetHandle": "input-0"},
            ],
        }
        editor.import_json(raw)
        assert len(editor.edges) == 2
        assert editor.validate().errors == [WORKFLOW_CYCLE_ERROR]


class TestImportFailures:

    @pytest.mark.parametrize(
        "raw, message",
        [
            ("{not json", "Error parsing JSON file"),
            ("[1, 2]", "Invalid workflow file: expected a JSON object"),
            ({"edges": []}, "Invalid workflow file: missing or invalid nodes"),
            ({"nodes": {}, "edges": []}, "Invalid workflow file: missing or invalid nodes"),
            ({"nodes": []}, "Invalid workflow file: missing or invalid edges"),
            ({"nodes": [], "edges": "x"}, "Invalid workflow file: missing or invalid edges"),
            (
                {"nodes": [{"id": "n", "type": "videoNode"}], "edges": []},
                "Invalid workflow file:",
            ),
            (
                {"nodes": [], "edges": [{"id": "e", "source": "a"}]},
                "Invalid workflow file:",
            ),
        ],
    )
    def test_malformed_document_is_rejected(self, raw, message):
        with pytest.raises(WorkflowImportError, match=message):
            parse_document(raw)

    def test_failed_import_leaves_editor_untouched(self, populated):
        before = (populated.nodes, populated.edges, populated.workflow_name, len(populated.history))
        with pytest.raises(WorkflowImportError):
            populated.import_json('{"nodes": []}')
        after = (populated.nodes, populated.edges, populated.workflow_name, len(populated.history))
        assert after == before


class TestFiles:

    def test_export_to_file_and_read_back(self, populated, tmp_path):
        path = populated.export_to_file(tmp_path / "exports")

        assert path.parent == tmp_path / "exports"
        assert path.name.startswith("Captioner-")
        assert path.suffix == ".json"
        document = read_file(path)
        assert document.name == "Captioner"
        assert [n.id for n in document.nodes] == [n.id for n in populated.nodes]

    def test_read_missing_file(self, tmp_path):
        with pytest.raises(WorkflowImportError, match="Error reading file"):
            read_file(tmp_path / "missing.json")
