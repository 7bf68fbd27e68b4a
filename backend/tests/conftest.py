"""Shared fixtures for the workflow engine tests."""

import random

import pytest

from flowcanvas.config import EditorConfig, reset_editor_config
from flowcanvas.workflow.workflow_editor import WorkflowEditor
from flowcanvas.workflow.workflow_store import WorkflowStore


@pytest.fixture(autouse=True)
def _fresh_config():
    reset_editor_config()
    yield
    reset_editor_config()


@pytest.fixture
def editor_config(tmp_path):
    return EditorConfig(workflow_dir=str(tmp_path / "workflows"))


@pytest.fixture
def editor(editor_config):
    return WorkflowEditor(config=editor_config, rng=random.Random(7))


@pytest.fixture
def store(tmp_path):
    return WorkflowStore(storage_dir=tmp_path / "store")
