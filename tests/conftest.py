"""Shared fixtures and stubs for the copilot test suite."""

import pytest

from data_types import ExecutionResult, GenerationResult, KnowledgeCorpus
from knowledge import KnowledgeIndex


# ================================================================================
# Collaborator Stubs
# ================================================================================


class StubClient:
    """Generation client returning scripted results, one per call."""

    def __init__(self, results):
        self.results = list(results)
        self.requests = []

    def generate(self, request):
        self.requests.append(request)
        if len(self.results) > 1:
            return self.results.pop(0)
        return self.results[0]


class StubBridge:
    """Execution bridge returning scripted results, one per call."""

    def __init__(self, results, summary=""):
        self.results = list(results)
        self.executed = []
        self.summary = summary

    def execute(self, code):
        self.executed.append(code)
        if len(self.results) > 1:
            return self.results.pop(0)
        return self.results[0]

    def summarize(self):
        return self.summary


def ok_generation(code="var x = 1;"):
    return GenerationResult(success=True, code=code, raw_response="```javascript\n" + code + "\n```")


def failed_execution(error):
    return ExecutionResult(success=False, error=error)


# ================================================================================
# Corpus Fixtures
# ================================================================================


@pytest.fixture
def corpus_dict():
    return {
        "version": "test-1",
        "atoms": [
            {"className": "AVLayer", "member": "opacity", "returnType": "Property",
             "description": "Layer opacity.", "tags": ["opacity", "fade"]},
            {"className": "AVLayer", "member": "position", "returnType": "Property",
             "description": "Layer position.", "tags": ["position", "move"]},
            {"className": "Property", "member": "setValueAtTime", "signature": "(time, newValue)",
             "returnType": "void", "description": "Sets a keyframe.", "tags": ["keyframe", "animate"]},
        ],
        "recipes": [
            {"title": "Fade in selected layer", "code": "layer.opacity.setValueAtTime(0, 0);",
             "tags": ["opacity", "fade"]},
        ],
        "gotchas": [
            {"title": "Collections are 1-based", "description": "comp.layer(1) is the first layer.",
             "tags": ["layer", "index"]},
        ],
    }


@pytest.fixture
def corpus(corpus_dict):
    return KnowledgeCorpus.from_dict(corpus_dict)


@pytest.fixture
def index(corpus):
    return KnowledgeIndex(corpus)
