"""
Shared fixtures: a scripted chat model standing in for the LLM.
"""

import threading

import pytest

from arch_provider.data_repository import DataRepository
from arch_provider.settings import ProviderSettings

DOC_MARKER = "software architecture documentation"
CODE_MARKER = "Packages of a software project"
AGGREGATION_MARKER = "possible component names"


class ScriptedChatModel:
    """
    Picks the reply by looking at the first user message of the conversation
    (which prompt family is running) and at how many turns were already sent.
    Thread-safe, since both evidence branches call it concurrently.
    """

    def __init__(self, scripts, fail_on=None):
        self.scripts = scripts
        self.fail_on = fail_on or {}
        self.calls = []
        self._lock = threading.Lock()

    def invoke(self, messages):
        messages = list(messages)
        with self._lock:
            self.calls.append(messages)
        first = str(messages[0].content)
        stage = len(messages) // 2
        for marker, error in self.fail_on.items():
            if marker in first:
                raise error
        for marker, replies in self.scripts.items():
            if marker in first:
                return replies[stage]
        raise AssertionError(f"Unexpected prompt: {first[:80]!r}")

    def calls_for(self, marker):
        return [c for c in self.calls if marker in str(c[0].content)]


@pytest.fixture
def repository():
    return DataRepository()


@pytest.fixture
def openai_settings():
    return ProviderSettings(model="gpt-4o-mini", openai_api_key="sk-test")
