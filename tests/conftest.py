"""Shared fixtures for textsweep tests."""

import os
from pathlib import Path

import pytest

from textsweep.collaborators import HistoryKind
from textsweep.filesystem import InMemoryDocumentStore
from textsweep.search.models import SearchOptions


class RecordingNotifier:
    """Collects notifications instead of printing them."""

    def __init__(self):
        self.messages = []

    def notify(self, message):
        self.messages.append(message)


class RecordingHistory:
    def __init__(self):
        self.entries = []

    def record(self, kind: HistoryKind, text: str):
        self.entries.append((kind, text))


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Point the home directory at a temp dir and drop TEXTSWEEP_* variables."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setattr("pathlib.Path.home", lambda: home)
    for name in list(os.environ):
        if name.startswith("TEXTSWEEP_"):
            monkeypatch.delenv(name)
    return home


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def history():
    return RecordingHistory()


@pytest.fixture
def literal():
    return SearchOptions()


@pytest.fixture
def literal_case():
    return SearchOptions(match_case=True)


@pytest.fixture
def regex_options():
    return SearchOptions(use_regex=True)


@pytest.fixture
def multiline_options():
    return SearchOptions(use_regex=True, multiline=True)
