"""Tests for FileVaultCompleter."""

import pytest
from prompt_toolkit.document import Document

from cli.completer import FileVaultCompleter
from cli.constants import COMMANDS


@pytest.fixture
def completer():
    """Create a FileVaultCompleter instance."""
    return FileVaultCompleter()


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    """Working directory with a few files, a subdirectory and a hidden file."""
    (tmp_path / 'report.pdf').write_text('content')
    (tmp_path / 'photo.png').write_text('content')
    (tmp_path / '.secret').write_text('content')
    docs = tmp_path / 'docs'
    docs.mkdir()
    (docs / 'notes.txt').write_text('content')
    monkeypatch.chdir(tmp_path)
    return tmp_path


def get_completions_list(completer, text):
    """Helper to get list of completion texts from completer."""
    doc = Document(text, len(text))
    return [c.text for c in completer.get_completions(doc, None)]


class TestCommandCompletion:
    """Tests for command name completion."""

    def test_empty_input_offers_every_command(self, completer):
        assert get_completions_list(completer, '') == COMMANDS

    def test_partial_command(self, completer):
        assert get_completions_list(completer, 'do') == ['download']
        assert get_completions_list(completer, 'cl') == ['clear-queue', 'clear']

    def test_unknown_command_has_no_argument_completions(self, completer, workdir):
        assert get_completions_list(completer, 'stats ') == []


class TestPathCompletion:
    """Tests for local file path completion after add and upload."""

    def test_lists_visible_entries(self, completer, workdir):
        assert get_completions_list(completer, 'add ') == ['docs/', 'photo.png', 'report.pdf']

    def test_partial_name(self, completer, workdir):
        assert get_completions_list(completer, 'upload re') == ['report.pdf']

    def test_hidden_files_need_a_dot(self, completer, workdir):
        assert get_completions_list(completer, 'add .') == ['.secret']

    def test_descends_into_directories(self, completer, workdir):
        assert get_completions_list(completer, 'add docs/') == ['docs/notes.txt']

    def test_already_typed_files_are_skipped(self, completer, workdir):
        assert get_completions_list(completer, 'add report.pdf ') == ['docs/', 'photo.png']

    def test_missing_directory(self, completer, workdir):
        assert get_completions_list(completer, 'add nowhere/x') == []


class TestSearchCompletion:

    def test_options(self, completer):
        assert get_completions_list(completer, 'search report --m') == ['--min-size', '--max-size']

    def test_used_options_are_skipped(self, completer):
        completions = get_completions_list(completer, 'search --type pdf ')
        assert '--type' not in completions
        assert '--from' in completions
