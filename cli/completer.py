"""Custom completer for FileVault CLI with file autocompletion."""

from pathlib import Path
from typing import Iterable

from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

from cli.constants import COMMANDS, SEARCH_OPTIONS
from common.logging_config import get_logger

logger = get_logger(__name__)

FILE_COMMANDS = ("add", "upload")


class FileVaultCompleter(Completer):
    """
    Custom completer that provides:
    - Command name completion for the first token
    - Local file path completion for 'add' and 'upload'
    - Option completion for 'search'
    """

    def get_completions(
        self, document: Document, complete_event
    ) -> Iterable[Completion]:
        text = document.text_before_cursor
        tokens = text.split()

        is_typing_new_token = text.endswith(" ") or not tokens

        if not tokens or (len(tokens) == 1 and not is_typing_new_token):
            yield from self._complete_commands(tokens[0] if tokens else "")
            return

        command = tokens[0].lower()
        current_word = "" if is_typing_new_token else tokens[-1]

        if command in FILE_COMMANDS:
            already_typed = set(tokens[1:])
            if not is_typing_new_token:
                already_typed.discard(current_word)
            yield from self._complete_paths(current_word, already_typed)
        elif command == "search" and (not current_word or current_word.startswith("-")):
            yield from self._complete_search_options(current_word, set(tokens[1:]))

    def _complete_commands(self, partial: str) -> Iterable[Completion]:
        """Complete command names matching the partial input."""
        partial_lower = partial.lower()
        for cmd in COMMANDS:
            if cmd.startswith(partial_lower):
                yield Completion(cmd, start_position=-len(partial))

    def _complete_search_options(self, partial: str, used: set) -> Iterable[Completion]:
        for option in SEARCH_OPTIONS:
            if option in used:
                continue
            if option.startswith(partial):
                yield Completion(option, start_position=-len(partial))

    def _complete_paths(self, partial: str, exclude: set) -> Iterable[Completion]:
        """
        Complete local file and directory paths.

        Directories complete with a trailing slash so completion can continue
        into them. Hidden entries are only offered once the user types a dot.
        """
        if "/" in partial:
            directory_text, name_prefix = partial.rsplit("/", 1)
            directory_text += "/"
        else:
            directory_text, name_prefix = "", partial

        directory = Path(directory_text).expanduser() if directory_text else Path.cwd()
        if not directory.is_dir():
            return

        try:
            entries = sorted(directory.iterdir(), key=lambda p: p.name.lower())
        except OSError as e:
            logger.debug(f"Cannot list {directory} for completion: {e}")
            return

        for entry in entries:
            if entry.name.startswith(".") and not name_prefix.startswith("."):
                continue
            if not entry.name.startswith(name_prefix):
                continue
            candidate = f"{directory_text}{entry.name}"
            if entry.is_dir():
                candidate += "/"
            elif candidate in exclude:
                continue
            yield Completion(candidate, start_position=-len(partial))
