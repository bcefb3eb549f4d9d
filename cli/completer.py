"""Custom completer for the FileShare CLI with local file autocompletion."""

from pathlib import Path
from typing import Iterable

from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

from cli.constants import COMMANDS


class FileShareCompleter(Completer):
    """
    Custom completer that provides:
    - Command name completion for the first token
    - Local file path completion for the 'upload' command
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

        if tokens[0].lower() != "upload":
            return

        current_word = "" if is_typing_new_token else tokens[-1]
        already_typed = set(tokens[1:])
        if not is_typing_new_token:
            already_typed.discard(current_word)

        yield from self._complete_paths(current_word, already_typed)

    def _complete_commands(self, partial: str) -> Iterable[Completion]:
        """Complete command names matching the partial input."""
        partial_lower = partial.lower()
        for cmd in COMMANDS:
            if cmd.startswith(partial_lower):
                yield Completion(cmd, start_position=-len(partial))

    def _complete_paths(self, partial: str, exclude: set) -> Iterable[Completion]:
        """
        Complete file and directory paths relative to the current directory.

        Directories are offered with a trailing '/' so completion can descend.
        """
        if "/" in partial:
            base, prefix = partial.rsplit("/", 1)
            directory = Path(base or "/")
            shown_base = f"{base}/"
        else:
            directory, prefix, shown_base = Path.cwd(), partial, ""

        if not directory.is_dir():
            return

        try:
            entries = sorted(directory.iterdir())
        except OSError:
            return

        for item in entries:
            if not item.name.startswith(prefix) or item.name.startswith("."):
                continue
            candidate = f"{shown_base}{item.name}"
            if item.is_dir():
                candidate += "/"
            elif candidate in exclude:
                continue
            yield Completion(candidate, start_position=-len(partial))
