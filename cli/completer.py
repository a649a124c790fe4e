"""Custom completer for MediaGrid CLI with local path autocompletion."""

import os
from pathlib import Path
from typing import Iterable

from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

from cli.constants import COMMANDS


class MediaGridCompleter(Completer):
    """
    Custom completer that provides:
    - Command name completion for the first token
    - Local file and directory completion for 'upload' arguments
    """

    def get_completions(
        self, document: Document, complete_event
    ) -> Iterable[Completion]:
        """
        Generate completions based on cursor position and context.

        For the first token, completes command names.
        For 'upload' arguments, completes local paths (except after '--to',
        which names a server directory).
        """
        text = document.text_before_cursor
        tokens = text.split()

        is_typing_new_token = text.endswith(" ") or not tokens

        if not tokens or (len(tokens) == 1 and not is_typing_new_token):
            yield from self._complete_commands(tokens[0] if tokens else "")
            return

        command = tokens[0].lower()
        if command != "upload":
            return

        previous = tokens[-1] if is_typing_new_token else (tokens[-2] if len(tokens) > 1 else "")
        if previous == "--to":
            return

        current_word = "" if is_typing_new_token else tokens[-1]
        already_typed = set(tokens[1:] if is_typing_new_token else tokens[1:-1])

        yield from self._complete_local_paths(current_word, already_typed)

    def _complete_commands(self, partial: str) -> Iterable[Completion]:
        """Complete command names matching the partial input."""
        partial_lower = partial.lower()
        for cmd in COMMANDS:
            if cmd.startswith(partial_lower):
                yield Completion(cmd, start_position=-len(partial))

    def _complete_local_paths(
        self, partial: str, exclude: set
    ) -> Iterable[Completion]:
        """
        Complete local paths relative to the current directory.

        Directories are suggested with a trailing separator so completion
        can continue into them. Hidden entries are shown only when the
        partial name starts with a dot.
        """
        directory_part, name_part = os.path.split(partial)
        base = Path(directory_part).expanduser() if directory_part else Path.cwd()

        if not base.is_dir():
            return

        try:
            entries = sorted(base.iterdir(), key=lambda p: p.name.lower())
        except OSError:
            return

        for entry in entries:
            if not entry.name.startswith(name_part):
                continue
            if entry.name.startswith(".") and not name_part.startswith("."):
                continue

            suggestion = os.path.join(directory_part, entry.name)
            if suggestion in exclude:
                continue

            if entry.is_dir():
                yield Completion(suggestion + os.sep, start_position=-len(partial), display=entry.name + os.sep)
            else:
                yield Completion(suggestion, start_position=-len(partial), display=entry.name)
