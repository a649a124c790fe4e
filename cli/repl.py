"""Interactive MediaGrid shell built on prompt_toolkit."""

import os
import sys
from typing import Callable, Dict

from prompt_toolkit import PromptSession
from prompt_toolkit.history import FileHistory

from cli.commands import (
    get_config,
    get_ledger,
    handle_forget,
    handle_list,
    handle_pending,
    handle_upload,
)
from cli.completer import MediaGridCompleter
from cli.constants import (
    HELP_TEXT,
    LOGO,
    PROMPT_TEXT,
    STYLE,
    WELCOME_HELP,
    WELCOME_TITLE,
    YELLOW,
    RESET,
)
from cli.models import (
    CommandRequest,
    ForgetCommand,
    ListCommand,
    PendingCommand,
    UploadCommand,
)
from cli.parser import ParseError, parse_command

HANDLERS: Dict[type, Callable[..., str]] = {
    UploadCommand: handle_upload,
    ListCommand: handle_list,
    PendingCommand: handle_pending,
    ForgetCommand: handle_forget,
}


def clear_screen() -> None:
    """Clear the terminal screen (cross-platform)."""
    os.system("cls" if sys.platform == "win32" else "clear")


def show_welcome() -> None:
    """Print the logo, the greeting and a notice about resumable uploads."""
    print(LOGO)
    print(WELCOME_TITLE)
    print(f"Server: {get_config().get_base_url()}")
    print(WELCOME_HELP)
    pending = get_ledger().list_pending()
    if pending:
        print(f"{YELLOW}{len(pending)} interrupted upload(s) can be resumed. "
              f"Type 'pending' for details.{RESET}\n")


def dispatch_command(cmd_obj: CommandRequest) -> str:
    """Run the handler registered for a parsed command."""
    handler = HANDLERS.get(type(cmd_obj))
    if handler is None:
        return f"Unknown command type: {type(cmd_obj).__name__}"
    return handler(cmd_obj)


def repl_loop() -> None:
    """
    Read commands until 'exit' or end of input.

    Ctrl+C aborts the running command only; chunk progress is already in the
    ledger, so running the same upload again resumes it.
    """
    history_path = get_config().config_path.parent / "history"
    session: PromptSession = PromptSession(
        completer=MediaGridCompleter(),
        history=FileHistory(str(history_path)),
        style=STYLE,
        complete_while_typing=False,
    )

    clear_screen()
    show_welcome()

    while True:
        try:
            line = session.prompt([("class:prompt", PROMPT_TEXT)]).strip()
        except KeyboardInterrupt:
            continue
        except EOFError:
            print("\nGoodbye!")
            break

        if not line:
            continue
        if line == "exit":
            print("Goodbye!")
            break
        if line == "help":
            print(HELP_TEXT)
            continue
        if line == "clear":
            clear_screen()
            show_welcome()
            continue

        try:
            print(dispatch_command(parse_command(line)))
        except ParseError as e:
            print(f"Error: {e}")
        except KeyboardInterrupt:
            print(f"\n{YELLOW}Interrupted. Run the same upload again to resume where it stopped.{RESET}")
