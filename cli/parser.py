"""Command parser for CLI input."""

import shlex

from cli.models import (
    CommandRequest,
    ForgetCommand,
    ListCommand,
    PendingCommand,
    UploadCommand,
)


class ParseError(Exception):
    """Raised when command parsing fails."""

    pass


def parse_command(input_line: str) -> CommandRequest:
    """Parse user input into a CommandRequest object.

    Args:
        input_line: Raw user input from REPL

    Returns:
        CommandRequest object (one of Upload/List/Pending/Forget)

    Raises:
        ParseError: If command syntax is invalid
    """
    if not input_line.strip():
        raise ParseError("Empty command")

    try:
        tokens = shlex.split(input_line)
    except ValueError as e:
        raise ParseError(f"Invalid syntax: {e}")

    if not tokens:
        raise ParseError("Empty command")

    command_name = tokens[0]

    if command_name == "upload":
        return _parse_upload(tokens[1:])
    elif command_name == "ls":
        return _parse_list(tokens[1:])
    elif command_name == "pending":
        return _parse_pending(tokens[1:])
    elif command_name == "forget":
        return _parse_forget(tokens[1:])
    else:
        raise ParseError(f"Unknown command: {command_name}")


def _parse_upload(args: list[str]) -> UploadCommand:
    """Parse 'upload <paths...> [--to <dir>]' command."""
    paths = []
    target_path = "/"
    i = 0

    while i < len(args):
        arg = args[i]
        if arg == "--to":
            if i + 1 >= len(args):
                raise ParseError("--to requires a target directory")
            target_path = args[i + 1]
            i += 2
            continue
        paths.append(arg)
        i += 1

    if not paths:
        raise ParseError("upload requires at least one file or directory")

    if not target_path.startswith("/"):
        target_path = "/" + target_path

    return UploadCommand(paths=tuple(paths), target_path=target_path)


def _parse_list(args: list[str]) -> ListCommand:
    """Parse 'ls [dir]' command."""
    if len(args) > 1:
        raise ParseError("ls takes at most one directory")

    return ListCommand(path=args[0]) if args else ListCommand()


def _parse_pending(args: list[str]) -> PendingCommand:
    """Parse 'pending' command."""
    if args:
        raise ParseError("pending takes no arguments")

    return PendingCommand()


def _parse_forget(args: list[str]) -> ForgetCommand:
    """Parse 'forget <key|all>' command."""
    if len(args) != 1:
        raise ParseError("forget requires exactly 1 argument: <key|all>")

    return ForgetCommand(key=args[0])
