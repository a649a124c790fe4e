"""Command request data types for CLI."""

from dataclasses import dataclass
from typing import Literal


@dataclass(frozen=True)
class UploadCommand:
    """Upload local files or directories to a server directory."""

    paths: tuple[str, ...]
    target_path: str = "/"
    command: Literal["upload"] = "upload"


@dataclass(frozen=True)
class ListCommand:
    """List a server directory."""

    path: str = "/"
    command: Literal["ls"] = "ls"


@dataclass(frozen=True)
class PendingCommand:
    """Show unfinished uploads that can be resumed."""

    command: Literal["pending"] = "pending"


@dataclass(frozen=True)
class ForgetCommand:
    """Drop one pending upload record, or all of them."""

    key: str
    command: Literal["forget"] = "forget"

    @property
    def forget_all(self) -> bool:
        return self.key == "all"


CommandRequest = (
    UploadCommand
    | ListCommand
    | PendingCommand
    | ForgetCommand
)
