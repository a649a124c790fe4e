"""Command handler functions for CLI operations."""

import asyncio
from pathlib import Path
from typing import Callable, Optional

import httpx

from common.logging_config import get_logger
from cli.batch import BatchUploader
from cli.config import Config
from cli.events import EventEmitter, UploadEvent
from cli.exceptions import UploadError
from cli.ledger import UploadLedger
from cli.models import ForgetCommand, ListCommand, PendingCommand, UploadCommand
from cli.server_client import UploadServerClient
from cli.storage import JsonFileKeyValueStore
from cli.types import BatchResult, group_sources_by_target
from cli.uploader import ChunkedUploader
from cli.utils import ProgressPrinter, format_listing, format_pending

logger = get_logger(__name__)


_config: Optional[Config] = None
_ledger: Optional[UploadLedger] = None


def get_config() -> Config:
    """
    Get or create global Config instance.

    Returns:
        Config instance
    """
    global _config
    if _config is None:
        logger.debug("Loading CLI configuration")
        _config = Config(Path.home() / '.mediagrid' / 'config.json')
    return _config


def get_ledger() -> UploadLedger:
    """
    Get or create global UploadLedger instance backed by the JSON ledger file.

    Returns:
        UploadLedger instance
    """
    global _ledger
    if _ledger is None:
        path = get_config().get_ledger_path()
        logger.debug(f"Opening upload ledger at {path}")
        _ledger = UploadLedger(JsonFileKeyValueStore(path))
    return _ledger


def handle_upload(
    cmd: UploadCommand,
    config: Optional[Config] = None,
    ledger: Optional[UploadLedger] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    listener: Optional[Callable[[UploadEvent], None]] = None,
) -> str:
    """
    Handle 'upload' command.

    Args:
        cmd: UploadCommand with local paths and target directory
        config: Optional Config for dependency injection (testing)
        ledger: Optional UploadLedger for dependency injection (testing)
        transport: Optional httpx transport for dependency injection (testing)
        listener: Progress event listener (defaults to a terminal progress printer)

    Returns:
        Summary or error message
    """
    config = config or get_config()
    ledger = ledger or get_ledger()

    try:
        groups = group_sources_by_target(list(cmd.paths), cmd.target_path)
    except OSError as e:
        return f"Error: cannot read {e.filename or e}: {e.strerror or e}"

    if not groups:
        return "Nothing to upload."

    logger.info(f"Executing upload command: {sum(len(g) for g in groups.values())} file(s) to {cmd.target_path}")

    async def run() -> BatchResult:
        events = EventEmitter()
        events.subscribe(listener or ProgressPrinter())
        total = BatchResult()
        async with UploadServerClient(config, transport=transport) as client:
            uploader = ChunkedUploader.from_config(config, client, ledger, events)
            batch = BatchUploader(client, uploader, events, **config.get_batch_config())
            for target, sources in groups.items():
                result = await batch.upload_files(sources, target)
                total.success_count += result.success_count
                total.failed_files.extend(result.failed_files)
                total.uploaded.extend(result.uploaded)
        return total

    result = asyncio.run(run())
    logger.debug("Upload command completed")

    lines = [f"Uploaded {result.success_count} file(s)."]
    if result.failed_files:
        lines.append(f"{len(result.failed_files)} file(s) failed:")
        lines.extend(f"  {failed.error}" for failed in result.failed_files)
        if any(p.has_error for p in ledger.list_pending()):
            lines.append("Interrupted chunked uploads can be resumed by running the same upload again.")
    return "\n".join(lines)


def handle_list(
    cmd: ListCommand,
    config: Optional[Config] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    """
    Handle 'ls' command.

    Args:
        cmd: ListCommand with server directory
        config: Optional Config for dependency injection (testing)
        transport: Optional httpx transport for dependency injection (testing)

    Returns:
        Formatted directory listing or error message
    """
    logger.info(f"Executing ls command: path={cmd.path}")
    config = config or get_config()

    async def run() -> dict:
        async with UploadServerClient(config, transport=transport) as client:
            return await client.list_directory(cmd.path)

    try:
        listing = asyncio.run(run())
    except UploadError as e:
        return f"Error: {e}"
    return format_listing(listing)


def handle_pending(cmd: PendingCommand, ledger: Optional[UploadLedger] = None) -> str:
    """
    Handle 'pending' command.

    Args:
        cmd: PendingCommand
        ledger: Optional UploadLedger for dependency injection (testing)

    Returns:
        Formatted list of resumable uploads
    """
    ledger = ledger or get_ledger()
    return format_pending(ledger.list_pending())


def handle_forget(cmd: ForgetCommand, ledger: Optional[UploadLedger] = None) -> str:
    """
    Handle 'forget' command.

    Args:
        cmd: ForgetCommand with a ledger key or 'all'
        ledger: Optional UploadLedger for dependency injection (testing)

    Returns:
        Success or error message
    """
    ledger = ledger or get_ledger()
    if cmd.forget_all:
        count = ledger.clear_all()
        logger.info(f"Cleared {count} pending upload record(s)")
        return f"Forgot {count} pending upload(s)."

    if ledger.clear_key(cmd.key):
        logger.info(f"Cleared pending upload record {cmd.key}")
        return "Pending upload forgotten."
    return f"Error: no pending upload with key {cmd.key}"
