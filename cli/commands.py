"""Command handler functions for CLI operations."""

from pathlib import Path
from typing import Optional

from common.logging_config import get_logger
from cli.models import (
    UploadCommand,
    InfoCommand,
    DownloadCommand,
    CreateGroupCommand,
    GroupInfoCommand,
)
from cli.config import Config
from cli.fileshare_client import FileShareClient

logger = get_logger(__name__)


_client: Optional[FileShareClient] = None


def get_client() -> FileShareClient:
    """
    Get or create global FileShareClient instance.

    Returns:
        FileShareClient instance
    """
    global _client
    if _client is None:
        logger.debug("Creating new FileShareClient instance")
        config = Config(Path.home() / '.fileshare' / 'config.json')
        _client = FileShareClient(config)
    return _client


def handle_upload(cmd: UploadCommand, client: Optional[FileShareClient] = None) -> str:
    """
    Handle 'upload' command.

    Args:
        cmd: UploadCommand with paths and compress flag
        client: Optional FileShareClient for dependency injection (testing)

    Returns:
        One result block per file
    """
    logger.info(f"Executing upload command: {len(cmd.paths)} files, compress={cmd.compress}")
    if client is None:
        client = get_client()
    results = [client.upload(path, cmd.compress) for path in cmd.paths]
    return '\n\n'.join(results)


def handle_info(cmd: InfoCommand, client: Optional[FileShareClient] = None) -> str:
    if client is None:
        client = get_client()
    return client.info(cmd.code)


def handle_download(cmd: DownloadCommand, client: Optional[FileShareClient] = None) -> str:
    """
    Handle 'download' command.

    Args:
        cmd: DownloadCommand with code and optional output_dir
        client: Optional FileShareClient for dependency injection (testing)

    Returns:
        Success or error message with download results
    """
    logger.info(f"Executing download command: code={cmd.code} output_dir={cmd.output_dir}")
    if client is None:
        client = get_client()
    return client.download(cmd.code, cmd.output_dir)


def handle_create_group(cmd: CreateGroupCommand, client: Optional[FileShareClient] = None) -> str:
    """
    Handle 'group' command.

    Args:
        cmd: CreateGroupCommand with member codes and optional name
        client: Optional FileShareClient for dependency injection (testing)

    Returns:
        Success or error message with the group code
    """
    if client is None:
        client = get_client()
    return client.create_group(list(cmd.codes), cmd.name)


def handle_group_info(cmd: GroupInfoCommand, client: Optional[FileShareClient] = None) -> str:
    if client is None:
        client = get_client()
    return client.group_info(cmd.code)


def dispatch_command(cmd_obj, client: Optional[FileShareClient] = None) -> str:
    """Dispatch parsed command to appropriate handler."""
    if isinstance(cmd_obj, UploadCommand):
        return handle_upload(cmd_obj, client)
    elif isinstance(cmd_obj, InfoCommand):
        return handle_info(cmd_obj, client)
    elif isinstance(cmd_obj, DownloadCommand):
        return handle_download(cmd_obj, client)
    elif isinstance(cmd_obj, CreateGroupCommand):
        return handle_create_group(cmd_obj, client)
    elif isinstance(cmd_obj, GroupInfoCommand):
        return handle_group_info(cmd_obj, client)
    else:
        return f"Unknown command type: {type(cmd_obj)}"
