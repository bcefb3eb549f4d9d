"""Command request data types for CLI."""

from dataclasses import dataclass
from typing import Literal, Optional


@dataclass(frozen=True)
class UploadCommand:
    """Upload one or more local files."""

    paths: tuple[str, ...]
    compress: bool = False
    command: Literal["upload"] = "upload"


@dataclass(frozen=True)
class InfoCommand:
    """Show metadata for a file code."""

    code: str
    command: Literal["info"] = "info"


@dataclass(frozen=True)
class DownloadCommand:
    """Download a file code, or every member of a group code."""

    code: str
    output_dir: Optional[str] = None
    command: Literal["download"] = "download"


@dataclass(frozen=True)
class CreateGroupCommand:
    """Share several file codes under one group code."""

    codes: tuple[str, ...]
    name: Optional[str] = None
    command: Literal["group"] = "group"


@dataclass(frozen=True)
class GroupInfoCommand:
    """List the files of a group code."""

    code: str
    command: Literal["group-info"] = "group-info"


CommandRequest = (
    UploadCommand
    | InfoCommand
    | DownloadCommand
    | CreateGroupCommand
    | GroupInfoCommand
)
