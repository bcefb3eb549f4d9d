"""Command parser for CLI input."""

import re
import shlex

from cli.models import (
    CommandRequest,
    UploadCommand,
    InfoCommand,
    DownloadCommand,
    CreateGroupCommand,
    GroupInfoCommand,
)

CODE_PATTERN = re.compile(r"^[0-9a-fA-F]{6}$")


class ParseError(Exception):
    """Raised when command parsing fails."""

    pass


def parse_command(input_line: str) -> CommandRequest:
    """Parse user input into a CommandRequest object.

    Args:
        input_line: Raw user input from REPL or argv

    Returns:
        CommandRequest object (one of Upload/Info/Download/CreateGroup/GroupInfo)

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

    return parse_tokens(tokens)


def parse_tokens(tokens: list[str]) -> CommandRequest:
    """Parse an already split command line."""
    command_name = tokens[0]

    if command_name == "upload":
        return _parse_upload(tokens[1:])
    elif command_name == "info":
        return InfoCommand(code=_single_code("info", tokens[1:]))
    elif command_name == "download":
        return _parse_download(tokens[1:])
    elif command_name == "group":
        return _parse_group(tokens[1:])
    elif command_name == "group-info":
        return GroupInfoCommand(code=_single_code("group-info", tokens[1:]))
    else:
        raise ParseError(f"Unknown command: {command_name}")


def _check_code(code: str) -> str:
    if not CODE_PATTERN.match(code):
        raise ParseError(f"Invalid code: {code} (codes are 6 hex characters)")
    return code.lower()


def _single_code(command: str, args: list[str]) -> str:
    if len(args) != 1:
        raise ParseError(f"{command} requires exactly 1 argument: <code>")
    return _check_code(args[0])


def _parse_upload(args: list[str]) -> UploadCommand:
    """Parse 'upload <path>... [--compress]' command."""
    compress = False
    paths = []
    for arg in args:
        if arg in ("--compress", "-z"):
            compress = True
        else:
            paths.append(arg)

    if not paths:
        raise ParseError("upload requires at least one file")

    return UploadCommand(paths=tuple(paths), compress=compress)


def _parse_download(args: list[str]) -> DownloadCommand:
    """Parse 'download <code> [output_dir]' command."""
    if len(args) < 1 or len(args) > 2:
        raise ParseError("download requires 1 or 2 arguments: <code> [output_dir]")

    code = _check_code(args[0])
    output_dir = args[1] if len(args) > 1 else None

    return DownloadCommand(code=code, output_dir=output_dir)


def _parse_group(args: list[str]) -> CreateGroupCommand:
    """Parse 'group <code>... [--name <name>]' command."""
    codes = []
    name = None
    index = 0
    while index < len(args):
        arg = args[index]
        if arg == "--name":
            if index + 1 >= len(args):
                raise ParseError("--name requires a value")
            name = args[index + 1]
            index += 2
            continue
        codes.append(_check_code(arg))
        index += 1

    if not codes:
        raise ParseError("group requires at least one file code")

    return CreateGroupCommand(codes=tuple(codes), name=name)
