"""CLI constants and configuration."""

from prompt_toolkit.styles import Style

COMMANDS = ["upload", "info", "download", "group", "group-info", "clear", "exit", "help"]

STYLE = Style.from_dict(
    {
        "prompt": "#2BA84A bold",
        "command": "#0088ff bold",
    }
)

GREEN = "\033[38;2;43;168;74m"
RESET = "\033[0m"

LOGO = f"""{GREEN}
 ███████╗██╗██╗     ███████╗███████╗██╗  ██╗ █████╗ ██████╗ ███████╗
 ██╔════╝██║██║     ██╔════╝██╔════╝██║  ██║██╔══██╗██╔══██╗██╔════╝
 █████╗  ██║██║     █████╗  ███████╗███████║███████║██████╔╝█████╗
 ██╔══╝  ██║██║     ██╔══╝  ╚════██║██╔══██║██╔══██║██╔══██╗██╔══╝
 ██║     ██║███████╗███████╗███████║██║  ██║██║  ██║██║  ██║███████╗
 ╚═╝     ╚═╝╚══════╝╚══════╝╚══════╝╚═╝  ╚═╝╚═╝  ╚═╝╚═╝  ╚═╝╚══════╝
{RESET}"""

WELCOME_TITLE = "FileShare CLI - upload files, share codes"
WELCOME_HELP = "Type 'help' for commands or 'exit' to quit.\n"

PROMPT_TEXT = "fileshare> "

HELP_TEXT = """Available commands:
  upload <path>... [--compress]           Upload files and print their share codes
  info <code>                             Show metadata for a file code
  download <code> [output_dir]            Download a file, or every file of a group code
  group <code>... [--name <name>]         Share several file codes under one group code
  group-info <code>                       List the files of a group
  clear                                   Clear screen and redisplay welcome message
  help                                    Show this help
  exit                                    Exit REPL

Files larger than the configured chunk size are sent in chunks.
Examples:
  upload report.pdf
  upload big.iso --compress
  info 3fa9c1
  download 3fa9c1 downloads
  group 3fa9c1 77b0e2 --name "Quarterly reports"
  group-info c41d09"""
