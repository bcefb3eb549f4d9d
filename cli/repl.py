"""Interactive FileShare shell built on prompt_toolkit."""

import os
import sys

from prompt_toolkit import PromptSession
from prompt_toolkit.history import InMemoryHistory

from cli.commands import dispatch_command
from cli.completer import FileShareCompleter
from cli.constants import HELP_TEXT, LOGO, PROMPT_TEXT, STYLE, WELCOME_HELP, WELCOME_TITLE
from cli.parser import ParseError, parse_command


def clear_screen() -> None:
    os.system("cls" if sys.platform == "win32" else "clear")


def show_welcome() -> None:
    print(f"{LOGO}\n{WELCOME_TITLE}\n{WELCOME_HELP}")


def run_line(line: str) -> bool:
    """
    Handle one line of input.

    Shell built-ins (help, clear, exit) are handled here; anything else
    is parsed and sent to the server.

    Returns:
        False when the shell should exit
    """
    word = line.strip().lower()
    if word == "exit":
        print("Goodbye!")
        return False
    if word == "help":
        print(HELP_TEXT)
    elif word == "clear":
        clear_screen()
        show_welcome()
    elif word:
        try:
            print(dispatch_command(parse_command(line)))
        except ParseError as e:
            print(f"Error: {e}")
    return True


def repl_loop() -> None:
    """Prompt for commands until exit or end of input."""
    session: PromptSession = PromptSession(
        completer=FileShareCompleter(), history=InMemoryHistory(), style=STYLE
    )
    clear_screen()
    show_welcome()

    keep_going = True
    while keep_going:
        try:
            keep_going = run_line(session.prompt([("class:prompt", PROMPT_TEXT)]))
        except KeyboardInterrupt:
            continue
        except EOFError:
            print("\nGoodbye!")
            break
