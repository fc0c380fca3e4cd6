"""Interactive prompts, with a non-interactive variant that fails fast."""
import sys
from typing import List, Optional, Sequence

from rich.console import Console
from rich.prompt import Confirm, Prompt

from mariadb_ws.core.errors import PromptUnavailableError


class Prompter:
    """Asks the user for missing values on the terminal."""

    interactive = True

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console(stderr=True)

    def text(self, message: str, default: Optional[str] = None, suffix: str = "") -> str:
        label = f"{message} [dim](*{suffix})[/dim]" if suffix else message
        while True:
            value = Prompt.ask(label, default=default, console=self.console)
            if value:
                return value

    def password(self, message: str) -> str:
        return Prompt.ask(message, password=True, console=self.console)

    def select(self, message: str, options: Sequence[str]) -> str:
        choices: List[str] = list(options)
        if not choices:
            raise PromptUnavailableError(f"{message} (nothing to choose from)")

        for index, option in enumerate(choices, start=1):
            self.console.print(f"  [cyan]{index}[/cyan]) {option}")

        answer = Prompt.ask(
            message,
            choices=[str(i) for i in range(1, len(choices) + 1)] + choices,
            show_choices=False,
            console=self.console,
        )
        if answer.isdigit() and answer not in choices:
            return choices[int(answer) - 1]
        return answer

    def confirm(self, message: str, default: bool = False) -> bool:
        return Confirm.ask(message, default=default, console=self.console)


class NonInteractivePrompter(Prompter):
    """Prompter for scripted runs: defaults are accepted, anything else fails."""

    interactive = False

    def text(self, message: str, default: Optional[str] = None, suffix: str = "") -> str:
        if default:
            return default
        raise PromptUnavailableError(message)

    def password(self, message: str) -> str:
        raise PromptUnavailableError(message)

    def select(self, message: str, options: Sequence[str]) -> str:
        raise PromptUnavailableError(message)

    def confirm(self, message: str, default: bool = False) -> bool:
        raise PromptUnavailableError(message)


def is_interactive() -> bool:
    """Return True when stdin is attached to a terminal."""
    return sys.stdin.isatty()


def get_prompter(interactive: Optional[bool] = None) -> Prompter:
    """Return the prompter matching the terminal (or the explicit flag)."""
    if interactive is None:
        interactive = is_interactive()
    return Prompter() if interactive else NonInteractivePrompter()
