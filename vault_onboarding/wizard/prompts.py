"""User prompts for the setup wizard.

The wizard only talks to a :class:`Prompter`. :class:`ConsolePrompter` reads
from the terminal; :class:`DefaultsPrompter` never blocks, answering yes to
every question and the default to every input.
"""

import getpass
import sys
from abc import ABC, abstractmethod
from typing import Callable, Optional, Sequence, TextIO

YES_ANSWERS = ("y", "yes")
NO_ANSWERS = ("n", "no")


class Prompter(ABC):
    """Source of answers to the wizard's questions."""

    @abstractmethod
    def confirm(self, question: str, default: bool = False) -> bool:
        """Ask a yes/no question."""

    @abstractmethod
    def ask(self, question: str, default: str = "", secret: bool = False) -> str:
        """Ask for free text; an empty answer means ``default``."""

    @abstractmethod
    def choose(self, question: str, options: Sequence[tuple[str, str]], default: str) -> str:
        """Pick one of ``options`` (``(key, label)`` pairs) and return its key."""


class ConsolePrompter(Prompter):
    """Interactive prompts on stdin/stdout."""

    def __init__(
        self,
        input_func: Callable[[str], str] = input,
        secret_func: Callable[[str], str] = getpass.getpass,
        output: Optional[TextIO] = None,
    ):
        self._input = input_func
        self._secret = secret_func
        self._output = output or sys.stdout

    def confirm(self, question: str, default: bool = False) -> bool:
        suffix = "[Y/n]" if default else "[y/N]"
        while True:
            response = self._input(f"{question} {suffix}: ").strip().lower()
            if not response:
                return default
            if response in YES_ANSWERS:
                return True
            if response in NO_ANSWERS:
                return False
            self._output.write("Please answer yes or no.\n")

    def ask(self, question: str, default: str = "", secret: bool = False) -> str:
        prompt = f"{question} [{default}]: " if default and not secret else f"{question}: "
        reader = self._secret if secret else self._input
        response = reader(prompt).strip()
        return response or default

    def choose(self, question: str, options: Sequence[tuple[str, str]], default: str) -> str:
        keys = {key.lower(): key for key, _ in options}
        self._output.write(f"{question}\n")
        for key, label in options:
            self._output.write(f"  [{key}] {label}\n")
        while True:
            response = self._input(f"Choice [{default}]: ").strip().lower()
            if not response:
                return default
            if response in keys:
                return keys[response]
            self._output.write(f"Please choose one of: {', '.join(k for k, _ in options)}\n")


class DefaultsPrompter(Prompter):
    """Non-interactive answers: always yes, always the default."""

    def confirm(self, question: str, default: bool = False) -> bool:
        return True

    def ask(self, question: str, default: str = "", secret: bool = False) -> str:
        return default

    def choose(self, question: str, options: Sequence[tuple[str, str]], default: str) -> str:
        return default
