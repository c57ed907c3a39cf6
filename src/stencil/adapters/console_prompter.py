"""Minimal stdin prompter used when CLI flags leave questions open."""

from __future__ import annotations

from typing import Callable, Sequence, TypeVar

from stencil.domain.errors import ValidationError
from stencil.ports.prompter import Prompter, Validator

T = TypeVar("T")


class ConsolePrompter(Prompter):
    def __init__(self, input_fn: Callable[[str], str] = input, output_fn: Callable[[str], None] = print) -> None:
        self._input = input_fn
        self._print = output_fn

    def choose(self, message: str, choices: Sequence[tuple[str, T]]) -> T:
        options = list(choices)
        if not options:
            raise ValidationError("nothing to choose from")
        self._print(message)
        for index, (label, _) in enumerate(options, start=1):
            self._print(f"  {index}. {label}")
        while True:
            choice = self._input("Select [1]: ").strip()
            if not choice:
                return options[0][1]
            if choice.isdigit():
                index = int(choice)
                if 1 <= index <= len(options):
                    return options[index - 1][1]
            self._print(f"Enter a value between 1 and {len(options)}.")

    def text(self, message: str, *, default: str = "", validate: Validator | None = None) -> str:
        suffix = f" [{default}]" if default else ""
        while True:
            answer = self._input(f"{message}{suffix}: ").strip() or default
            error = validate(answer) if validate else None
            if error is None:
                return answer
            self._print(error)
