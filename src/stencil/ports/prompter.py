"""Port definitions for interactive prompting."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Sequence, TypeVar

T = TypeVar("T")

Validator = Callable[[str], "str | None"]


class Prompter(ABC):
    @abstractmethod
    def choose(self, message: str, choices: Sequence[tuple[str, T]]) -> T:
        """Return the value of one of ``choices`` (label, value)."""

    @abstractmethod
    def text(self, message: str, *, default: str = "", validate: Validator | None = None) -> str:
        """Return an answer accepted by ``validate`` (which returns an error message or ``None``)."""
