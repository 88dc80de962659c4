"""Error containers shared by groupers and populators."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

# A callable producing raw groups: {group label: {entity id: {metric name: value}}}.
GroupsFetchFunc = Callable[[], dict[str, dict[str, dict[str, Any]]]]


class ErrorGroup(Exception):
    """A bundle of errors that may or may not allow execution to continue."""

    def __init__(self, errors=(), recoverable: bool = False) -> None:
        super().__init__()
        self.recoverable = recoverable
        self.errors: list[BaseException] = list(errors)

    def append(self, *args: BaseException) -> None:
        """Add the given errors to the group."""
        self.errors.extend(args)

    def __str__(self) -> str:
        kind = "Recoverable" if self.recoverable else "Non-recoverable"
        return f"{kind} error group: {', '.join(str(err) for err in self.errors)}"


@dataclass
class PopulateResult:
    """Outcome of populating an integration: the errors seen and whether anything was populated."""

    errors: list[BaseException] = field(default_factory=list)
    populated: bool = False

    @property
    def message(self) -> str:
        return "populate errors:" + "".join(f", {err}" for err in self.errors)

    def __str__(self) -> str:
        return self.message