"""Listing formatters and the name -> formatter registry."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, TypeVar, runtime_checkable

from odbcsv.core.exceptions import OutputError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from odbcsv.core.models import Listing


@runtime_checkable
class Formatter(Protocol):
    """Turns a catalogue Listing (columns, drivers, DSNs) into output lines."""

    def format(self, listing: Listing) -> Iterator[str]: ...


F = TypeVar("F", bound=type)


class FormatterRegistry:
    def __init__(self) -> None:
        self._formatters: dict[str, type[Formatter]] = {}

    def register(self, name: str) -> Callable[[F], F]:
        """Class decorator adding a formatter under ``name``."""

        def decorator(cls: F) -> F:
            self._formatters[name] = cls
            return cls

        return decorator

    def get(self, name: str, **options: object) -> Formatter:
        try:
            cls = self._formatters[name]
        except KeyError:
            choices = ", ".join(self.available)
            msg = f"Unknown listing format {name!r} (choose from {choices})"
            raise OutputError(msg) from None
        return cls(**options)

    @property
    def available(self) -> list[str]:
        return sorted(self._formatters)


registry = FormatterRegistry()
