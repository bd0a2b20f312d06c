"""
Argosy match outcomes and the diagnostic aggregator.

Outcomes (exactly one per matching pass, immutable once returned)
- Value(result): every field matched and converted; result is the schema
  factory's return value, or an Arguments namespace.
- EarlyExit(text, success, rendered): an informational request (help, version)
  ended the pass; text is the plain rendering, rendered the styled rich Text.
- Failure(diagnostics, usage): one or more diagnostics, in encounter order,
  plus the usage line of the deepest schema reached.

Subcommand results
- Selection(name, value): tagged variant stored under a Subcommand field's
  dest; name is the selected alternative, value its own result.

Aggregator
- Collects diagnostics in discovery order and remembers the deepest schema
  reached, so Failure.render() can prefix the report with the right usage line.
"""
from types import SimpleNamespace
from typing import Any, NamedTuple

from rich.text import Text

from .faults import CommandExit
from .help import render_usage


class Arguments(SimpleNamespace):
    """
    Default result object: one attribute per field dest.
    """

    def __rich_repr__(self):
        yield from vars(self).items()


class Selection(NamedTuple):
    """
    The subcommand alternative that was selected, with its own result.
    """
    name: str
    value: Any


class Value(NamedTuple):
    result: Any


class EarlyExit(NamedTuple):
    text: str
    success: bool = True
    rendered: Text | None = None

    def __rich__(self):
        return self.rendered if self.rendered is not None else Text(self.text)


class Failure(NamedTuple):
    diagnostics: tuple
    usage: Text
    route: str = ""

    def kinds(self):
        """
        FaultCode of every diagnostic, in encounter order.
        """
        return [diagnostic.kind for diagnostic in self.diagnostics]

    def render(self):
        """
        Render the human-readable report.

        Layout
        - the usage line of the deepest schema reached,
        - one line per diagnostic (prefixed with its subcommand path when nested),
        - a closing hint pointing at --help.
        """
        lines = [self.usage.plain]
        lines.extend(diagnostic.describe() for diagnostic in self.diagnostics)
        lines.append(f"run '{self.route} --help' for more information")
        return "\n".join(lines)

    def exception(self, **options):
        """
        Bundle the diagnostics into a CommandExit carrying the usage line.
        """
        return CommandExit(self.diagnostics, usage=self.usage, **options)


class Aggregator:
    """
    Collects the diagnostics of one matching pass.
    """

    def __init__(self, schema, path, /):
        self._diagnostics = []
        self._schema = schema
        self._path = tuple(path)

    @property
    def diagnostics(self):
        return tuple(self._diagnostics)

    def __bool__(self):
        return bool(self._diagnostics)

    def __len__(self):
        return len(self._diagnostics)

    def record(self, diagnostic, /):
        self._diagnostics.append(diagnostic)

    def reach(self, schema, path, /):
        """
        Remember a deeper schema (and its command path) for the usage line.
        """
        if len(path) >= len(self._path):
            self._schema = schema
            self._path = tuple(path)

    @property
    def route(self):
        return " ".join(self._path)

    def failure(self):
        return Failure(self.diagnostics, render_usage(self._schema, self._path), self.route)


__all__ = (
    "Arguments",
    "Selection",
    "Value",
    "EarlyExit",
    "Failure",
    "Aggregator",
)
