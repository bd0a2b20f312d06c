"""
Argosy faults: diagnostic kinds, diagnostic exceptions and their rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every diagnostic kind the
  matching engine reports. Codes are grouped by domain so logs and searches stay
  predictable.
- CommandException: base type of every diagnostic. It carries a message plus
  read-only options (field, token, path, title, hint, ...) and knows how to
  render itself with rich and how to surface itself (raise or print-and-exit).
- CommandExit: ExceptionGroup bundling every diagnostic of one failed pass.
- trigger(): central entry point to surface a fault with runtime options.
- getdoc(): optional description lookup for a code from the host application.

Diagnostic kinds
- UnrecognizedArgumentError   (UNRECOGNIZED_ARGUMENT)
- MissingRequiredValueError   (MISSING_REQUIRED_VALUE)
- DuplicateOptionError        (DUPLICATE_OPTION)
- MissingValueError           (MISSING_VALUE)
- InvalidValueError           (INVALID_VALUE)
- UnknownSubcommandError      (UNKNOWN_SUBCOMMAND)

Programmatic inspection
- diagnostic.kind is the FaultCode, diagnostic.field_name the long name of the
  field involved (or None), diagnostic.token the offending raw string (or None),
  diagnostic.subcommand_path the subcommand names traversed before the fault.

UX
- Lowercased tone, one-sentence messages, a single hint.
- Styling is configurable via __styles__ in __main__ and only applied when
  colorful=True; fancy=True wraps the report in a panel.
"""
import sys
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes reported by the matching engine (stable identifiers).

    grouping (by high-level domain)
    - routing (1110x)
      • UNKNOWN_SUBCOMMAND
    - switches and options (1111x)
      • UNRECOGNIZED_ARGUMENT, DUPLICATE_OPTION, MISSING_VALUE
    - values (1112x)
      • INVALID_VALUE, MISSING_REQUIRED_VALUE

    normalize() lets the host remap a code to a custom label while the numeric
    identity stays stable.
    """
    # --- routing errors (11xxx) ---
    UNKNOWN_SUBCOMMAND          = 11102

    # --- switch/option errors (11xxx) ---
    UNRECOGNIZED_ARGUMENT       = 11112
    DUPLICATE_OPTION            = 11115
    MISSING_VALUE               = 11117

    # --- value errors (11xxx) ---
    INVALID_VALUE               = 11124
    MISSING_REQUIRED_VALUE      = 11125

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels. when no mapping
        is present, the numeric value is returned as a string.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


class CommandException(Exception):
    """
    Base type of every diagnostic.

    Options recognized by the renderer and by the engine
    - field: long name of the field involved (str | None).
    - token: offending raw argument (str | None).
    - path: tuple of subcommand names traversed before the fault.
    - title: short headline; defaults to the class-level title.
    - hint: one actionable sentence.
    - prog: program name shown in the header.
    - shell, fancy, colorful: runtime flags (see trigger()).
    """
    code = None
    title = "command error"

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(*(() if message is Unset else (message,)))
        self.message = message
        self.options = MappingProxyType(options)

    @property
    def kind(self):
        return type(self).code

    @property
    def field_name(self):
        return self.options.get("field")

    @property
    def token(self):
        return self.options.get("token")

    @property
    def subcommand_path(self):
        return tuple(self.options.get("path", ()))

    def describe(self):
        """
        Plain one-line rendering, prefixed with the subcommand path when nested.
        """
        if path := self.subcommand_path:
            return f"{' '.join(path)}: {self.message}"
        return str(self.message)

    def __rich__(self):
        main = __import__("__main__")
        colorful = self.options.get("colorful", False)

        styles = defaultdict(str, {
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #00E5FF",  # neon cyan fault code
            "error-title": "bold #FF4DA6",  # friendly pinky title

            # body
            "error-path": "bold #36C5F0",  # sky-blue subcommand path
            "error-message": "#C8C8D0",  # soft light gray message
            "hint-arrow": "#9CE19C dim",  # gentle green arrow
            "hint": "italic #9CE19C",  # gentle green hint text
            "docs": "underline #00E5FF dim",
        } | getattr(main, "__styles__", {}))

        def styler(style):
            return styles[style] if colorful else ""

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            if not colorful:
                return Text(str(fragment))
            if isinstance(fragment, Text):
                return fragment
            return Text(str(fragment), style)

        prog = text(getattr(main, "__prog__", self.options.get("prog", "argosy")), styler("prog-name"))

        header = Text.assemble(
            "[ ",
            prog,
            " — ",
            text(self.kind.normalize() if self.kind else "error", styler("code")),
            " | ",
            text(self.options.get("title", type(self).title).title(), styler("error-title")),
            " ]"
        )
        message = Text.assemble(
            text(" ".join(self.subcommand_path) + ": " if self.subcommand_path else "", styler("error-path")),
            text(self.message, styler("error-message")),
        )
        renders = [message]
        if hint := self.options.get("hint"):
            renders.append(Text.assemble(text(" → ", styler("hint-arrow")), text(hint, styler("hint"))))
        if self.kind and (docs := getdoc(self.kind)):
            renders.append(text(docs, styler("docs")))

        if self.options.get("fancy", False):
            width = self.options.get("width")
            return Panel(Group(*renders), title=header, title_align="left", width=width)

        return Group(header, *renders)

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            raise self from None
        console.print(self)
        sys.exit(1)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class UnrecognizedArgumentError(CommandException):
    code = FaultCode.UNRECOGNIZED_ARGUMENT
    title = "unrecognized argument"


class MissingRequiredValueError(CommandException):
    code = FaultCode.MISSING_REQUIRED_VALUE
    title = "missing required value"


class DuplicateOptionError(CommandException):
    code = FaultCode.DUPLICATE_OPTION
    title = "duplicate option"


class MissingValueError(CommandException):
    code = FaultCode.MISSING_VALUE
    title = "missing value"


class InvalidValueError(CommandException):
    code = FaultCode.INVALID_VALUE
    title = "invalid value"


class UnknownSubcommandError(CommandException):
    code = FaultCode.UNKNOWN_SUBCOMMAND
    title = "unknown subcommand"


class CommandExit(ExceptionGroup[CommandException]):
    """
    Every diagnostic of one failed matching pass, raised or printed at once.

    Options
    - usage: rich Text usage line of the deepest schema reached.
    - prog, shell, fancy, colorful: runtime flags forwarded to each diagnostic.
    """

    def __new__(cls, exceptions, **options):
        return super().__new__(cls, "bad exit", tuple(exceptions))

    def __init__(self, exceptions, **options):
        super().__init__("bad exit", tuple(exceptions))
        self.options = MappingProxyType(options)

    def __rich__(self):
        main = __import__("__main__")
        colorful = self.options.get("colorful", False)

        styles = defaultdict(str, {
            "prog-name": "bold #E6E6F0",  # near-white program name
            "title": "bold #FF4DA6",  # friendly pinky group title (Bad Exit)
        } | getattr(main, "__styles__", {}))

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            if not colorful:
                return Text(str(fragment))
            if isinstance(fragment, Text):
                return fragment
            return Text(str(fragment), style)

        prog = text(getattr(main, "__prog__", self.options.get("prog", "argosy")), styles["prog-name"] if colorful else "")

        header = Text.assemble("[ ", prog, " — ", text(self.message.title(), styles["title"] if colorful else ""), " ]")

        renders = []
        if usage := self.options.get("usage"):
            renders.append(usage if colorful else Text(usage.plain))

        for exception in self.exceptions:
            renders.append(exception.__replace__(
                prog=self.options.get("prog", "argosy"),
                colorful=colorful,
                fancy=self.options.get("fancy", False),
            ))

        if self.options.get("fancy", False):
            return Panel(Group(*renders), title=header, title_align="left")

        return Group(header, *renders)

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            raise self from None
        console.print(self)
        sys.exit(1)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.exceptions, **{**self.options, **overrides})


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see base classes).
    - options are merged into the fault via __replace__(**options) before triggering.
    - in shell mode, rendering happens via the stderr rich console followed by
      sys.exit(1); otherwise the fault is raised.
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    fault.__replace__(**options).__trigger__()


def getdoc(code, /):
    """
    optional documentation fetch for a fault code.

    the host application may expose a __docs__ mapping in __main__ where keys
    are FaultCode members and values are short documentation strings; None is
    returned when no entry exists.
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be a fault-code")
    return getattr(__import__("__main__"), "__docs__", {}).get(code)


__all__ = (
    "FaultCode",
    "CommandException",
    "UnrecognizedArgumentError",
    "MissingRequiredValueError",
    "DuplicateOptionError",
    "MissingValueError",
    "InvalidValueError",
    "UnknownSubcommandError",
    "CommandExit",
    "trigger",
    "getdoc",
)
