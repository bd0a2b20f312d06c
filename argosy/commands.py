"""
Argosy command layer: build schemas from callables and run them.

What this module provides
- Command: wraps a Python callable into an executable CLI.
  • Field discovery from the callable's parameter defaults (Positional, Option,
    Switch), in signature order.
  • Hierarchies (parent/child) that become a Subcommand field on the parent.
  • I/O policy around the pure engine: help/version to stdout, diagnostics to
    stderr, exit codes in shell mode, CommandExit otherwise.

- Factories and helpers:
  • command(...): create a Command or a decorator that produces one.
  • invoke(obj, prompt): convenience runner for Commands or plain callables.

Signature rules
- Positional defaults must be positional-only parameters.
- Option defaults must be standard (positional-or-keyword) parameters.
- Switch defaults must be keyword-only parameters.
- Every parameter must have a field as its default.

Quick start
    from argosy import command, invoke, Positional, Option, Switch, integer

    @command(shell=True, colorful=True, version="1.0.0")
    def climb(
        route=Positional("route", descr="the route to climb"),
        /,
        height=Option("--height", converter=integer, descr="how high to go"),
        *,
        jump=Switch("-j", "--jump", descr="whether or not to jump"),
    ):
        \"\"\"Reach new heights.\"\"\"
        print(route, height, jump)

    if __name__ == "__main__":
        invoke(climb)

Execution model
- The root schema is matched in one pass (argosy.engine.match).
- On success the root callback runs first, then the callback of every selected
  subcommand, outermost to innermost; __invoke__ returns the innermost result.
- "--version" is recognized at the top level only, when a version is set and
  the callback does not declare it itself. Like "--help", it ends the pass at
  once, so the root's required fields do not apply.
"""
import inspect
import logging
import os.path
import shlex
import sys
from collections.abc import Iterable
from inspect import Parameter

from rich.console import Console
from rich.text import Text

from . import engine
from .faults import trigger
from .outcomes import EarlyExit, Failure, Selection, Value
from .schema import CommandSchema, Field, FieldKind, SchemaType, Subcommand, Switch
from .utils import *

logger = logging.getLogger(__name__)


def _process_source(cls, metadata):
    """
    Introspect the command callback and collect its fields.

    Builds
    - fields: list[Field] in signature order.
    - bindings: mapping[field dest -> parameter]

    Errors
    - TypeError/ValueError on non-callable or non-inspectable callbacks,
      parameters without a field default, or fields in the wrong parameter kind.
    """
    fields = metadata["fields"] = []
    bindings = metadata["bindings"] = {}

    try:
        signature = inspect.signature(metadata["callback"])
    except TypeError:
        raise TypeError(f"{cls.__typename__} 'callback' must be callable") from None
    except ValueError:
        raise ValueError(f"{cls.__typename__} 'callback' must be an inspectable callable") from None

    expected = {
        FieldKind.POSITIONAL: (Parameter.POSITIONAL_ONLY, "positional-only"),
        FieldKind.OPTION: (Parameter.POSITIONAL_OR_KEYWORD, "standard"),
        FieldKind.SWITCH: (Parameter.KEYWORD_ONLY, "keyword-only"),
    }

    for name, parameter in signature.parameters.items():
        if not isinstance(field := parameter.default, Field):
            raise TypeError(f"{cls.__typename__} 'callback' parameter {name!r} default must be a field")
        if field.kind is FieldKind.SUBCOMMAND:
            raise TypeError(f"{cls.__typename__} 'callback' parameter {name!r} cannot declare a subcommand, attach child commands instead")

        kind, label = expected[field.kind]
        if parameter.kind is not kind:
            raise TypeError(f"{cls.__typename__} 'callback' {field.kind} at parameter {name!r}, parameter must be {label}")

        fields.append(field)
        bindings[field.dest] = parameter


def _process_strings(cls, metadata):
    """
    Validate scalar text metadata: name (required), descr and version (optional).
    """
    if not isinstance(name := metadata["name"], str):
        raise TypeError(f"{cls.__typename__} 'name' must be a string")
    elif not (name := name.strip()):
        raise ValueError(f"{cls.__typename__} 'name' cannot be empty")
    metadata["name"] = name

    for name in ("descr", "version"):
        if not isinstance(object := metadata[name], str | Text | Unset):
            raise TypeError(f"{cls.__typename__} {name!r} must be a string")
        elif isinstance(object, str) and not (object := object.strip()):
            raise ValueError(f"{cls.__typename__} {name!r} cannot be empty")
        elif isinstance(object, Text) and not object.plain.strip():
            raise ValueError(f"{cls.__typename__} {name!r} cannot be empty")
        metadata[name] = object


def _attach_to_parent(self, parent):
    """
    Register this command under its parent, enforcing unique names and a parent
    shape that can route to subcommands.
    """
    if not parent:
        return

    if any(not field.required for field in parent._fields if field.kind is FieldKind.POSITIONAL):
        raise ValueError(f"{type(self).__typename__} 'parent' command cannot route with a non-required positional")

    if parent._children.setdefault(name := str(self.name), self) is self:
        return

    typeof = "subcommand" if parent.parent else "command"
    raise ValueError(f"{type(self).__typename__} {typeof} name {name!r} is already in use")


class Command(metaclass=SchemaType):
    """
    High-level command object that wraps a Python callable and provides CLI behavior.

    Responsibilities
    - Introspection: exposes metadata (name, descr, examples, version, ...) as
      read-only properties.
    - Composition: parent/child hierarchies model subcommands.
    - Matching: builds the CommandSchema on demand and hands it to the engine.
    - Invocation: __invoke__ maps the outcome to callbacks, output and exit codes.
    """

    __introspectable__ = (
        "name",
        "descr",
        "examples",
        "notes",
        "error_codes",
        "version",
        "fields",
        "parent",
        "children",
        "shell",
        "fancy",
        "colorful",
    )

    __displayable__ = (
        "name",
        "descr",
        "version",
        "children",
        "shell",
        "fancy",
        "colorful",
    )

    @property
    def root(self):
        """
        Return the topmost command in the current command hierarchy.
        """
        child, parent = self, self.parent
        while parent:
            child, parent = parent, parent.parent
        return child

    @property
    def path(self):
        """
        Return the full ancestry from root to this command as a tuple.
        """
        path = [command := self]
        while command.parent:
            path.append(command := command.parent)
        return tuple(reversed(path))

    def __new__(
            cls,
            source,
            /,
            parent=Unset,
            name=Unset,
            descr=Unset,
            examples=(),
            notes=(),
            error_codes=(),
            version=Unset,
            *,
            shell=Unset,
            fancy=Unset,
            colorful=Unset
    ):
        """
        Construct a Command from a callback.

        Parameters
        - parent: Command | Unset; attach this command as a subcommand of parent.
        - name: str | Unset; defaults to the callback __name__ (underscores become
          hyphens).
        - descr: str | Text | Unset; defaults to the callback docstring.
        - examples, notes: Iterable[str]; "{command_name}" expands in help.
        - error_codes: Mapping[int, str]; rendered in help only.
        - version: str | Unset; enables the top-level "--version" switch.
        - shell, fancy, colorful: bool | Unset; inherited from the parent (or False).
        """
        if not isinstance(parent, Command | Unset):
            raise TypeError(f"{cls.__typename__} 'parent' must be a command")
        if not callable(source):
            raise TypeError(f"{cls.__typename__} 'callback' must be callable")

        metadata = {
            "callback": source,
            "name": coalesce(name, getattr(source, "__name__", os.path.basename(sys.argv[0])).replace("_", "-")),
            "descr": coalesce(descr, inspect.getdoc(source) or Unset),
            "examples": examples,
            "notes": notes,
            "error_codes": error_codes,
            "version": version,
            "shell": bool(coalesce(shell, getattr(parent, "shell", False))),
            "fancy": bool(coalesce(fancy, getattr(parent, "fancy", False))),
            "colorful": bool(coalesce(colorful, getattr(parent, "colorful", False))),
            "parent": parent,
            "children": {},
        }
        _process_source(cls, metadata)
        _process_strings(cls, metadata)

        self = super().__new__(cls)
        self._callback = metadata.pop("callback")
        self._bindings = metadata.pop("bindings")
        for name, object in metadata.items():
            setattr(self, "_" + name, coalesce(object))

        # Validates examples/notes/error_codes and the field layout up front.
        schema = self._describe(())
        self._examples, self._notes, self._error_codes = schema.examples, schema.notes, schema.error_codes
        _attach_to_parent(self, self.parent)
        return self

    def _describe(self, children):
        fields = list(self._fields)
        if self._version and self.parent is None and "version" not in self._bindings:
            fields.append(Switch("--version", early_exit=self._versioner(), descr="display version information"))
        if children:
            fields.append(Subcommand({name: child.schema for name, child in children.items()}))
        return CommandSchema(
            self._name,
            fields,
            self._descr or Unset,
            self._examples,
            self._notes,
            self._error_codes,
        )

    @property
    def schema(self):
        """
        The CommandSchema of this command, children included (rebuilt on access).
        """
        return self._describe(self._children)

    def __call__(self, *args, **kwargs):
        return self._callback(*args, **kwargs)

    def command(self, source=Unset, /, *args, **kwargs):
        """
        Create or attach a subcommand under this command.

        Thin wrapper around command(...) injecting parent=self; usable directly
        (self.command(func, ...)) or as a decorator (@self.command(...)).
        """
        return command(source, self, *args, **kwargs)  # type: ignore[arg-type]

    def match(self, prompt=Unset, /):
        """
        Match a prompt against this command's schema without any side effect.

        Returns the engine's MatchOutcome (Value, EarlyExit or Failure).
        """
        return engine.match(self.schema, _tokens(prompt), command_name=" ".join(command.name for command in self.path))

    def _dispatch(self, result):
        args = ()
        kwargs = {}
        for dest, parameter in self._bindings.items():
            if parameter.kind is Parameter.POSITIONAL_ONLY:
                args += (getattr(result, dest),)
            else:
                kwargs[parameter.name] = getattr(result, dest)

        logger.debug("%s: running callback", self.name)
        returned = self._callback(*args, **kwargs)

        if isinstance(selection := getattr(result, "command", None), Selection):
            return self._children[selection.name]._dispatch(selection.value)
        return returned

    def __invoke__(self, prompt=Unset):
        """
        Execute this command with a token stream.

        Parameters
        - prompt:
          • Unset: read tokens from sys.argv[1:].
          • str: shell-like string; will be split via shlex.split.
          • Iterable[str]: pre-tokenized sequence.

        Behavior
        - Value: run the callbacks and return the innermost callback's result.
        - EarlyExit: print the text to stdout; exit with status 0 in shell mode.
        - Failure: trigger a CommandExit (printed to stderr and sys.exit(1) in
          shell mode, raised otherwise).
        """
        outcome = self.match(prompt)

        match outcome:
            case EarlyExit(text=text, success=success, rendered=rendered):
                Console(stderr=not success, soft_wrap=True).print(rendered if self.colorful and rendered is not None else Text(text))
                if self.shell:
                    sys.exit(0 if success else 1)
                return outcome
            case Failure():
                trigger(
                    outcome.exception(),
                    prog=getattr(__import__("__main__"), "__prog__", self.root.name),
                    shell=self.shell,
                    fancy=self.fancy,
                    colorful=self.colorful,
                )
            case Value(result=result):
                return self._dispatch(result)

    def _versioner(self):
        """
        Render "<name> <version>", the text the "--version" switch exits with.
        """
        styles = {"program-name": "bold #FF4D94", "program-version": "bold #00E6FF"} | getattr(
            __import__("__main__"), "__styles__", {}
        )
        rendered = Text.assemble(
            Text(str(self.name), styles["program-name"] if self.colorful else ""),
            " ",
            Text(str(self.version), styles["program-version"] if self.colorful else ""),
        )
        return rendered


def _tokens(prompt):
    """
    Normalize a prompt into a list of raw arguments (see Command.__invoke__).
    """
    if prompt is Unset:
        return sys.argv[1:]
    elif isinstance(prompt, str):
        return shlex.split(prompt)
    elif isinstance(prompt, Iterable):
        tokens = list(prompt)
        if not all(isinstance(token, str) for token in tokens):
            raise TypeError("__invoke__() argument must be a string or an iterable of strings")
        return tokens
    raise TypeError("__invoke__() argument must be a string or an iterable of strings")


def command(source=Unset, /, *args, **kwargs):
    """
    Create a Command or return a decorator to build it later.

    Invocation modes
    - Direct: cmd = command(func, name="x")
    - Decorator:
        @command(name="x")
        def func(...): ...
    """
    @rename("command")
    def wrapper(source, /):
        if not callable(source):
            raise TypeError("@command() must be applied to a callable")
        return Command(source, *args, **kwargs)

    return wrapper(source) if source is not Unset else wrapper


def invoke(object, prompt=Unset, /):
    """
    Convenience runner for commands or callables.

    - If 'object' implements __invoke__, call it with prompt.
    - If 'object' is a plain callable, wrap it as a Command and then invoke.
    - Otherwise, raise TypeError.
    """
    if hasattr(object, "__invoke__") and callable(object.__invoke__):
        return object.__invoke__(prompt)

    if callable(object):
        return invoke(command(object), prompt)  # type: ignore[arg-type]

    target = "argument" if prompt is Unset else "first argument"
    raise TypeError(f"invoke() {target} must implement __invoke__ method") from None


__all__ = (
    "Command",
    "command",
    "invoke",
)
