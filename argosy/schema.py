r"""
Argosy schema model: immutable descriptions of what a command accepts.

Overview
- Fields
  • Switch: named, presence-only field (e.g., -j/--jump); False unless given.
  • Option: named, value-bearing field (e.g., --height <height>); scalar or repeated.
  • Positional: value-bearing field filled by position, in declaration order.
  • Subcommand: closed set of named alternatives, each one a nested CommandSchema.

- Schema
  • CommandSchema: ordered fields plus the command name, description, examples,
    notes and an informational error-code table. Schemas nest through their
    Subcommand field, so a whole command tree is one read-only value.

- Arity
  • Arity.REQUIRED: the field must capture a value.
  • Arity.OPTIONAL: the field may stay empty; falls back to its default or None.
  • Arity.REPEATED: the field captures zero or more values, in encounter order.

Metadata (sanitized on construction)
- Shared
  • descr: Unset | str | Text (help text), non-empty when provided.
  • hidden: bool (omitted from help; still matched).
- Named (Switch/Option)
  • names: exactly one long name ("--name") and at most one short name ("-n").
    "--help" and "-h" are reserved for the universal help flag.
- Switch only
  • count: bool (occurrences are counted; the value is an int, 0 when absent).
  • early_exit: Unset | str | Text (seeing the switch ends the pass with this text).
- Value-bearing (Option/Positional)
  • converter: Callable[[str], T] applied to each captured raw value.
  • arity: Unset | Arity | "required" | "optional" | "repeated".
  • default / default_factory: eager value or lazy supplier (mutually exclusive).
    Either one implies Arity.OPTIONAL; combining it with Arity.REQUIRED is an error.
  • choices: Iterable of allowed converted values (duplicates rejected unless a Set).
  • metavar: Unset | str (value label in help; cannot be combined with choices).

Validation highlights (CommandSchema)
- Long names and short characters are unique within one schema.
- Only the last Positional may be non-required.
- At most one Subcommand, declared after every Positional; a schema routing to
  subcommands may only declare required positionals.

Quick example:
    >>> from argosy.schema import CommandSchema, Switch, Option
    >>> schema = CommandSchema("climb", (
    ...     Switch("-j", "--jump", descr="whether or not to jump"),
    ...     Option("--height", converter=int, descr="how high to go"),
    ... ), descr="Reach new heights.")
    >>> schema.switches["-j"].long_name
    'jump'

Public API
- Enums: Arity, FieldKind
- Classes: Switch, Option, Positional, Subcommand, CommandSchema
"""
import functools
import operator
import re
from collections.abc import Iterable, Mapping, Set
from enum import StrEnum

from rich.text import Text

from .utils import *


class Arity(StrEnum):
    """
    How many values a field captures.
    """
    REQUIRED = "required"
    OPTIONAL = "optional"
    REPEATED = "repeated"


class FieldKind(StrEnum):
    SWITCH = "switch"
    OPTION = "option"
    POSITIONAL = "positional"
    SUBCOMMAND = "subcommand"


class SchemaType(type):
    """
    Metaclass that gives schema classes read-only, introspectable attributes.

    Responsibilities
    - Expose every name listed in __introspectable__ as a read-only property
      mirroring the private "_{name}" backing field (see mirror()).
    - Provide stable __repr__/__rich_repr__ implementations for diagnostics and
      for rich's pretty printer.

    Conventions
    - __typename__ is derived from the class name (camel-case split with hyphens)
      and used as the subject of every construction error message.
    - __displayable__ (if set) narrows which properties __rich_repr__ shows;
      otherwise __introspectable__ is used.
    """
    __introspectable__ = ()
    __displayable__ = Unset

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            """
            Return a concise, stable representation with key metadata.

            Example
            - option(long_name='height', short_name=None, arity=<Arity.REQUIRED: 'required'>, ...)
            """
            return f"{type(self).__typename__}({', '.join(map(functools.partial(operator.mod, '%s=%r'), self.__rich_repr__()))})"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in coalesce(type(self).__displayable__, type(self).__introspectable__):
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


_LONG_NAME = re.compile(r"--([^\W\d_](?:-?[^\W_]+)*)")
_SHORT_NAME = re.compile(r"-([^\W_])")
_BARE_NAME = re.compile(r"[^\W\d_](?:-?[^\W_]+)*")


def _sanitize_metadata(cls, metadata, /):
    """
    Internal: normalize and validate metadata shared by every field.

    - descr: Unset | str | Text; trimmed when a string, never blank; None when Unset.
    - hidden: coerced to bool.

    Raises
    - TypeError: if 'descr' is not a string (or rich Text).
    - ValueError: if 'descr' is empty after trimming.
    """
    if not isinstance(descr := metadata["descr"], str | Text | Unset):
        raise TypeError(f"{cls.__typename__} 'descr' must be a string")
    elif isinstance(descr, str) and not (descr := descr.strip()):
        raise ValueError(f"{cls.__typename__} 'descr' cannot be empty")
    elif isinstance(descr, Text) and not descr.plain.strip():
        raise ValueError(f"{cls.__typename__} 'descr' cannot be empty")
    metadata["descr"] = coalesce(descr)
    metadata["hidden"] = bool(metadata["hidden"])


def _sanitize_named_metadata(cls, metadata, /):
    r"""
    Internal: split Switch/Option names into a long name and an optional short one.

    Accepted forms
    - long:  "--name", "--long-name"  (segments of letters/digits joined by single hyphens)
    - short: "-n"                     (a single letter or digit)

    Mutates
    - pops 'names'; sets 'long_name' (without dashes) and 'short_name' (char or None).

    Raises
    - TypeError: when no name, more than one long/short name, or a non-string is given.
    - ValueError: on malformed names or on the reserved help names.
    """
    long_name = short_name = None

    if not (names := metadata.pop("names")):
        raise TypeError(f"{cls.__typename__} must specify at least one name")

    for name in names:
        if not isinstance(name, str):
            raise TypeError(f"{cls.__typename__} names must be strings")
        elif not (name := name.strip()):
            raise ValueError(f"{cls.__typename__} names cannot be empty-strings")
        elif name in ("--help", "-h"):
            raise ValueError(f"{cls.__typename__} name {name!r} is reserved for the help flag")
        elif match := _LONG_NAME.fullmatch(name):
            if long_name is not None:
                raise TypeError(f"{cls.__typename__} must specify exactly one long name")
            long_name = match.group(1)
        elif match := _SHORT_NAME.fullmatch(name):
            if short_name is not None:
                raise TypeError(f"{cls.__typename__} cannot specify more than one short name")
            short_name = match.group(1)
        else:
            raise ValueError(f"{cls.__typename__} names must be valid shell-style option names (unicodes are allowed)")

    if long_name is None:
        raise TypeError(f"{cls.__typename__} must specify exactly one long name")

    metadata["long_name"] = long_name
    metadata["short_name"] = short_name


def _sanitize_parametric_metadata(cls, metadata, /):
    """
    Internal: validate and normalize metadata for value-bearing fields.

    Responsibilities
    - converter: must be callable (only callability is enforced).
    - default / default_factory: mutually exclusive; default_factory must be callable.
    - arity: resolved to an Arity member. Unset becomes OPTIONAL when a default
      is declared and REQUIRED otherwise; REQUIRED plus a default is rejected.
      A REPEATED field's eager default must be a non-string iterable.
    - choices: must be iterable; duplicates are rejected unless given as a Set.
    - metavar: Unset or a non-empty string; cannot be combined with choices.

    Side effects
    - Mutates the provided metadata dict in place.
    """
    if not callable(metadata["converter"]):
        raise TypeError(f"{cls.__typename__} 'converter' must be callable")

    defaulted = metadata["default"] is not Unset or metadata["default_factory"] is not Unset
    if metadata["default"] is not Unset and metadata["default_factory"] is not Unset:
        raise TypeError(f"{cls.__typename__} cannot have both 'default' and 'default_factory'")
    if not callable(metadata["default_factory"]) and metadata["default_factory"] is not Unset:
        raise TypeError(f"{cls.__typename__} 'default_factory' must be callable")

    if not isinstance(arity := metadata["arity"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'arity' must be an arity or a string")
    try:
        arity = Arity(arity) if arity is not Unset else Arity.OPTIONAL if defaulted else Arity.REQUIRED
    except ValueError:
        raise ValueError(f"{cls.__typename__} 'arity' must be one of 'required', 'optional', or 'repeated'") from None
    if arity is Arity.REQUIRED and defaulted:
        raise TypeError(f"required {cls.__typename__} cannot have a default")
    if arity is Arity.REPEATED and (default := metadata["default"]) is not Unset:
        if not isinstance(default, Iterable) or isinstance(default, str | bytes):
            raise TypeError(f"repeated {cls.__typename__} 'default' must be a non-string iterable")
    metadata["arity"] = arity

    if not isinstance(choices := metadata["choices"], Iterable) or isinstance(choices, str):
        raise TypeError(f"{cls.__typename__} 'choices' must be iterable")
    if not isinstance(choices, Set):
        sanitized = []
        for choice in choices:
            if choice in sanitized:
                raise ValueError(f"{cls.__typename__} 'choices' cannot contain duplicates")
            sanitized.append(choice)
        choices = tuple(sanitized)
    metadata["choices"] = choices

    if not isinstance(metavar := metadata["metavar"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'metavar' must be a string")
    elif isinstance(metavar, str) and not (metavar := metavar.strip()):
        raise ValueError(f"{cls.__typename__} 'metavar' cannot be empty")
    if metavar and choices:
        raise TypeError(f"{cls.__typename__} cannot have both 'metavar' and 'choices'")
    metadata["metavar"] = metavar


class Field(metaclass=SchemaType):
    """
    Common surface of every field kind.

    Subclasses declare a class-level `kind` and the names they publish through
    __introspectable__; the engine only relies on the attributes below.
    """
    kind = None

    @property
    def dest(self):
        """
        Attribute name under which the field's value lands in the result.
        """
        return self.long_name.replace("-", "_")

    @property
    def required(self):
        return self.arity is Arity.REQUIRED

    @property
    def repeated(self):
        return self.arity is Arity.REPEATED

    @property
    def defaulted(self):
        """
        True when the field declares an eager default or a default factory.
        """
        return getattr(self, "default", Unset) is not Unset or getattr(self, "default_factory", Unset) is not Unset


class Switch(Field):
    """
    Named, presence-only field.

    A switch is False unless one of its names appears; supplying it again is not
    an error (presence is idempotent). It carries no converter and no value.

    Parameters
    - count: bool; count occurrences instead ("-v -v -v" gives 3, absent gives 0).
    - early_exit: Unset | str | Text; when given, seeing the switch ends the pass
      at once with an EarlyExit carrying this text (e.g. "--version").
    """
    kind = FieldKind.SWITCH

    __introspectable__ = (
        "long_name",
        "short_name",
        "arity",
        "count",
        "early_exit",
        "descr",
        "hidden",
    )

    __displayable__ = (
        "long_name",
        "short_name",
        "count",
        "descr",
    )

    def __new__(cls, *names, count=False, early_exit=Unset, descr=Unset, hidden=False):
        metadata = {
            "names": names,
            "count": bool(count),
            "early_exit": early_exit,
            "descr": descr,
            "hidden": hidden,
        }
        _sanitize_metadata(cls, metadata)
        _sanitize_named_metadata(cls, metadata)

        if not isinstance(early_exit, str | Text | Unset):
            raise TypeError(f"{cls.__typename__} 'early_exit' must be a string")
        elif early_exit is not Unset and metadata["count"]:
            raise TypeError(f"{cls.__typename__} cannot have both 'count' and 'early_exit'")

        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        self._arity = Arity.OPTIONAL
        return self


class Option(Field):
    """
    Named, value-bearing field.

    The value follows the name either inline ("--height=5") or as the next raw
    argument ("--height 5"). Repeated options append every occurrence; other
    options may be supplied at most once.

    Parameters
    - names: one long name ("--height") and optionally one short name ("-H").
    - converter: Callable[[str], T] (default: str).
    - arity: Unset | Arity | str (see module docstring for defaulting rules).
    - default / default_factory: eager value or zero-argument supplier.
    - choices: allowed converted values.
    - metavar: value label in help (default: the long name).
    - descr, hidden: help metadata.
    """
    kind = FieldKind.OPTION

    __introspectable__ = (
        "long_name",
        "short_name",
        "converter",
        "arity",
        "default",
        "default_factory",
        "choices",
        "metavar",
        "descr",
        "hidden",
    )

    __displayable__ = (
        "long_name",
        "short_name",
        "arity",
        "default",
        "choices",
        "metavar",
        "descr",
    )

    def __new__(
            cls,
            *names,
            converter=str,
            arity=Unset,
            default=Unset,
            default_factory=Unset,
            choices=(),
            metavar=Unset,
            descr=Unset,
            hidden=False
    ):
        metadata = {
            "names": names,
            "converter": converter,
            "arity": arity,
            "default": default,
            "default_factory": default_factory,
            "choices": choices,
            "metavar": metavar,
            "descr": descr,
            "hidden": hidden,
        }
        _sanitize_metadata(cls, metadata)
        _sanitize_named_metadata(cls, metadata)
        _sanitize_parametric_metadata(cls, metadata)

        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        self._metavar = coalesce(self._metavar, self._long_name)
        return self


class Positional(Field):
    """
    Value-bearing field filled by position.

    Positionals are filled in declaration order. Only the last one declared in a
    schema may be optional or repeated; a repeated positional absorbs every
    remaining bare argument.
    """
    kind = FieldKind.POSITIONAL

    __introspectable__ = (
        "long_name",
        "short_name",
        "converter",
        "arity",
        "default",
        "default_factory",
        "choices",
        "metavar",
        "descr",
        "hidden",
    )

    __displayable__ = (
        "long_name",
        "arity",
        "default",
        "choices",
        "descr",
    )

    def __new__(
            cls,
            name,
            /,
            converter=str,
            arity=Unset,
            default=Unset,
            default_factory=Unset,
            choices=(),
            metavar=Unset,
            descr=Unset,
            *,
            hidden=False
    ):
        if not isinstance(name, str):
            raise TypeError(f"{cls.__typename__} name must be a string")
        elif not _BARE_NAME.fullmatch(name := name.strip()):
            raise ValueError(f"{cls.__typename__} name must be a valid shell-style name (unicodes are allowed)")

        metadata = {
            "long_name": name,
            "short_name": None,
            "converter": converter,
            "arity": arity,
            "default": default,
            "default_factory": default_factory,
            "choices": choices,
            "metavar": metavar,
            "descr": descr,
            "hidden": hidden,
        }
        _sanitize_metadata(cls, metadata)
        _sanitize_parametric_metadata(cls, metadata)

        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        self._metavar = coalesce(self._metavar, self._long_name)
        return self


class Subcommand(Field):
    """
    Closed set of named alternatives.

    The first bare argument left over once every positional is filled names the
    alternative; matching then continues against that alternative's schema. The
    result holds a Selection(name, arguments) under the field's dest.

    Parameters
    - commands: Mapping[str, CommandSchema] | Iterable[CommandSchema]
      (an iterable is keyed by each schema's name).
    - name: field name, shown as "<name>" in usage (default: "command").
    - arity: Arity.REQUIRED (default) or Arity.OPTIONAL.
    """
    kind = FieldKind.SUBCOMMAND

    __introspectable__ = (
        "long_name",
        "short_name",
        "commands",
        "arity",
        "descr",
        "hidden",
    )

    def __new__(cls, commands, /, name="command", arity=Arity.REQUIRED, descr=Unset, *, hidden=False):
        if not isinstance(name, str):
            raise TypeError(f"{cls.__typename__} name must be a string")
        elif not _BARE_NAME.fullmatch(name := name.strip()):
            raise ValueError(f"{cls.__typename__} name must be a valid shell-style name (unicodes are allowed)")

        if isinstance(commands, Mapping):
            commands = dict(commands)
        elif isinstance(commands, Iterable):
            commands = {getattr(schema, "name", None): schema for schema in commands}
        else:
            raise TypeError(f"{cls.__typename__} 'commands' must be a mapping or an iterable of command schemas")
        if not commands:
            raise ValueError(f"{cls.__typename__} 'commands' cannot be empty")
        for key, schema in commands.items():
            if not isinstance(schema, CommandSchema):
                raise TypeError(f"{cls.__typename__} 'commands' values must be command schemas")
            elif not isinstance(key, str) or not _BARE_NAME.fullmatch(key):
                raise ValueError(f"{cls.__typename__} command name {key!r} must be a valid shell-style name")

        try:
            arity = Arity(arity)
        except ValueError:
            raise ValueError(f"{cls.__typename__} 'arity' must be one of 'required' or 'optional'") from None
        if arity is Arity.REPEATED:
            raise ValueError(f"{cls.__typename__} 'arity' must be one of 'required' or 'optional'")

        metadata = {
            "long_name": name,
            "short_name": None,
            "commands": commands,
            "arity": arity,
            "descr": descr,
            "hidden": hidden,
        }
        _sanitize_metadata(cls, metadata)

        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        return self


def _process_strings(cls, metadata):
    """
    Validate the scalar text metadata of a schema: name (required) and descr.
    """
    if not isinstance(name := metadata["name"], str):
        raise TypeError(f"{cls.__typename__} 'name' must be a string")
    elif not (name := name.strip()):
        raise ValueError(f"{cls.__typename__} 'name' cannot be empty")
    metadata["name"] = name

    if not isinstance(descr := metadata["descr"], str | Text | Unset):
        raise TypeError(f"{cls.__typename__} 'descr' must be a string")
    elif isinstance(descr, str) and not (descr := descr.strip()):
        raise ValueError(f"{cls.__typename__} 'descr' cannot be empty")
    elif isinstance(descr, Text) and not descr.plain.strip():
        raise ValueError(f"{cls.__typename__} 'descr' cannot be empty")
    metadata["descr"] = coalesce(descr)


def _process_iterables(cls, metadata):
    """
    Normalize examples/notes into lists of trimmed, non-empty strings (or Text),
    and error_codes into an ordered {int: str} mapping.
    """
    for name in ("examples", "notes"):
        if not isinstance(objects := metadata[name], Iterable) or isinstance(objects, str | Text):
            raise TypeError(f"{cls.__typename__} {name!r} must be an iterable of strings")
        sanitized = []
        for object in objects:
            if not isinstance(object, str | Text):
                raise TypeError(f"{cls.__typename__} {name!r} must be an iterable of strings")
            elif isinstance(object, str) and not (object := object.strip()):
                raise ValueError(f"{cls.__typename__} {name!r} cannot contain empty strings")
            sanitized.append(object)
        metadata[name] = sanitized

    codes = metadata["error_codes"]
    if isinstance(codes, Mapping):
        codes = codes.items()
    elif not isinstance(codes, Iterable):
        raise TypeError(f"{cls.__typename__} 'error_codes' must be a mapping of integers to strings")
    sanitized = {}
    for entry in codes:
        try:
            code, descr = entry
        except (TypeError, ValueError):
            raise TypeError(f"{cls.__typename__} 'error_codes' must be a mapping of integers to strings") from None
        if not isinstance(code, int) or isinstance(code, bool) or not isinstance(descr, str):
            raise TypeError(f"{cls.__typename__} 'error_codes' must be a mapping of integers to strings")
        elif code in sanitized:
            raise ValueError(f"{cls.__typename__} 'error_codes' cannot contain duplicated code {code}")
        sanitized[code] = descr.strip()
    metadata["error_codes"] = sanitized

    if not callable(factory := metadata["factory"]) and factory is not Unset:
        raise TypeError(f"{cls.__typename__} 'factory' must be callable")
    metadata["factory"] = coalesce(factory)


def _process_fields(cls, metadata):
    """
    Validate the field sequence and build the lookup tables.

    Builds
    - switches: mapping["--long" | "-s" -> Switch | Option] (aliases fan out to the same field)
    - positionals: list[Positional] in declaration order
    - subcommand: Subcommand | None

    Raises
    - TypeError on non-field entries or ordering violations.
    - ValueError on duplicate names.
    """
    switches = metadata["switches"] = {}
    positionals = metadata["positionals"] = []
    metadata["subcommand"] = None
    dests = set()

    if not isinstance(fields := metadata["fields"], Iterable):
        raise TypeError(f"{cls.__typename__} 'fields' must be an iterable of fields")
    metadata["fields"] = fields = list(fields)

    for field in fields:
        if not isinstance(field, Field):
            raise TypeError(f"{cls.__typename__} 'fields' must only contain fields")
        elif field.dest in dests:
            raise ValueError(f"{cls.__typename__} name {field.long_name!r} is already in use")
        dests.add(field.dest)

        if subcommand := metadata["subcommand"]:
            if field.kind is FieldKind.SUBCOMMAND:
                raise TypeError(f"{cls.__typename__} cannot have more than one subcommand field")
            elif field.kind is FieldKind.POSITIONAL:
                raise TypeError(f"{cls.__typename__} positional {field.long_name!r} cannot follow subcommand field {subcommand.long_name!r}")

        match field.kind:
            case FieldKind.SWITCH | FieldKind.OPTION:
                for name in filter(None, ("--" + field.long_name, field.short_name and "-" + field.short_name)):
                    if name in switches:
                        raise ValueError(f"{cls.__typename__} name {name!r} is already in use")
                    switches[name] = field
            case FieldKind.POSITIONAL:
                if positionals and not positionals[-1].required:
                    raise TypeError(f"{cls.__typename__} non-required positional {positionals[-1].long_name!r} must be the last positional")
                positionals.append(field)
            case FieldKind.SUBCOMMAND:
                metadata["subcommand"] = field

    if metadata["subcommand"] and positionals and not positionals[-1].required:
        raise TypeError(f"{cls.__typename__} non-required positional {positionals[-1].long_name!r} cannot precede a subcommand field")


class CommandSchema(metaclass=SchemaType):
    """
    Immutable description of one command.

    A schema is built once (by hand, or by argosy.commands from a function
    signature) and shared read-only by every matching pass. Its Subcommand field,
    when present, maps names to child schemas, which makes a schema a tree.

    Parameters
    - name: str, the command name used in usage lines.
    - fields: Iterable[Field] in declaration order.
    - descr: Unset | str | Text, description shown under the usage line.
    - examples, notes: Iterable[str]; "{command_name}" expands to the command path in help.
    - error_codes: Mapping[int, str] | Iterable[tuple[int, str]] (help only).
    - factory: Unset | Callable[..., T]; called with one keyword per field dest to
      build the typed result. Without it, the result is an Arguments namespace.
    """

    __introspectable__ = (
        "name",
        "descr",
        "fields",
        "examples",
        "notes",
        "error_codes",
        "factory",
        "switches",
        "positionals",
        "subcommand",
    )

    __displayable__ = (
        "name",
        "descr",
        "fields",
    )

    def __new__(
            cls,
            name,
            /,
            fields=(),
            descr=Unset,
            examples=(),
            notes=(),
            error_codes=(),
            factory=Unset
    ):
        metadata = {
            "name": name,
            "descr": descr,
            "fields": fields,
            "examples": examples,
            "notes": notes,
            "error_codes": error_codes,
            "factory": factory,
        }
        _process_strings(cls, metadata)
        _process_iterables(cls, metadata)
        _process_fields(cls, metadata)

        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        return self

    @property
    def commands(self):
        """
        Mapping of subcommand names to child schemas (empty without a Subcommand field).
        """
        return self.subcommand.commands if self.subcommand else {}

    def lookup(self, name, /):
        """
        Return the Switch/Option declared under "--long" or "-s", or None.
        """
        return self._switches.get(name)


__all__ = (
    "Arity",
    "FieldKind",
    "Field",
    "Switch",
    "Option",
    "Positional",
    "Subcommand",
    "CommandSchema",
)
