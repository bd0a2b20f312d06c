"""
Argosy matching engine: raw arguments + CommandSchema -> MatchOutcome.

What this module provides
- match(schema, args, command_name=...): the single entry point. Pure and
  synchronous; never raises for user input, never performs I/O.
- redact(schema, args, command_name=...): replay a pass and return the argument
  vector with every user-supplied value replaced by its field name.

Algorithm (per schema level)
1. Walk tokens in order.
   • "--help"/"-h" (before "--") stops the pass: EarlyExit with the help of the
     current (sub)schema, whatever was recorded so far.
   • "help" as a bare word (before "--", never as an option value) does the
     same; subcommand names after it select whose help is shown, any other
     argument after it is unrecognized.
   • Switch: presence recorded (idempotent), or counted for counting switches.
     An inline value is unrecognized. An early-exit switch stops the pass with
     an EarlyExit carrying its text.
   • Option: inline value, else the next raw argument; none left -> MissingValue.
     Repeated options append; others supplied again -> one DuplicateOption per
     field (the first value is kept, later values are still consumed).
   • Unknown flag or malformed token -> UnrecognizedArgument (token dropped).
2. Bare tokens fill positionals in declaration order (a repeated last positional
   keeps absorbing). Once they are full, a Subcommand field turns the token into
   a subcommand name and matching recurses with the remaining stream; an unknown
   name -> UnknownSubcommand and the rest of the stream is only scanned for help.
   Without a Subcommand field, every extra token is an UnrecognizedArgument.
3. At the end of the level: Required fields that captured nothing and carry no
   structural diagnostic -> MissingRequiredValue; then every captured raw value
   of a clean field is converted (InvalidValue on failure).
4. Any diagnostic at any level -> Failure (encounter order). Otherwise defaults
   are resolved lazily and the typed result is built, innermost level first.

States (logged at debug level)
- SCANNING -> COLLECTING_POSITIONALS -> IN_SUBCOMMAND -> DONE
"""
import difflib
import logging
from enum import StrEnum

from rich.text import Text

from .conversion import convert, resolve_default
from .faults import *
from .help import render_help
from .outcomes import *
from .schema import CommandSchema, FieldKind
from .tokens import *
from .tokens import HELP_FLAGS, HELP_KEYWORD
from .utils import *

logger = logging.getLogger(__name__)


class State(StrEnum):
    SCANNING = "scanning"
    COLLECTING_POSITIONALS = "collecting-positionals"
    IN_SUBCOMMAND = "in-subcommand"
    DONE = "done"


class _HelpRequested(Exception):
    """
    Internal: unwinds every level of recursion once a help flag is seen.
    """

    def __init__(self, schema, route):
        super().__init__(route)
        self.schema = schema
        self.route = route


class _ExitRequested(Exception):
    """
    Internal: unwinds every level of recursion once an early-exit switch is seen.
    """

    def __init__(self, text):
        super().__init__(text)
        self.text = text


def _suggest(word, candidates):
    if matches := difflib.get_close_matches(word, list(candidates), n=1):
        return f"did you mean '{matches[0]}'?"
    return None


def _display(field):
    """
    How a field is named in messages: "--long" for switches/options, the bare
    name for positionals and subcommand fields.
    """
    if field.kind in (FieldKind.SWITCH, FieldKind.OPTION):
        return "--" + field.long_name
    return field.long_name


class _Level:
    """
    Matching state for one schema level of one pass.

    Holds the raw values captured per field dest, how often each switch was
    seen, the dests that already carry a structural diagnostic, and the
    selected subcommand.
    """

    def __init__(self, schema, route, stream, aggregator, trace):
        self.schema = schema
        self.route = route
        self.stream = stream
        self.aggregator = aggregator
        self.trace = trace
        self.state = State.SCANNING
        self.captured = {
            field.dest: [] for field in schema.fields if field.kind in (FieldKind.OPTION, FieldKind.POSITIONAL)
        }
        self.values = {}
        self.counts = {}
        self.faulted = set()
        self.position = 0
        self.selection = None

    @property
    def path(self):
        """
        Subcommand names traversed to reach this level (the command name excluded).
        """
        return self.route[1:]

    def transition(self, state):
        if state is not self.state:
            logger.debug("%s: %s -> %s", " ".join(self.route), self.state, state)
            self.state = state

    def fault(self, type, message, /, field=None, **options):
        """
        Record a diagnostic; a field-bound diagnostic marks the field as faulted.
        """
        options.setdefault("hint", f"run '{' '.join(self.route)} --help' to see the accepted arguments")
        diagnostic = type(message, field=field and field.long_name, path=self.path, **options)
        if field is not None:
            self.faulted.add(field.dest)
        logger.debug("%s: recorded %s (%s)", " ".join(self.route), diagnostic.kind.name, message)
        self.aggregator.record(diagnostic)

    # -- scanning ---------------------------------------------------------

    def scan(self):
        for token in self.stream:
            if isinstance(token, LongFlag | ShortFlag) and token.raw in HELP_FLAGS:
                logger.debug("%s: help requested", " ".join(self.route))
                raise _HelpRequested(self.schema, self.route)

            match token:
                case LongFlag() | ShortFlag():
                    self.flag(token)
                case Malformed(raw=raw):
                    self.fault(
                        UnrecognizedArgumentError,
                        f"unrecognized argument '{raw}'",
                        token=raw,
                        hint="combined short flags are not supported; pass each one separately",
                    )
                case EndOfOptions():
                    self.trace.append(token.raw)
                case Bare(text=text) if text == HELP_KEYWORD and not self.stream.ended:
                    self.keyword()
                    break
                case Bare(text=text):
                    if self.bare(text):
                        break

        self.finish()

    def keyword(self):
        """
        Handle the "help" keyword. Subcommand names following it narrow the help
        to that subcommand; any other argument after it is unrecognized.
        """
        schema, route, trailing = self.schema, self.route, False
        for token in self.stream:
            match token:
                case LongFlag() | ShortFlag() if token.raw in HELP_FLAGS:
                    continue
                case Bare(text=text) if text in schema.commands and not self.stream.ended:
                    schema, route = schema.commands[text], route + (text,)
                    continue
            trailing = True
            self.fault(
                UnrecognizedArgumentError,
                f"unrecognized argument '{token.raw}'",
                token=token.raw,
                hint=f"only subcommand names may follow '{HELP_KEYWORD}'",
            )

        if not trailing:
            logger.debug("%s: help requested by keyword", " ".join(route))
            raise _HelpRequested(schema, route)

    def flag(self, token):
        key = "--" + token.name if isinstance(token, LongFlag) else "-" + token.char
        if (field := self.schema.lookup(key)) is None:
            options = {"token": token.raw}
            if hint := _suggest(key, list(self.schema.switches) + list(HELP_FLAGS)):
                options["hint"] = hint
            self.fault(UnrecognizedArgumentError, f"unrecognized argument '{token.raw}'", **options)
            return

        inline = token.value if isinstance(token, LongFlag) else None

        if field.kind is FieldKind.SWITCH:
            if inline is not None:
                self.fault(
                    UnrecognizedArgumentError,
                    f"unrecognized argument '{token.raw}': switch '{_display(field)}' does not take a value",
                    token=token.raw,
                    hint=f"pass '{key}' on its own",
                )
                return
            if field.early_exit is not Unset:
                logger.debug("%s: early exit on '%s'", " ".join(self.route), key)
                raise _ExitRequested(field.early_exit)
            self.counts[field.dest] = self.counts.get(field.dest, 0) + 1
            self.trace.append(key)
            return

        value = inline if inline is not None else self.stream.take_value()
        if value is None:
            self.fault(
                MissingValueError,
                f"no value provided for option '{_display(field)}'",
                field,
                token=token.raw,
                hint=f"write '{_display(field)} <{field.metavar}>' or '{_display(field)}=<{field.metavar}>'",
            )
            return
        self.trace.extend((key, field.long_name))

        captured = self.captured[field.dest]
        if captured and not field.repeated:
            if field.dest not in self.faulted:
                self.fault(
                    DuplicateOptionError,
                    f"option '{_display(field)}' was provided more than once",
                    field,
                    token=token.raw,
                    hint=f"'{_display(field)}' accepts a single value; pass it only once",
                )
            return
        captured.append(value)

    def bare(self, text):
        """
        Route a bare token; returns True when the rest of the stream was handed
        to (or drained for) a subcommand.
        """
        positionals = self.schema.positionals
        if self.position < len(positionals):
            self.transition(State.COLLECTING_POSITIONALS)
            field = positionals[self.position]
            self.captured[field.dest].append(text)
            self.trace.append(field.long_name)
            if not field.repeated:
                self.position += 1
            return False

        if (subcommand := self.schema.subcommand) is None:
            self.fault(
                UnrecognizedArgumentError,
                f"unrecognized argument '{text}'",
                token=text,
                hint="every positional argument is already filled",
            )
            return False

        if (child := subcommand.commands.get(text)) is None:
            self.fault(
                UnknownSubcommandError,
                f"unrecognized subcommand '{text}'",
                subcommand,
                token=text,
                hint=_suggest(text, subcommand.commands) or "expected one of: %s" % ", ".join(subcommand.commands),
            )
            for token in self.stream:
                if isinstance(token, LongFlag | ShortFlag) and token.raw in HELP_FLAGS:
                    raise _HelpRequested(self.schema, self.route)
            return True

        self.transition(State.IN_SUBCOMMAND)
        self.trace.append(text)
        logger.debug("%s: dispatching to subcommand %r", " ".join(self.route), text)
        level = _Level(child, self.route + (text,), self.stream, self.aggregator, self.trace)
        self.aggregator.reach(child, level.route)
        level.scan()
        self.selection = (text, level)
        return True

    # -- end of level -----------------------------------------------------

    def finish(self):
        for field in self.schema.fields:
            if not field.required or field.dest in self.faulted:
                continue
            match field.kind:
                case FieldKind.OPTION:
                    if not self.captured[field.dest]:
                        self.fault(
                            MissingRequiredValueError,
                            f"required option '{_display(field)}' not provided",
                            field,
                            hint=f"add '{_display(field)} <{field.metavar}>'",
                        )
                case FieldKind.POSITIONAL:
                    if not self.captured[field.dest]:
                        self.fault(
                            MissingRequiredValueError,
                            f"required positional argument '{field.long_name}' not provided",
                            field,
                            hint=f"add a value for <{field.metavar}>",
                        )
                case FieldKind.SUBCOMMAND:
                    if self.selection is None:
                        self.fault(
                            MissingRequiredValueError,
                            "one of the following subcommands must be present: %s" % ", ".join(field.commands),
                            field,
                        )

        for field in self.schema.fields:
            if field.dest not in self.captured or field.dest in self.faulted:
                continue
            values = []
            for raw in self.captured[field.dest]:
                value, message = convert(field, raw)
                if message is not None:
                    subject = "option" if field.kind is FieldKind.OPTION else "positional argument"
                    self.fault(
                        InvalidValueError,
                        f"error parsing {subject} '{_display(field)}' with value '{raw}': {message}",
                        field,
                        token=raw,
                        value=raw,
                    )
                    break
                values.append(value)
            else:
                self.values[field.dest] = values

        self.transition(State.DONE)

    # -- result -----------------------------------------------------------

    def build(self):
        """
        Build the typed result of this level; only called when the whole pass is clean.
        """
        kwargs = {}
        for field in self.schema.fields:
            match field.kind:
                case FieldKind.SWITCH:
                    if (count := self.counts.get(field.dest)) is None:
                        kwargs[field.dest] = resolve_default(field)
                    else:
                        kwargs[field.dest] = count if field.count else True
                case FieldKind.SUBCOMMAND:
                    if self.selection is None:
                        kwargs[field.dest] = resolve_default(field)
                    else:
                        name, level = self.selection
                        kwargs[field.dest] = Selection(name, level.build())
                case _:
                    if values := self.values.get(field.dest):
                        kwargs[field.dest] = values if field.repeated else values[0]
                    else:
                        kwargs[field.dest] = resolve_default(field)

        if factory := self.schema.factory:
            return factory(**kwargs)
        return Arguments(**kwargs)


def _pass(schema, args, command_name):
    if not isinstance(schema, CommandSchema):
        raise TypeError("match() first argument must be a command schema")
    if not isinstance(command_name, str | Unset):
        raise TypeError("match() 'command_name' must be a string")

    route = (coalesce(command_name, schema.name),)
    aggregator = Aggregator(schema, route)
    trace = []
    level = _Level(schema, route, tokenize(args), aggregator, trace)

    try:
        level.scan()
    except _HelpRequested as request:
        rendered = render_help(request.schema, request.route, colorful=True)
        return EarlyExit(rendered.plain, True, rendered), trace
    except _ExitRequested as request:
        rendered = request.text if isinstance(request.text, Text) else Text(request.text)
        return EarlyExit(rendered.plain, True, rendered), trace

    if aggregator:
        logger.debug("%s: failed with %d diagnostic(s)", route[0], len(aggregator))
        return aggregator.failure(), trace
    return Value(level.build()), trace


def match(schema, args, /, *, command_name=Unset):
    """
    Match raw arguments (program name excluded) against a schema.

    Parameters
    - schema: CommandSchema
    - args: Iterable[str]
    - command_name: str; the name shown in usage lines (defaults to schema.name).

    Returns
    - Value(result) | EarlyExit(text, success, rendered) | Failure(diagnostics, usage, route)

    Raises
    - TypeError on a non-schema or non-string arguments (programming errors).
      Exceptions raised by default factories or by the schema factory propagate.
    """
    outcome, _ = _pass(schema, args, command_name)
    return outcome


def redact(schema, args, /, *, command_name=Unset):
    """
    Return args with every user-supplied value replaced by its field name.

    Switch and option names, subcommand names and "--" are kept; option values
    become the option's long name and positional values the positional's name,
    so the vector can be logged without leaking user data. Inline option values
    ("--name=value") are split into two entries.

    Returns
    - list[str] on success, otherwise the Failure or EarlyExit of the pass.
    """
    outcome, trace = _pass(schema, args, command_name)
    if not isinstance(outcome, Value):
        return outcome
    return trace


__all__ = (
    "State",
    "match",
    "redact",
)
