"""
Argosy tokenizer: purely syntactic classification of raw arguments.

Token kinds
- LongFlag(name, value): "--name" or "--name=value" (split at the first '=';
  value is None when no '=' is present, and may be the empty string).
- ShortFlag(char): a single dash followed by exactly one character ("-j").
- Bare(text): anything else, including a lone "-" and every argument after "--".
- EndOfOptions(): the "--" marker itself.
- Malformed(text): "-abc" (combined short flags are not decomposed) or "--=x".

Every token keeps the raw string it came from under `raw`, so diagnostics can
quote exactly what the user typed.

The stream
- TokenStream classifies lazily, one argument per next(), and never rewinds.
- take_value() hands the next argument to an option verbatim, without
  classifying it ("-5" or "--" are legal option values); the universal help
  flag is the one argument it refuses to hand out.
- Restarting means building a new stream from the original argument list.
"""
from collections import deque
from collections.abc import Iterable
from typing import NamedTuple

HELP_FLAGS = ("--help", "-h")
HELP_KEYWORD = "help"


class LongFlag(NamedTuple):
    name: str
    value: str | None
    raw: str


class ShortFlag(NamedTuple):
    char: str
    raw: str


class Bare(NamedTuple):
    text: str
    raw: str


class EndOfOptions(NamedTuple):
    raw: str = "--"


class Malformed(NamedTuple):
    text: str
    raw: str


def classify(argument, /):
    """
    Classify a single raw argument as if no "--" marker had been seen yet.
    """
    if argument == "--":
        return EndOfOptions()
    if argument.startswith("--"):
        name, separator, value = argument[2:].partition("=")
        if not name:
            return Malformed(argument, argument)
        return LongFlag(name, value if separator else None, argument)
    if argument.startswith("-") and len(argument) > 1:
        if len(argument) == 2:
            return ShortFlag(argument[1], argument)
        return Malformed(argument, argument)
    return Bare(argument, argument)


class TokenStream:
    """
    Lazy, forward-only stream of classified tokens.
    """

    def __init__(self, arguments, /):
        if isinstance(arguments, str) or not isinstance(arguments, Iterable):
            raise TypeError("TokenStream() argument must be an iterable of strings")
        self._pending = deque()
        for argument in arguments:
            if not isinstance(argument, str):
                raise TypeError("TokenStream() argument must be an iterable of strings")
            self._pending.append(argument)
        self._ended = False

    @property
    def ended(self):
        """
        True once the "--" marker has been consumed.
        """
        return self._ended

    def __iter__(self):
        return self

    def __next__(self):
        if not self._pending:
            raise StopIteration
        argument = self._pending.popleft()
        if self._ended:
            return Bare(argument, argument)
        token = classify(argument)
        if isinstance(token, EndOfOptions):
            self._ended = True
        return token

    def __bool__(self):
        return bool(self._pending)

    def __len__(self):
        return len(self._pending)

    def take_value(self):
        """
        Pop the next raw argument for an option, or return None when there is none.

        The help flag is never taken as a value (unless "--" was already seen),
        so "--name --help" still asks for help.
        """
        if not self._pending:
            return None
        if not self._ended and self._pending[0] in HELP_FLAGS:
            return None
        return self._pending.popleft()

    def remaining(self):
        """
        Drain and return the raw arguments that were not consumed yet.
        """
        remaining = list(self._pending)
        self._pending.clear()
        return remaining


def tokenize(arguments, /):
    """
    Return a lazy TokenStream over the given raw arguments.
    """
    return TokenStream(arguments)


__all__ = (
    "LongFlag",
    "ShortFlag",
    "Bare",
    "EndOfOptions",
    "Malformed",
    "TokenStream",
    "classify",
    "tokenize",
)
