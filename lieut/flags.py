r"""
Lieut flag scopes: definition, parsing and listing of flags.

Overview
- Flags protocol (duck-typed, see isflags)
  A flag scope is any object providing:
  • parse(arguments)        parse the tokens, raising ArgumentParseError on failure
  • args()                  positional arguments left after parsing
  • names()                 set of defined flag names
  • lookup(name)            the Flag record for a name, or None
  • define(flag)            adopt an existing Flag record (its value cell is shared)
  • print_defaults(file)    write the flag listing
  • __iter__()              iterate the Flag records

- Value cells
  • BoolValue, StringValue, IntValue, FloatValue hold the current value of a flag
    and know how to convert a token and how to display a default.
  • A cell may be shared by several scopes; parsing in any of them updates it.

- FlagSet
  • The concrete scope. Definitions are kept as Flag records; token-level parsing
    is delegated to argparse, which is rebuilt on every parse() so flags adopted
    late (built-ins, parent flags) are honoured.
  • Flags accept single and double dash forms (-name, --name), spaced or inline
    values (-name value, -name=value); a spaced value is taken as is, even when it
    starts with a dash. Booleans are set by -name alone or take an inline value
    (-name=false). Names match exactly, prefixes are unrecognized.
  • Parsing stops at the first positional and a leading "--" is dropped from the
    positionals.
  • Failure policy (ErrorHandling): CONTINUE raises ArgumentParseError to the caller,
    EXIT writes the error and the usage to the scope's output and exits with 2.

- write_defaults(flags, file)
  Listing layout (sorted by name):
      -name typename
          \tusage (default value)
  A one-letter boolean keeps its usage on the same line. The type name comes from a
  back-quoted word in the usage (quotes removed) or from the value kind. Zero
  defaults are not displayed; string defaults are double-quoted.
"""
import argparse
import json
import operator
import re
import sys
from collections import namedtuple
from enum import IntEnum

from .faults import ArgumentParseError
from .metadata import infer_name
from .utils import Unset, coalesce, mirror, rename

_REMAINDER = "+arguments"

_PROTOCOL = ("parse", "args", "names", "lookup", "define", "print_defaults", "__iter__")


class ErrorHandling(IntEnum):
    """what FlagSet.parse() does when the arguments are rejected."""
    CONTINUE = 0
    EXIT     = 1


class Value:
    """
    mutable cell holding the current value of one flag.

    subclasses set
    - typename: label shown in listings ("" hides it)
    - zero:     the value used when no default is given
    and implement convert(text) / format(value).
    """
    typename = "value"
    zero = None

    def __init__(self, default=Unset):
        self._value = coalesce(default, type(self).zero)

    def get(self):
        return self._value

    def set(self, value):
        self._value = value

    def convert(self, text):
        raise NotImplementedError

    def format(self, value):
        return str(value)

    def __repr__(self):
        return f"{type(self).__name__}({self._value!r})"


class BoolValue(Value):
    typename = ""
    zero = False

    def convert(self, text):
        match text.strip().lower():
            case "1" | "t" | "true":
                return True
            case "0" | "f" | "false":
                return False
        raise ValueError(f"invalid boolean {text!r}")

    def format(self, value):
        return "true" if value else "false"


class StringValue(Value):
    typename = "string"
    zero = ""

    def convert(self, text):
        return text

    def format(self, value):
        return json.dumps(value, ensure_ascii=False)


class IntValue(Value):
    typename = "int"
    zero = 0

    def convert(self, text):
        return int(text, 0)


class FloatValue(Value):
    typename = "float"
    zero = 0.0

    def convert(self, text):
        return float(text)

    def format(self, value):
        return format(value, "g")


Flag = namedtuple("Flag", ("name", "usage", "value", "default"))
Flag.__doc__ = "definition of one flag: name, usage text, value cell, displayed default."


def isflags(object, /):
    """return True when the object provides every operation of a flag scope."""
    return all(callable(getattr(object, name, None)) for name in _PROTOCOL)


def unquote_usage(flag, /):
    """
    extract a type name and the display usage of a flag.

    a back-quoted word in the usage wins ("a `file` to read" → ("file", "a file to read"));
    otherwise the value kind supplies the name.
    """
    if match := re.search(r"`([^`]*)`", flag.usage):
        name = match.group(1)
        return name, flag.usage[:match.start()] + name + flag.usage[match.end():]
    return getattr(flag.value, "typename", "value"), flag.usage


def _iszero(flag):
    try:
        zero = type(flag.value).zero
        return flag.default == flag.value.format(zero)
    except (AttributeError, TypeError, ValueError):
        return not flag.default


def write_defaults(flags, file, /):
    """write the listing of the given Flag records, sorted by name."""
    for flag in sorted(flags, key=operator.attrgetter("name")):
        typename, usage = unquote_usage(flag)
        line = "  -" + flag.name
        if typename:
            line += " " + typename
        # one-letter booleans keep the usage on the same line
        line += "\t" if len(line) <= 4 else "\n    \t"
        line += usage.replace("\n", "\n    \t")
        if not _iszero(flag):
            line += " (default %s)" % flag.default
        file.write(line + "\n")


def _validate_name(name):
    if not isinstance(name, str):
        raise TypeError("flag name must be a string")
    if not name or name.startswith("-") or "=" in name or re.search(r"\s", name):
        raise ValueError(f"bad flag name {name!r}")


def _converter(value):
    # argparse reports conversion failures using the converter's __name__
    return rename(lambda text: value.convert(text), value.typename or "bool")


class _Parser(argparse.ArgumentParser):
    def error(self, message):
        raise ArgumentParseError(message)


def _canonicalize(flags, arguments):
    """
    rewrite the leading flag tokens as "--name=value".

    scanning stops at the first positional or at "--". a boolean without an inline
    value becomes "--name=true"; any other flag takes the next token as its value,
    even one starting with a dash. names must match exactly.
    """
    tokens = []
    index = 0
    while index < len(arguments):
        token = arguments[index]
        if len(token) < 2 or not token.startswith("-") or token == "--":
            break
        name, separator, value = token[2 if token.startswith("--") else 1:].partition("=")
        if not name or name.startswith("-") or (flag := flags.get(name)) is None:
            raise ArgumentParseError(f"unrecognized arguments: {token}")
        index += 1
        if not separator:
            if isinstance(flag.value, BoolValue):
                value = "true"
            elif index < len(arguments):
                value = arguments[index]
                index += 1
            else:
                raise ArgumentParseError(f"argument -{name}/--{name}: expected one argument")
        tokens.append(f"--{name}={value}")
    return tokens + arguments[index:]


class FlagSet:
    """
    concrete flag scope backed by argparse.

    attributes
    - name:     scope name (used as argparse prog and in the default usage header)
    - on_error: ErrorHandling policy applied by parse()
    - output:   stream used by the EXIT policy and the default usage (None → stderr)
    - usage:    zero-argument callable invoked by the EXIT policy after the error
    """
    name = mirror("name")
    on_error = mirror("on_error")

    def __init__(self, name="", on_error=ErrorHandling.CONTINUE, *, output=None):
        if not isinstance(name, str):
            raise TypeError("flag set name must be a string")
        self._name = name
        self._on_error = ErrorHandling(on_error)
        self._flags = {}
        self._arguments = []
        self._parsed = False
        self.output = output
        self.usage = self._default_usage

    def __repr__(self):
        return f"flag-set(name={self._name!r}, flags={tuple(sorted(self._flags))!r})"

    def __iter__(self):
        return iter(sorted(self._flags.values(), key=operator.attrgetter("name")))

    def __len__(self):
        return len(self._flags)

    def __contains__(self, name):
        return name in self._flags

    def __getitem__(self, name):
        return self._flags[name].value.get()

    def var(self, value, name, usage=""):
        """define a flag around an existing value cell; returns the Flag record."""
        _validate_name(name)
        if not isinstance(usage, str):
            raise TypeError("flag usage must be a string")
        if not isinstance(value, Value):
            raise TypeError("flag value must be a Value")
        if name in self._flags:
            raise ValueError(f"{self._name or 'flag set'} flag redefined: {name}")
        flag = self._flags[name] = Flag(name, usage, value, value.format(value.get()))
        return flag

    def bool(self, name, default=False, usage=""):
        return self.var(BoolValue(default), name, usage).value

    def string(self, name, default="", usage=""):
        return self.var(StringValue(default), name, usage).value

    def int(self, name, default=0, usage=""):
        return self.var(IntValue(default), name, usage).value

    def float(self, name, default=0.0, usage=""):
        return self.var(FloatValue(default), name, usage).value

    def define(self, flag, /):
        """
        adopt a Flag record from another scope.

        adopting the very same record twice is a no-op; a different record under an
        existing name is a redefinition.
        """
        if not isinstance(flag, Flag):
            raise TypeError("define() argument must be a Flag")
        _validate_name(flag.name)
        if (current := self._flags.get(flag.name)) is not None:
            if current is flag:
                return flag
            raise ValueError(f"{self._name or 'flag set'} flag redefined: {flag.name}")
        self._flags[flag.name] = flag
        return flag

    def lookup(self, name):
        return self._flags.get(name)

    def names(self):
        return frozenset(self._flags)

    def parsed(self):
        return self._parsed

    def args(self):
        return list(self._arguments)

    def parse(self, arguments):
        """
        parse the tokens into the value cells and keep the positionals.

        errors
        - CONTINUE: raises ArgumentParseError.
        - EXIT: writes the error and the usage to the output and exits with status 2.
        """
        arguments = list(arguments)
        if not all(isinstance(argument, str) for argument in arguments):
            raise TypeError("parse() arguments must be strings")

        parser = _Parser(prog=self._name or None, add_help=False, allow_abbrev=False)
        for flag in self._flags.values():
            # booleans only ever see the inline form, see _canonicalize()
            nargs = "?" if isinstance(flag.value, BoolValue) else None
            parser.add_argument("-" + flag.name, "--" + flag.name, dest=flag.name, nargs=nargs,
                                type=_converter(flag.value), default=argparse.SUPPRESS)
        parser.add_argument(_REMAINDER, nargs=argparse.REMAINDER)

        self._parsed = True
        try:
            namespace = parser.parse_args(_canonicalize(self._flags, arguments))
        except ArgumentParseError as error:
            self._fail(error)
            raise

        for name, value in vars(namespace).items():
            if name in self._flags:
                self._flags[name].value.set(value)

        remainder = list(getattr(namespace, _REMAINDER, None) or ())
        if remainder and remainder[0] == "--":
            del remainder[0]
        self._arguments = remainder

    def print_defaults(self, file=None):
        write_defaults(self, file if file is not None else self._resolve_output())

    def _resolve_output(self):
        return self.output if self.output is not None else sys.stderr

    def _default_usage(self):
        output = self._resolve_output()
        output.write(f"Usage of {self._name}:\n" if self._name else "Usage:\n")
        self.print_defaults(output)

    def _fail(self, error):
        if self._on_error is ErrorHandling.EXIT:
            self._resolve_output().write(f"{error}\n")
            self.usage()
            sys.exit(2)


command_line = FlagSet(infer_name(), ErrorHandling.EXIT)
"""process-wide scope named after the running program; exits on bad arguments."""


__all__ = (
    "ErrorHandling",
    "Value",
    "BoolValue",
    "StringValue",
    "IntValue",
    "FloatValue",
    "Flag",
    "FlagSet",
    "isflags",
    "unquote_usage",
    "write_defaults",
    "command_line",
)
