"""
Lieut faults (errors) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every fault an app can raise
  or report. Codes are grouped by domain to keep logs/searches predictable.
- ExitCode: the integer codes App.run() hands back to the caller.
- AppException and its subclasses: carry message + options and know how to render
  themselves as one "<prog>: error[<code>]: <message>" line (plus an optional hint).
- report(): central entry point to write a fault to a stream through rich.

Integration
- registration faults (invalid command, duplicate flags, reserved flag) are raised
  synchronously to the registrar.
- run-time faults (init, parse, unknown command, execution) are reported on the
  app's err stream and translated into an ExitCode; the process is never exited here.
"""
import sys
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.text import Text

from .utils import Unset, coalesce


class FaultCode(IntEnum):
    """
    canonical fault codes used across lieut (stable identifiers).

    grouping (by high-level domain)
    - registration (2110x)
      • INVALID_COMMAND, DUPLICATE_FLAGS, RESERVED_FLAG
    - run (2120x)
      • INIT_FAILURE, ARGUMENT_PARSE, UNKNOWN_COMMAND, EXECUTION_FAILURE
    """
    # --- registration errors (211xx) ---
    INVALID_COMMAND   = 21101
    DUPLICATE_FLAGS   = 21102
    RESERVED_FLAG     = 21103

    # --- run errors (212xx) ---
    INIT_FAILURE      = 21201
    ARGUMENT_PARSE    = 21202
    UNKNOWN_COMMAND   = 21203
    EXECUTION_FAILURE = 21204

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels. when no mapping
        is present, the numeric value is returned as a string.
        """
        return str(getattr(sys.modules.get("__main__"), "__codes__", {}).get(self, self.value))


class ExitCode(IntEnum):
    """exit codes returned by App.run()."""
    SUCCESS = 0
    FAILURE = 1
    USAGE   = 2


class AppException(Exception):
    code = Unset

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(coalesce(message, ""))
        self.message = message
        self.options = MappingProxyType(options)

    def __str__(self):
        return coalesce(self.message, "")

    def __rich__(self):
        main = sys.modules.get("__main__")

        styles = defaultdict(str, {
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #00E5FF",  # neon cyan fault code
            "error-title": "bold #FF4DA6",  # friendly pinky label
            "error-message": "#C8C8D0",  # soft light gray message
            "hint-arrow": "#9CE19C dim",  # gentle green arrow
            "hint": "italic #9CE19C",  # gentle green hint text
        } | getattr(main, "__styles__", {}))

        colorful = self.options.get("colorful", True)

        def styler(style):
            return styles[style] if colorful else ""

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            if isinstance(fragment, Text):
                return fragment
            return Text(str(fragment), styler(style))

        title = text("error", "error-title")
        if self.code is not Unset:
            title = Text.assemble(title, "[", text(self.code.normalize(), "code"), "]")

        line = Text.assemble(
            text(self.options.get("prog"), "prog-name"),
            ": " if self.options.get("prog") else "",
            title,
            ": ",
            text(self.message, "error-message"),
        )

        if not self.options.get("hint"):
            return line

        hint = Text.assemble(text(" → ", "hint-arrow"), text(self.options["hint"], "hint"))
        return Group(line, hint)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        replaced = type(self)(self.message, **{**self.options, **overrides})
        replaced.__cause__ = self.__cause__
        return replaced


class InvalidCommandError(AppException, ValueError):
    code = FaultCode.INVALID_COMMAND


class DuplicateFlagsError(AppException, ValueError):
    code = FaultCode.DUPLICATE_FLAGS


class ReservedFlagError(AppException, ValueError):
    code = FaultCode.RESERVED_FLAG


class InitError(AppException):
    code = FaultCode.INIT_FAILURE


class ArgumentParseError(AppException):
    code = FaultCode.ARGUMENT_PARSE


class UnknownCommandError(AppException):
    code = FaultCode.UNKNOWN_COMMAND


class ExecutionError(AppException):
    code = FaultCode.EXECUTION_FAILURE


def report(fault, /, file, **options):
    """
    write a fault to a text stream.

    contract
    - fault must provide a __replace__ method (see AppException); options are merged
      into the fault before rendering (typical: prog, hint, colorful).
    - rendering goes through a rich console bound to the stream, so colours are only
      emitted when the stream is a terminal and long messages are never wrapped.
    """
    if not hasattr(fault, "__replace__") or not callable(fault.__replace__):
        raise TypeError("report() argument must have a __replace__ method")
    console = Console(
        file=file,
        highlight=False,
        soft_wrap=True,
        emoji=False,
        no_color=not options.get("colorful", True),
    )
    console.print(fault.__replace__(**options))


__all__ = (
    "FaultCode",
    "ExitCode",
    "AppException",
    "InvalidCommandError",
    "DuplicateFlagsError",
    "ReservedFlagError",
    "InitError",
    "ArgumentParseError",
    "UnknownCommandError",
    "ExecutionError",
    "report",
)
