"""
Lieut applications: metadata, commands, rendering and the run loop.

What this module provides
- SingleCommandApp: one executor and one flag scope own every argument.
- MultiCommandApp: an app-level flag scope plus a registry of one-level commands,
  each with its own scope and executor (see set_command()).

Rendering (written to the app's out stream)
- print_usage():   "Usage: <app> <usage>" or "Usage: <app> <command> <usage>"
- print_version(): "<app>[ <version>] (<os>/<arch>)"
- print_help():    usage, summary, commands, options and version sections separated
                   by exactly one blank line; empty sections are left out.

Run loop (run(context, arguments) → ExitCode)
- init      the on_init() hook; a failure is reported and ends the run (1)
- resolve   first token names a command? (multi-command apps only)
- intercept built-in help/version and app flags are made available to the scope
- parse     the effective scope parses; a rejection is reported with usage (2)
- builtins  help wins over version, both end the run (0)
- execute   the executor runs with (context, positionals, out); a failure is reported (1)
The app never exits the process; the caller hands the code to sys.exit().

Built-in flags
- "help" and "version" are reserved boolean flags present in every scope; a user
  flag with either name is a ReservedFlagError raised at construction/registration.
"""
import io
import re
import sys
from types import MappingProxyType

from .commands import Registry, make_command, resolve
from .context import Context
from .faults import *
from .flags import FlagSet, isflags, write_defaults
from .metadata import *
from .utils import Discard, Unset, coalesce, mirror

HELP_USAGE = "Display the help message"
VERSION_USAGE = "Display the application version"


def _builtins():
    flags = FlagSet()
    flags.bool("help", False, HELP_USAGE)
    flags.bool("version", False, VERSION_USAGE)
    return MappingProxyType({flag.name: flag for flag in flags})


# shared by every app so one scope can serve several apps (e.g. flags.command_line)
BUILTINS = _builtins()


class App:
    """
    shared machinery of single and multi-command apps (not instantiated directly).

    read-only attributes: info (completed AppInfo), flags (app scope), out, err.
    """
    info = mirror("info")
    flags = mirror("flags")
    out = mirror("out")
    err = mirror("err")

    def __init__(self, info, flags, out, err, *, usage, colorful=True):
        if info is None:
            info = AppInfo()
        self._info = complete_app_info(info, usage)

        if flags is None:
            flags = FlagSet(self._info.name)
        elif not isflags(flags):
            raise TypeError("app flags must be a flag scope")
        self._flags = flags

        self._out = out if out is not None else Discard()
        self._err = err if err is not None else Discard()
        self._colorful = bool(colorful)
        self._init = None
        self._builtins = BUILTINS
        self._arm(self._flags, "app")

    def __repr__(self):
        typename = re.sub(r"(?<!^)(?=[A-Z])", r"-", type(self).__name__).lower()
        return f"{typename}(info={self._info!r})"

    def on_init(self, hook, /):
        """register the pre-run hook (replacing any previous one); None clears it."""
        if hook is not None and not callable(hook):
            raise TypeError("on_init() argument must be callable")
        self._init = hook

    def print_version(self):
        self._out.write(self._version_line())

    def run(self, context=None, arguments=Unset):
        """
        run one invocation and return its ExitCode.

        - context: handed unchanged to the executor (a fresh Context when None).
        - arguments: tokens after the program name (sys.argv[1:] when omitted).
        """
        context = context if context is not None else Context()
        arguments = list(coalesce(arguments, sys.argv[1:]))

        for flag in self._builtins.values():
            flag.value.set(False)

        if self._init is not None:
            try:
                self._init()
            except Exception as error:
                return self._fail(InitError(str(error) or type(error).__name__), error, ExitCode.FAILURE)

        resolution = self._resolve(arguments)
        self._intercept(resolution)

        try:
            resolution.flags.parse(resolution.arguments)
        except ArgumentParseError as error:
            self._report(error)
            self._err.write(self._usage_line(resolution.command))
            return ExitCode.USAGE

        if self._builtins["help"].value.get():
            self._out.write(self._help_text(resolution.command))
            return ExitCode.SUCCESS
        if self._builtins["version"].value.get():
            self.print_version()
            return ExitCode.SUCCESS

        return self._dispatch(context, resolution)

    # --- internals ---

    def _arm(self, flags, owner):
        """make the built-in flags part of a scope (idempotent)."""
        for name, flag in self._builtins.items():
            if (current := flags.lookup(name)) is not None and current is not flag:
                raise ReservedFlagError(f"{owner} flag {name!r} is reserved")
        for flag in self._builtins.values():
            flags.define(flag)

    def _resolve(self, arguments):
        raise NotImplementedError

    def _intercept(self, resolution):
        self._arm(resolution.flags, "app" if resolution.command is None else resolution.command.info.name)

    def _dispatch(self, context, resolution):
        if resolution.executor is None:
            self._out.write(self._help_text(resolution.command))
            return ExitCode.SUCCESS
        return self._execute(context, resolution)

    def _execute(self, context, resolution):
        try:
            resolution.executor(context, resolution.flags.args(), self._out)
        except Exception as error:
            return self._fail(ExecutionError(str(error) or type(error).__name__), error, ExitCode.FAILURE)
        return ExitCode.SUCCESS

    def _fail(self, fault, cause, code):
        fault.__cause__ = cause
        self._report(fault)
        return code

    def _report(self, fault, **options):
        report(fault, self._err, prog=self._info.name, colorful=self._colorful, **options)

    def _usage_line(self, command=None):
        if command is None:
            return f"Usage: {self._info.name} {self._info.usage}\n"
        return f"Usage: {self._info.name} {command.info.name} {command.info.usage}\n"

    def _version_line(self):
        version = f" {self._info.version}" if self._info.version else ""
        return f"{self._info.name}{version} ({platform_tag()})\n"

    def _options(self, command=None):
        # command flags shadow app flags; built-ins always have the last word
        flags = {flag.name: flag for flag in self._flags}
        if command is not None:
            flags |= {flag.name: flag for flag in command.flags}
        return {**flags, **self._builtins}.values()

    def _sections(self, command=None):
        return []

    def _help_text(self, command=None):
        sections = [self._usage_line(command)]

        if summary := (command.info.summary if command is not None else self._info.summary):
            sections.append(summary + "\n")

        sections.extend(self._sections(command))

        options = io.StringIO()
        options.write("Options:\n\n")
        write_defaults(self._options(command), options)
        sections.append(options.getvalue())

        sections.append(self._version_line())
        return "\n".join(sections)


class SingleCommandApp(App):
    """
    app made of one executor and one flag scope.

    an executor of None makes the app print its help when run.
    """

    def __init__(self, info=None, executor=None, flags=None, out=None, err=None, *, colorful=True):
        if executor is not None and not callable(executor):
            raise TypeError("app executor must be callable")
        super().__init__(info, flags, out, err, usage=DEFAULT_COMMAND_USAGE, colorful=colorful)
        self._executor = executor

    def print_usage(self):
        self._out.write(self._usage_line())

    def print_help(self):
        self._out.write(self._help_text())

    def _resolve(self, arguments):
        return resolve(None, self._flags, self._executor, arguments)


class MultiCommandApp(App):
    """
    app made of an app-level flag scope and named one-level commands.

    running without a known command prints the help and returns ExitCode.USAGE.
    """

    def __init__(self, info=None, flags=None, out=None, err=None, *, colorful=True):
        super().__init__(info, flags, out, err, usage=DEFAULT_PARENT_COMMAND_USAGE, colorful=colorful)
        self._registry = Registry(self._flags)

    @property
    def commands(self):
        return MappingProxyType({command.info.name: command for command in self._registry})

    def set_command(self, info, executor=None, flags=None):
        """
        register (or overwrite) a command.

        errors (raised before the registry is touched)
        - InvalidCommandError: blank command name.
        - DuplicateFlagsError: the scope is the app's or another command's.
        - ReservedFlagError: the scope defines its own help/version flag.
        - TypeError: executor not callable, flags not a flag scope.
        """
        command = make_command(info, executor, flags)
        if self._registry.owns(command.flags, besides=command.info.name):
            raise DuplicateFlagsError(f"command {command.info.name!r} flags are already in use")
        self._arm(command.flags, command.info.name)
        self._registry.set(command)

    def command_names(self):
        return self._registry.names()

    def print_usage(self, command=""):
        self._out.write(self._usage_line(self._lookup(command)))

    def print_help(self, command=""):
        self._out.write(self._help_text(self._lookup(command)))

    def _lookup(self, name):
        if not isinstance(name, str):
            raise TypeError("command name must be a string")
        return self._registry.lookup(name) if name else None

    def _resolve(self, arguments):
        return resolve(self._registry, self._flags, None, arguments)

    def _intercept(self, resolution):
        super()._intercept(resolution)
        if resolution.command is None:
            return
        # app flags not shadowed by the command share their value cells with it
        for flag in self._flags:
            if resolution.flags.lookup(flag.name) is None:
                resolution.flags.define(flag)

    def _dispatch(self, context, resolution):
        if resolution.command is not None:
            return super()._dispatch(context, resolution)
        if arguments := resolution.flags.args():
            suggestion = self._registry.suggest(arguments[0])
            self._report(
                UnknownCommandError(f"unknown command {arguments[0]!r}"),
                hint=f"did you mean {suggestion!r}?" if suggestion else None,
            )
        self._out.write(self._help_text())
        return ExitCode.USAGE

    def _sections(self, command=None):
        if command is not None or not len(self._registry):
            return []
        commands = io.StringIO()
        commands.write("Commands:\n\n")
        for name in sorted(self._registry.names()):
            commands.write(f"\t{name}\t{self._registry.lookup(name).info.summary}\n")
        return [commands.getvalue()]


__all__ = (
    "App",
    "SingleCommandApp",
    "MultiCommandApp",
    "HELP_USAGE",
    "VERSION_USAGE",
)
