"""
Lieut command layer: registry entries, the registry and argument resolution.

What this module provides
- Command: immutable registry entry (info, executor, flags) keyed by info.name.
- Registry: name → Command mapping with identity-based ownership of flag scopes.
  • set(command) inserts or overwrites; a scope owned by the app or by
    another entry is rejected before anything is mutated.
  • names(), lookup(), iteration over entries.
- Resolution / resolve(): pick the command owning the arguments.
  • exact match of the first token only (no prefixes, no flags before the command);
  • a match strips the token and selects the command's scope and executor;
  • otherwise no command: the app scope receives every argument.

Concurrency
- No locking. Mutating a registry while an app runs with it is the caller's problem.
"""
import difflib
from collections import namedtuple

from .faults import DuplicateFlagsError, InvalidCommandError
from .flags import FlagSet, isflags
from .metadata import CommandInfo, complete_command_info

Command = namedtuple("Command", ("info", "executor", "flags"))
Command.__doc__ = "registry entry: completed CommandInfo, executor (or None) and flag scope."

Resolution = namedtuple("Resolution", ("command", "flags", "executor", "arguments"))
Resolution.__doc__ = "outcome of resolve(): command (or None), effective scope, executor, arguments to parse."


def make_command(info, executor=None, flags=None, /):
    """
    validate registration inputs and build a Command.

    - info.name must be non-empty (InvalidCommandError); blank usage is completed.
    - executor is None (help only) or a callable.
    - flags defaults to a fresh FlagSet named after the command.
    """
    if not isinstance(info, CommandInfo):
        raise TypeError("command info must be a CommandInfo")
    if not info.name:
        raise InvalidCommandError("command name must be a non-empty string")
    if executor is not None and not callable(executor):
        raise TypeError(f"command {info.name!r} executor must be callable")
    if flags is None:
        flags = FlagSet(info.name)
    elif not isflags(flags):
        raise TypeError(f"command {info.name!r} flags must be a flag scope")
    return Command(complete_command_info(info), executor, flags)


class Registry:
    """
    name → Command mapping.

    ownership
    - a flag scope belongs to exactly one owner; owners are compared by identity, so
      two scopes with identical contents are still different owners.
    - re-registering a name may reuse that name's current scope.
    """

    def __init__(self, owner=None):
        self._owner = owner
        self._commands = {}

    def __len__(self):
        return len(self._commands)

    def __contains__(self, name):
        return name in self._commands

    def __iter__(self):
        return iter(self._commands.values())

    def __repr__(self):
        return f"registry(commands={tuple(self._commands)!r})"

    def owns(self, flags, /, *, besides=None):
        """return True when the scope is the owner's or any entry's other than `besides`."""
        if flags is self._owner:
            return True
        return any(command.flags is flags for name, command in self._commands.items() if name != besides)

    def set(self, command, /):
        if not isinstance(command, Command):
            raise TypeError("registry entries must be Commands")
        if self.owns(command.flags, besides=command.info.name):
            raise DuplicateFlagsError(f"command {command.info.name!r} flags are already in use")
        self._commands[command.info.name] = command
        return command

    def lookup(self, name, /):
        return self._commands.get(name)

    def names(self):
        return list(self._commands)

    def suggest(self, name, /):
        """closest registered name to a mistyped one, or None."""
        matches = difflib.get_close_matches(name, self._commands, n=1)
        return matches[0] if matches else None


def resolve(registry, flags, executor, arguments, /):
    """
    resolve raw arguments against a registry.

    - registry None (single-command app): the given scope/executor own every argument.
    - first argument names a registered command: that command, its scope and executor,
      and the arguments after the name.
    - otherwise: no command, the given (app) scope, no executor, every argument.
    """
    arguments = list(arguments)
    if registry is None:
        return Resolution(None, flags, executor, arguments)
    if arguments and (command := registry.lookup(arguments[0])) is not None:
        return Resolution(command, command.flags, command.executor, arguments[1:])
    return Resolution(None, flags, None, arguments)


__all__ = (
    "Command",
    "Resolution",
    "Registry",
    "make_command",
    "resolve",
)
