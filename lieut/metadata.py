"""
Lieut descriptive metadata for apps and commands.

Overview
- AppInfo(name, summary, usage, version) and CommandInfo(name, summary, usage) are
  immutable records; every field is a string and defaults to "".
- Fallback usage strings are plain module constants:
  • DEFAULT_COMMAND_USAGE         single-command apps
  • DEFAULT_PARENT_COMMAND_USAGE  multi-command (parent) apps
  • DEFAULT_SUBCOMMAND_USAGE      individual commands of a multi-command app
- complete_app_info()/complete_command_info() substitute the fallbacks for blank
  fields; a non-string field is a TypeError.

Host environment
- infer_name(): program name used when AppInfo.name is blank.
- platform_tag(): "<os>/<arch>" shown by the version line.
"""
import os.path
import platform
import sys
from collections import namedtuple

DEFAULT_COMMAND_USAGE = "[options] [arguments ...]"
DEFAULT_PARENT_COMMAND_USAGE = "<command> [options] [arguments ...]"
DEFAULT_SUBCOMMAND_USAGE = DEFAULT_COMMAND_USAGE

AppInfo = namedtuple("AppInfo", ("name", "summary", "usage", "version"), defaults=("", "", "", ""))
AppInfo.__doc__ = "descriptive record of an application (name, summary, usage, version)."

CommandInfo = namedtuple("CommandInfo", ("name", "summary", "usage"), defaults=("", "", ""))
CommandInfo.__doc__ = "descriptive record of one command of a multi-command application."


def infer_name():
    """
    infer the running program's name.

    lookup order
    - a __prog__ string declared by the host script in __main__,
    - the base name of sys.argv[0],
    - the base name of the interpreter executable.
    """
    if prog := getattr(sys.modules.get("__main__"), "__prog__", None):
        return str(prog)
    if sys.argv and (name := os.path.basename(sys.argv[0])):
        return name
    return os.path.basename(sys.executable)


def platform_tag():
    """return "<os>/<arch>" for the host, lowercased (e.g. "linux/x86_64")."""
    return "%s/%s" % (platform.system().lower(), platform.machine().lower())


def _validate(info, kind):
    for field, value in zip(info._fields, info):
        if not isinstance(value, str):
            raise TypeError(f"{kind} {field!r} must be a string")


def complete_app_info(info, usage, /):
    """
    return a copy of an AppInfo with the blanks filled in.

    - name  → infer_name()
    - usage → the given fallback (DEFAULT_COMMAND_USAGE or DEFAULT_PARENT_COMMAND_USAGE)
    """
    if not isinstance(info, AppInfo):
        raise TypeError("app info must be an AppInfo")
    _validate(info, "app info")
    return info._replace(name=info.name or infer_name(), usage=info.usage or usage)


def complete_command_info(info, /):
    """return a copy of a CommandInfo whose blank usage is DEFAULT_SUBCOMMAND_USAGE."""
    if not isinstance(info, CommandInfo):
        raise TypeError("command info must be a CommandInfo")
    _validate(info, "command info")
    return info._replace(usage=info.usage or DEFAULT_SUBCOMMAND_USAGE)


__all__ = (
    "DEFAULT_COMMAND_USAGE",
    "DEFAULT_PARENT_COMMAND_USAGE",
    "DEFAULT_SUBCOMMAND_USAGE",
    "AppInfo",
    "CommandInfo",
    "infer_name",
    "platform_tag",
    "complete_app_info",
    "complete_command_info",
)
