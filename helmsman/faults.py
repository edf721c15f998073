"""
Helmsman faults (user-facing errors) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for all user-facing issues.
  Codes are grouped by domain to keep copy consistent and make logs/searches
  predictable.
- ExitCode: process statuses the dispatcher maps every outcome to.
- CommandException: base type that carries message + options and knows how to
  render itself in a friendly, lowercased, and actionable way.
- trigger(): central entry point to surface any fault (respecting shell/fancy/colorful).
- getdoc(): optional description lookup for a code from the host application.

UX goals
- Position-first messages: flag faults include the ordinal position of the
  offending token (“at third position”).
- Soft but technical language: short titles, one-sentence bodies, a single clear hint.

Integration
- The flag layer raises faults while parsing; the dispatcher catches them and
  calls trigger(fault, console=..., **ctx).
- In non-shell mode, faults are raised; in shell mode, they are rendered via rich.
"""
import copy
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset


class FaultCode(IntEnum):
    """
    canonical fault codes used across the cli (stable identifiers).

    grouping (by high-level domain)
    - routing (1110x)
      • UNKNOWN_COMMAND
    - flags (1111x/1112x)
      • MALFORMED_FLAG, UNKNOWN_FLAG, MISSING_FLAG_VALUE, INVALID_FLAG_VALUE
    - delegated errors (11131)
      • DELEGATED_ERROR

    rationale
    - codes are discoverable (searchable in logs and docs) and normalized to a
      string via normalize() so hosts can remap them if desired.
    """
    # --- routing errors (11xxx) ---
    UNKNOWN_COMMAND             = 11101

    # --- flag errors (11xxx) ---
    MALFORMED_FLAG              = 11111
    UNKNOWN_FLAG                = 11112
    MISSING_FLAG_VALUE          = 11117
    INVALID_FLAG_VALUE          = 11123

    # --- delegated errors (11xxx) ---
    DELEGATED_ERROR             = 11131

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels. when no mapping
        is present, the numeric value is returned as a string.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


class ExitCode(IntEnum):
    """
    process exit statuses.

    - SUCCESS: the command (or help) completed.
    - FAILURE: the command handler reported a failure.
    - USAGE: the invocation itself was wrong (unknown command, bad flags, nothing to run).
    """
    SUCCESS = 0
    FAILURE = 1
    USAGE   = 2


class CommandException(Exception):
    """
    base fault: a message plus rendering/context options.

    options (all optional)
    - title, code, hint, docs: copy shown to the user.
    - prog: program label for the header (falls back to __main__.__prog__).
    - colorful, fancy: rendering switches.
    - shell, console: where trigger() sends the fault.
    - any extra context (input, index, suggestions, ...) kept for reporters.
    """
    exitcode = ExitCode.USAGE

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    def __str__(self):
        return self.message or ""

    def __rich__(self):
        main = __import__("__main__")
        colorful = self.options.get("colorful", False)

        styles = defaultdict(str, {
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #00E5FF",  # neon cyan fault code
            "error-title": "bold #FF4DA6",  # friendly pinky title

            # body
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

        prog = text(getattr(main, "__prog__", self.options.get("prog", "")), styler("prog-name"))
        code = self.options.get("code")

        header = Text.assemble(
            "[ ",
            prog,
            " — ",
            text(code.normalize() if code is not None else "", styler("code")),
            " | ",
            text(self.options.get("title", "error").title(), styler("error-title")),
            " ]"
        )
        renders = [text(self.message, styler("error-message"))]
        if hint := self.options.get("hint"):
            renders.append(Text.assemble(text(" → ", styler("hint-arrow")), text(hint, styler("hint"))))
        if docs := self.options.get("docs"):
            renders.append(text(docs, styler("docs")))

        if self.options.get("fancy", False):
            return Panel(Group(*renders), title=header, title_align="left")

        return Group(header, *renders)

    def __trigger__(self):
        if not self.options.get("shell", False) or self.options.get("console") is None:
            raise self from None
        self.options["console"].print(self)
        return self.exitcode

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class UnknownCommandError(CommandException): ...
class MalformedFlagError(CommandException): ...
class UnknownFlagError(CommandException): ...
class MissingFlagValueError(CommandException): ...
class InvalidFlagValueError(CommandException): ...


class DelegatedCommandError(CommandException):
    exitcode = ExitCode.FAILURE


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see CommandException).
    - options are merged into the fault via copy.replace(fault, **options) before triggering.
    - in shell mode, the fault is printed on options["console"] and its exit code
      is returned; otherwise the fault is raised.
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    return copy.replace(fault, **options).__trigger__()


def getdoc(code, /):
    """
    optional documentation fetch for a fault code.

    the host application may expose a __docs__ mapping in __main__ where keys
    are FaultCode instances and values are short documentation strings. when
    not found, returns None (renderers treat docs as optional).
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be a fault-code")
    try:
        return getattr(__import__("__main__"), "__docs__", {})[code]
    except KeyError:
        return None


__all__ = (
    "CommandException",
    "UnknownCommandError",
    "MalformedFlagError",
    "UnknownFlagError",
    "MissingFlagValueError",
    "InvalidFlagValueError",
    "DelegatedCommandError",
    "FaultCode",
    "ExitCode",
    "trigger",
    "getdoc",
)
