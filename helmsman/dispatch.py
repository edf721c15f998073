"""
Helmsman dispatcher: resolve an argument vector to a command and run it.

What this module provides
- Program: the composition root owning the registry, the global flag set and
  the usage/help templates.
  • setup phase: add_commands(), set_flags(), set_usage_template(), set_help_template().
  • dispatch phase: dispatch(prompt) -> ExitCode, execute(prompt) -> exits the process.
- invoke(object, prompt): convenience runner for anything implementing __invoke__.

Resolution
    [global flags] <command> [arguments]
    [global flags] help [command]

- empty vector: listing on stderr, USAGE.
- -h / -help / --help among the global flags: listing on stdout, SUCCESS.
- help: listing; help <name>: that command's help (runnable or topic), SUCCESS;
  unknown <name>: fault + listing, USAGE.
- unknown or non-runnable command: fault + listing, USAGE.
- command flag faults: fault + the command's usage line, USAGE.
- handler exceptions: delegated fault with the exception text, FAILURE.

Styling
- colorful=True applies the palette below; the host may override entries with a
  __styles__ mapping in __main__.
- fancy=True frames help pages and faults in a rich Panel.
"""
import logging
import os.path
import shlex
import sys
from collections import defaultdict
from collections.abc import Iterable

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from . import templates
from .commands import Command
from .faults import *
from .flags import FlagSet, HelpRequested
from .registry import Registry
from .utils import *

logger = logging.getLogger(__name__)


def _tokenize(prompt):
    """
    Normalize a prompt into a list of tokens.

    - Unset: sys.argv[1:].
    - str: shell-style split.
    - Iterable[str]: used as-is (each element must be a string).
    """
    if prompt is Unset:
        return sys.argv[1:]
    if isinstance(prompt, str):
        return shlex.split(prompt)
    if isinstance(prompt, Iterable):
        tokens = list(prompt)
        if not all(isinstance(token, str) for token in tokens):
            raise TypeError("dispatch() argument must be a string or an iterable of strings")
        return tokens
    raise TypeError("dispatch() argument must be a string or an iterable of strings")


class Program:
    """
    A command-line program: registry + global flags + templates + consoles.

    Parameters
    - name: str | Unset
      Program name used in listings and hints (defaults to basename(sys.argv[0])).
    - stdout, stderr: rich Console | Unset
      Where help pages and faults are printed.
    - shell: bool
      When False, faults are raised instead of printed (embedding and tests).
    - fancy, colorful: bool
      Rendering switches for help pages and faults.
    """

    def __init__(self, name=Unset, /, *, stdout=Unset, stderr=Unset, shell=True, fancy=False, colorful=True):
        name = coalesce(name, os.path.basename(sys.argv[0]) or "program")
        if not isinstance(name, str):
            raise TypeError("program 'name' must be a string")
        elif not (name := name.strip()):
            raise ValueError("program 'name' must be a non-empty string")
        for label, console in (("stdout", stdout), ("stderr", stderr)):
            if not isinstance(console, Console | UnsetType):
                raise TypeError(f"program {label!r} must be a rich console")

        self._name = name
        self._registry = Registry()
        self._flags = FlagSet(name)
        self._usage = templates.compile(templates.USAGE_TEMPLATE)
        self._help = templates.compile(templates.HELP_TEMPLATE)
        self._stdout = coalesce(stdout, Console())
        self._stderr = coalesce(stderr, Console(stderr=True))
        self._shell = bool(shell)
        self._fancy = bool(fancy)
        self._colorful = bool(colorful)

    name = mirror("name")
    shell = mirror("shell")
    fancy = mirror("fancy")
    colorful = mirror("colorful")

    @property
    def registry(self):
        return self._registry

    @property
    def flags(self):
        return self._flags

    # ── Setup phase ────────────────────────────────────────────────────────

    def add_commands(self, *commands):
        """
        Register commands; a name already in use raises ValueError and
        nothing from the call is registered.
        """
        names = set(self._registry.names)
        for command in commands:
            if not isinstance(command, Command):
                continue
            if command.name in names:
                raise ValueError(f"command name {command.name!r} is already in use")
            names.add(command.name)
        self._registry.add(*commands)

    def set_flags(self, setup, /):
        """
        Let setup(flags) define the global flags on this program's flag set.
        """
        if not callable(setup):
            raise TypeError("set_flags() argument must be callable")
        setup(self._flags)

    def set_usage_template(self, source, /):
        self._usage = templates.compile(source)

    def set_help_template(self, source, /):
        self._help = templates.compile(source)

    # ── Rendering ──────────────────────────────────────────────────────────

    def usage(self):
        """
        Render the command listing.
        """
        commands = self._registry.commands
        return templates.render(
            self._usage,
            name=self._name,
            commands=commands,
            width=templates.column(commands),
            flags=self._flags.defaults(),
        )

    def help(self, command, /):
        """
        Render the help page of one command (runnable or topic).
        """
        if not isinstance(command, Command):
            raise TypeError("help() argument must be a command")
        command._prepare()
        return templates.render(self._help, name=self._name, command=command, flags=command.flags.defaults())

    def _print(self, console, text, /, *, title=Unset):
        styles = defaultdict(str, {
            "usage-label": "bold #00E6FF",  # CYAN → signature info color
            "program-name": "bold #FF4D94",  # MAGENTA-PINK → brand pop
            "command-name": "bold #36C5F0",  # SKY-BLUE commands
            "flag-name": "bold #22C55E",  # GREEN for flags
            "panel-title": "bold #FF4D94",
        } | getattr(__import__("__main__"), "__styles__", {}))

        renderable = Text(text.rstrip("\n"))
        if self._colorful:
            renderable.highlight_regex(r"(?im)^usage:", styles["usage-label"])
            renderable.highlight_regex(r"(?m)^ {4}[^\s]+(?= )", styles["command-name"])
            renderable.highlight_regex(r"(?m)^ {2}-[^\s]+", styles["flag-name"])
            renderable.highlight_words([self._name], styles["program-name"])

        if self._fancy:
            renderable = Panel(
                renderable,
                title=Text.assemble("[", " ", f"{coalesce(title, self._name)} HELP".upper(), " ", "]", style=styles["panel-title"] if self._colorful else ""),
                title_align="left",
            )
        console.print(renderable, soft_wrap=True)

    def _trigger(self, fault, /, *, usage=Unset):
        """
        Report a fault (and optional usage text) on stderr; return its exit code.
        """
        status = trigger(
            fault,
            prog=self._name,
            shell=self._shell,
            console=self._stderr,
            fancy=self._fancy,
            colorful=self._colorful,
        )
        if usage is not Unset:
            self._print(self._stderr, usage)
        return status

    def _unknown(self, name, /):
        suggestions = self._registry.suggest(name)
        try:
            hint = "did you mean %r? you can also run '%s help' to see available commands" % (suggestions[0], self._name)
        except IndexError:
            hint = "run '%s help' to see available commands" % self._name
        return UnknownCommandError(
            "unknown command %r" % name,
            title="unknown command",
            code=FaultCode.UNKNOWN_COMMAND,
            input=name,
            suggestions=suggestions,
            hint=hint,
            docs=getdoc(FaultCode.UNKNOWN_COMMAND),
        )

    # ── Dispatch phase ─────────────────────────────────────────────────────

    def dispatch(self, prompt=Unset, /):
        """
        Run one invocation and return its ExitCode (never exits the process).
        """
        tokens = _tokenize(prompt)
        logger.debug("dispatching %r", tokens)
        self._registry.sort()

        if not tokens:
            self._print(self._stderr, self.usage())
            return ExitCode.USAGE

        try:
            remaining = self._flags.parse(tokens)
        except HelpRequested:
            self._print(self._stdout, self.usage())
            return ExitCode.SUCCESS
        except CommandException as fault:
            return self._trigger(fault, usage=self.usage())

        if not remaining:
            self._print(self._stderr, self.usage())
            return ExitCode.USAGE

        name, *args = remaining
        if name == "help":
            return self._dispatch_help(args)

        command = self._registry.lookup(name)
        if command is None or not command.runnable:
            logger.debug("command %r not found or not runnable", name)
            return self._trigger(self._unknown(name), usage=self.usage())

        logger.debug("running command %r with %r", name, args)
        command.flags._anchor(len(tokens) - len(args) + 1)
        try:
            command(args)
        except HelpRequested:
            self._print(self._stdout, self.help(command), title=command.name)
            return ExitCode.SUCCESS
        except CommandException as fault:
            return self._trigger(fault, usage="usage: %s %s\nRun '%s help %s' for details." % (
                self._name, command.usage, self._name, command.name
            ))
        except Exception as error:
            logger.debug("command %r failed", name, exc_info=True)
            return self._trigger(DelegatedCommandError(
                str(error) or type(error).__name__,
                title="%s failed" % command.name,
                code=FaultCode.DELEGATED_ERROR,
                error=error,
                docs=getdoc(FaultCode.DELEGATED_ERROR),
            ))
        return ExitCode.SUCCESS

    def _dispatch_help(self, args, /):
        if not args:
            self._print(self._stdout, self.usage())
            return ExitCode.SUCCESS

        target, *extra = args
        if extra:
            logger.debug("help ignores extra arguments %r", extra)

        command = self._registry.lookup(target)
        if command is None:
            return self._trigger(self._unknown(target), usage=self.usage())
        self._print(self._stdout, self.help(command), title=command.name)
        return ExitCode.SUCCESS

    def execute(self, prompt=Unset, /):
        """
        Dispatch and terminate the process with the resulting status.
        """
        sys.exit(int(self.dispatch(prompt)))

    def __invoke__(self, prompt=Unset):
        self.execute(prompt)

    def __repr__(self):
        return "program(name=%r, commands=%r)" % (self._name, self._registry.names)


def invoke(object, prompt=Unset, /):
    """
    Convenience runner for programs.

    - object: anything implementing __invoke__(prompt), typically a Program.
    - prompt: Unset (sys.argv[1:]), a shell-like string or an iterable of strings.
    """
    if hasattr(object, "__invoke__") and callable(object.__invoke__):
        object.__invoke__(prompt)
        return

    target = "argument" if prompt is Unset else "first argument"
    raise TypeError(f"invoke() {target} must implement __invoke__ method") from None


__all__ = (
    "Program",
    "invoke",
)
