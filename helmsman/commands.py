"""
Helmsman command layer: the invocable units a Program dispatches to.

What this module provides
- Command: an immutable descriptor bundling
  • usage: single-line "name [args]" whose first token is the command name,
  • short/long: one-line and multi-line help text,
  • flags: a FlagSet owned exclusively by the command,
  • a handler: either a callback (command, args) -> None, or a subclass
    overriding run(args).
- command(...): build a Command from a callback, directly or as a decorator.

Runnable vs. topics
- A Command with neither a callback nor an overridden run() is a documentation
  placeholder (a "topic"): it shows up in `help <name>` but never executes and
  is left out of the command listing.

Flag declaration
- declare(flags) is invoked by the dispatcher once, before the first run or
  help rendering, so a command can define its flags up front. Handlers may
  still define flags lazily and call self.flags.parse(args) themselves.

Quick start
    from helmsman import Program, command

    @command("greet [-shout] name", "say hello", flags=lambda flags: flags.bool("shout"))
    def greet(cmd, args):
        rest = cmd.flags.parse(args)
        print(("hello %s" % rest[0]).upper() if cmd.flags["shout"] else "hello %s" % rest[0])

    program = Program("tool")
    program.add_commands(greet)
    program.execute()
"""
import inspect
import logging
import textwrap

from .flags import FlagSet
from .utils import *

logger = logging.getLogger(__name__)


def _process_string(cls, field, value, *, required=False):
    """
    Validate one help string: must be str; trimmed; non-empty when required.
    """
    if not isinstance(value, str):
        raise TypeError(f"{cls.__typename__} {field!r} must be a string")
    value = textwrap.dedent(value).strip()
    if required and not value:
        raise ValueError(f"{cls.__typename__} {field!r} must be a non-empty string")
    return value


class Command:
    """
    A named, executable unit with its own help text and flag scope.

    Fields (read-only)
    - name: first whitespace-delimited token of usage; lookup key and display name.
    - usage, short, long: help strings (long is dedented and stripped).
    - flags: the command's FlagSet.
    - runnable: True when a handler is present.

    Extension points
    - run(args): the handler body; the default forwards to the callback.
    - declare(flags): define flags before dispatch; the default forwards to the
      `flags` callable given at construction (if any).
    """
    __typename__ = "command"

    usage = mirror("usage")
    short = mirror("short")
    long = mirror("long")

    def __init__(self, usage, short="", long="", *, handler=None, flags=None):
        if handler is not None and not callable(handler):
            raise TypeError(f"{self.__typename__} 'handler' must be callable")
        if flags is not None and not callable(flags):
            raise TypeError(f"{self.__typename__} 'flags' must be callable")

        self._usage = _process_string(type(self), "usage", usage, required=True)
        self._short = _process_string(type(self), "short", short)
        self._long = _process_string(type(self), "long", long)
        self._name = self._usage.split(maxsplit=1)[0]
        self._handler = handler
        self._declarer = flags
        self._declared = False
        self._flags = FlagSet(self._name)

    @property
    def name(self):
        return self._name

    @property
    def flags(self):
        return self._flags

    @property
    def runnable(self):
        return self._handler is not None or type(self).run is not Command.run

    def declare(self, flags, /):
        """
        Define this command's flags on the given flag set (no-op by default).
        """
        if self._declarer is not None:
            self._declarer(flags)

    def run(self, args, /):
        """
        Execute the command with the tokens that followed its name.

        Returning normally is success; raising is failure (the exception
        text becomes the reported description).
        """
        if self._handler is None:
            raise TypeError(f"{self.__typename__} {self.name!r} is not runnable")
        return self._handler(self, args)

    def _prepare(self):
        """
        Run declare() once per command lifetime.
        """
        if not self._declared:
            self._declared = True
            self.declare(self._flags)
            logger.debug("command %r declared flags %r", self.name, [flag.name for flag in self._flags])
        return self

    def __call__(self, args=(), /):
        return self._prepare().run(list(args))

    def __repr__(self):
        return "%s(%s)" % (self.__typename__, ", ".join("%s=%r" % pair for pair in self.__rich_repr__()))

    def __rich_repr__(self):
        yield "name", self.name
        yield "usage", self.usage
        yield "short", self.short
        yield "runnable", self.runnable


def command(source=Unset, /, *args, **kwargs):
    """
    Create a Command from a callback or return a decorator to build it later.

    Invocation modes
    - Direct callback:
        cmd = command(func, "build [-o output] packages", "compile packages")
    - Decorator:
        @command("build [-o output] packages", "compile packages")
        def build(cmd, args): ...

    Defaults
    - usage falls back to the callback name (underscores become dashes).
    - short falls back to the first docstring line; long to the whole docstring.

    Parameters
    - source: Unset | str | Callable
      A callable creates the Command now; a string is taken as the usage line
      and a decorator is returned; Unset returns a decorator.
    - *args, **kwargs: forwarded to Command (usage, short, long, flags=...).
    """
    if isinstance(source, str):
        args = (source, *args)
        source = Unset

    @rename("command")
    def wrapper(source, /):
        if not callable(source) or isinstance(source, Command):
            raise TypeError("@command() must be applied to a callable")
        options = dict(kwargs)
        positional = list(args)
        doc = inspect.getdoc(source) or ""
        if not positional and "usage" not in options:
            positional.append(getattr(source, "__name__", "").strip("_").replace("_", "-"))
        if len(positional) < 2 and "short" not in options:
            options["short"] = doc.partition("\n")[0]
        if len(positional) < 3 and "long" not in options:
            options["long"] = doc
        return Command(*positional, handler=source, **options)

    return wrapper(source) if source is not Unset else wrapper


__all__ = (
    "Command",
    "command",
)
