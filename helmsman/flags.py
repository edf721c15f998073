r"""
Helmsman flag layer: named, typed options bound to a flag set.

Overview
- Flag: a single named option (name, converter, default, usage, metavar, choices).
- FlagSet: an isolated namespace of flags with a conventional single-pass parser.
  • bool/int/float/string/duration definers for the common kinds.
  • var(...) for any converter callable (str -> value).
- HelpRequested: raised by FlagSet.parse when -h/-help/--help is given and no
  flag of that name was defined.

Two scopes are built on the same FlagSet
- global: owned by the Program, parsed on the tokens before the command name.
- per-command: owned by each Command, declared by the command itself and
  parsed by its handler on the trailing tokens.

Syntax accepted by parse()
- -name value, -name=value, --name value, --name=value
- booleans: -name alone sets true; -name=false (or 0, f, F, FALSE, False) clears
- "--" ends flag parsing and is consumed; a lone "-" is a positional
- parsing stops at the first non-flag token; repeated flags: last one wins

Quick example:
    >>> flags = FlagSet("build")
    >>> output = flags.string("o", "a.out", "write the binary to `file`")
    >>> race = flags.bool("race", usage="enable data race detection")
    >>> flags.parse(["-race", "-o=bin/tool", "./cmd"])
    ['./cmd']
    >>> flags["o"], flags["race"]
    ('bin/tool', True)
"""
import builtins
import datetime
import difflib
import logging
import re
from collections import deque
from collections.abc import Iterable, Set
from types import MappingProxyType

from .faults import *
from .utils import *

logger = logging.getLogger(__name__)


class HelpRequested(Exception):
    """
    -h, -help or --help was given to a flag set that does not define it.

    The dispatcher turns this into a help page and a successful exit.
    """

    def __init__(self, scope=""):
        super().__init__(scope)
        self.scope = scope


_TRUES = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSES = frozenset({"0", "f", "F", "FALSE", "false", "False"})


@rename("bool")
def _parse_bool(text, /):
    if text in _TRUES:
        return True
    if text in _FALSES:
        return False
    raise ValueError("invalid boolean %r" % text)


@rename("int")
def _parse_int(text, /):
    try:
        # base prefixes: 0x.., 0o.., 0b..
        return builtins.int(text, 0)
    except ValueError:
        # leading zeros ("010") are not accepted by base 0
        return builtins.int(text, 10)


# seconds per unit; timedelta keeps whole microseconds, so sub-microsecond
# parts are summed as floats and rounded once.
_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_DURATION = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


@rename("duration")
def _parse_duration(text, /):
    """
    parse a duration such as "300ms", "1.5h" or "2h45m" into a timedelta.

    a bare "0" is accepted; any other number needs a unit.
    """
    sign, body = (-1, text[1:]) if text[:1] == "-" else (1, text.removeprefix("+"))
    if body == "0":
        return datetime.timedelta(0)
    if not body:
        raise ValueError("invalid duration %r" % text)

    seconds = 0.0
    position = 0
    while position < len(body):
        if not (match := _DURATION.match(body, position)):
            raise ValueError("invalid duration %r" % text)
        seconds += _UNITS[match[2]] * builtins.float(match[1])
        position = match.end()
    return datetime.timedelta(seconds=sign * seconds)


def _format_duration(value, /):
    """
    format a timedelta back into the compact form accepted by _parse_duration.
    """
    seconds = value.total_seconds()
    if not seconds:
        return "0s"
    sign, seconds = ("-", -seconds) if seconds < 0 else ("", seconds)
    if seconds < 1:
        return "%s%gms" % (sign, seconds * 1000)
    hours, seconds = divmod(seconds, 3600)
    minutes, seconds = divmod(seconds, 60)
    if hours:
        return "%s%dh%dm%gs" % (sign, hours, minutes, seconds)
    if minutes:
        return "%s%dm%gs" % (sign, minutes, seconds)
    return "%s%gs" % (sign, seconds)


# Metavars shown in defaults() for the built-in converters.
_METAVARS = {
    _parse_bool: "",
    _parse_int: "int",
    builtins.float: "float",
    builtins.str: "string",
    _parse_duration: "duration",
}

# Zero values are not echoed as "(default ...)" in defaults().
_ZEROS = {
    _parse_bool: False,
    _parse_int: 0,
    builtins.float: 0.0,
    builtins.str: "",
    _parse_duration: datetime.timedelta(0),
}


class Flag:
    """
    A single named option.

    Fields (read-only)
    - name: the option name without dashes (e.g. "verbose" for -verbose/--verbose).
    - type: converter callable (str -> value); raising TypeError/ValueError rejects input.
    - default: value restored before every parse.
    - usage: one-line description; a `backquoted` word names the metavar.
    - metavar: placeholder shown in defaults(); derived from the converter when omitted.
    - choices: allowed converted values (empty means unrestricted).

    Rules
    - names must be non-empty, must not start with '-' and must not contain '=' or spaces.
    - choices reject duplicates unless provided as a Set.
    """
    name = mirror("name")
    type = mirror("type")
    default = mirror("default")
    usage = mirror("usage")
    metavar = mirror("metavar")
    choices = mirror("choices")

    def __init__(self, name, /, default=None, usage="", *, type=str, metavar=Unset, choices=()):
        if not isinstance(name, str):
            raise TypeError("flag 'name' must be a string")
        elif not re.fullmatch(r"[^\s\-=][^\s=]*", name):
            raise ValueError(f"flag 'name' {name!r} is not a valid flag name")
        if not isinstance(usage, str):
            raise TypeError("flag 'usage' must be a string")
        if not callable(type):
            raise TypeError("flag 'type' must be callable")
        if not isinstance(metavar, str | UnsetType):
            raise TypeError("flag 'metavar' must be a string")
        if not isinstance(choices, Iterable) or isinstance(choices, str):
            raise TypeError("flag 'choices' must be an iterable")
        if not isinstance(choices, Set) and len(choices := tuple(choices)) != len(set(choices)):
            raise ValueError("flag 'choices' cannot contain duplicates")

        # `file` in the usage names the metavar and is shown unquoted
        if quoted := re.search(r"`([^`]+)`", usage):
            metavar = coalesce(metavar, quoted[1])
            usage = usage[:quoted.start()] + quoted[1] + usage[quoted.end():]

        self._name = name
        self._type = type
        self._default = default
        self._usage = usage.strip()
        self._metavar = coalesce(metavar, _METAVARS.get(type, getattr(type, "__name__", "value")))
        self._choices = tuple(choices)

    @property
    def boolean(self):
        """
        True for presence-toggled flags (-name alone means true).
        """
        return self._type is _parse_bool

    def convert(self, text, /):
        """
        Convert one raw token into this flag's value, enforcing choices.
        """
        value = self._type(text)
        if self._choices and value not in self._choices:
            raise ValueError("must be one of %s" % ", ".join(map(repr, self._choices)))
        return value

    def format(self, value, /):
        """
        Render a value the way defaults() shows it.
        """
        if self._type is _parse_duration and isinstance(value, datetime.timedelta):
            return _format_duration(value)
        if isinstance(value, str):
            return '"%s"' % value
        return str(value)

    def __repr__(self):
        return "flag(%s)" % ", ".join("%s=%r" % pair for pair in self.__rich_repr__())

    def __rich_repr__(self):
        yield "name", self.name
        yield "metavar", self.metavar
        yield "default", self.default
        yield "usage", self.usage


class FlagSet:
    """
    An isolated namespace of flags and their parsed values.

    Lifecycle
    - define flags (bool/int/float/string/duration/var); redefinition is a ValueError.
    - parse(args) resets every value to its default, consumes leading flags and
      returns the remaining tokens (also kept in .args).

    Read access
    - fs["name"] current value; "name" in fs; iteration yields Flag specs by name.
    - namespace(): read-only snapshot of name -> value.
    - explicit: names that were set on the command line by the last parse.
    """
    name = mirror("name")
    args = mirror("args")
    parsed = mirror("parsed")

    def __init__(self, name="", /):
        if not isinstance(name, str):
            raise TypeError("flag set 'name' must be a string")
        self._name = name
        self._flags = {}
        self._values = {}
        self._explicit = set()
        self._args = ()
        self._parsed = False
        self._offset = 1

    @property
    def explicit(self):
        return frozenset(self._explicit)

    def _anchor(self, offset, /):
        """
        Set the command-line position parse() counts from when no offset is given.
        """
        self._offset = offset

    def _define(self, flag):
        if flag.name in self._flags:
            raise ValueError(f"flag set {self._name!r} flag {flag.name!r} redefined")
        self._flags[flag.name] = flag
        self._values[flag.name] = flag.default
        logger.debug("flag set %r defined flag %r", self._name, flag.name)
        return flag

    def var(self, name, /, default=None, usage="", *, type=str, metavar=Unset, choices=()):
        """
        Define a flag with an arbitrary converter.
        """
        return self._define(Flag(name, default, usage, type=type, metavar=metavar, choices=choices))

    def bool(self, name, /, default=False, usage=""):
        return self._define(Flag(name, default, usage, type=_parse_bool))

    def int(self, name, /, default=0, usage=""):
        return self._define(Flag(name, default, usage, type=_parse_int))

    def float(self, name, /, default=0.0, usage=""):
        return self._define(Flag(name, default, usage, type=builtins.float))

    def string(self, name, /, default="", usage="", *, choices=()):
        return self._define(Flag(name, default, usage, type=builtins.str, choices=choices))

    def duration(self, name, /, default=datetime.timedelta(0), usage=""):
        return self._define(Flag(name, default, usage, type=_parse_duration))

    def lookup(self, name, /):
        return self._flags.get(name)

    def set(self, name, text, /):
        """
        Set a flag from its textual form, as if it were given on the command line.
        """
        try:
            flag = self._flags[name]
        except KeyError:
            raise KeyError(f"no such flag {name!r}") from None
        self._values[name] = flag.convert(text)
        self._explicit.add(name)

    def namespace(self):
        return MappingProxyType(dict(self._values))

    def parse(self, args, /, *, offset=Unset):
        """
        Parse leading flags from args and return the remaining tokens.

        parameters
        - args: Iterable[str] (a bare string is rejected).
        - offset: 1-based position of args[0] in the full command line, used
          by fault messages ("at third position"). Defaults to the position
          the dispatcher anchored this set at, or 1.

        raises
        - HelpRequested for an undefined -h/-help/--help.
        - MalformedFlagError, UnknownFlagError, MissingFlagValueError,
          InvalidFlagValueError (all CommandException faults).
        """
        if isinstance(args, str) or not isinstance(args, Iterable):
            raise TypeError("parse() argument must be an iterable of strings")

        tokens = deque(args)
        self._values = {name: flag.default for name, flag in self._flags.items()}
        self._explicit.clear()
        self._parsed = False
        index = coalesce(offset, self._offset)

        while tokens:
            token = tokens[0]
            if len(token) < 2 or not token.startswith("-"):
                break
            tokens.popleft()
            if token == "--":
                break

            match = re.fullmatch(r"--?(?P<name>[^\-=][^=]*)(=(?P<value>.*))?", token, re.DOTALL)
            if not match:
                raise MalformedFlagError(
                    "bad flag syntax %r at %s position" % (token, ordinal(index)),
                    title="malformed flag",
                    code=FaultCode.MALFORMED_FLAG,
                    hint="flags are written -name, -name=value or -name value",
                    input=token,
                    index=index,
                    docs=getdoc(FaultCode.MALFORMED_FLAG),
                )

            name = match["name"]
            value = match["value"]  # None if no '=...' was present; '' if '=' present but nothing after it

            try:
                flag = self._flags[name]
            except KeyError:
                if name in ("h", "help"):
                    raise HelpRequested(self._name) from None
                suggestions = difflib.get_close_matches(name, self._flags.keys(), 5)
                try:
                    hint = "did you mean '-%s'? run with -h to see all flags" % suggestions[0]
                except IndexError:
                    hint = "run with -h to see all flags"
                raise UnknownFlagError(
                    "unknown flag %r at %s position" % (token.partition("=")[0], ordinal(index)),
                    title="unknown flag",
                    code=FaultCode.UNKNOWN_FLAG,
                    hint=hint,
                    input=name,
                    index=index,
                    suggestions=suggestions,
                    docs=getdoc(FaultCode.UNKNOWN_FLAG),
                ) from None

            start = index
            if value is None and flag.boolean:
                value = "true"
            elif value is None:
                if not tokens:
                    raise MissingFlagValueError(
                        "flag '-%s' at %s position needs a value" % (name, ordinal(index)),
                        title="missing flag value",
                        code=FaultCode.MISSING_FLAG_VALUE,
                        hint="pass it as -%s=<%s> or -%s <%s>" % (name, flag.metavar, name, flag.metavar),
                        input=name,
                        index=index,
                        docs=getdoc(FaultCode.MISSING_FLAG_VALUE),
                    )
                value = tokens.popleft()
                index += 1

            try:
                self._values[name] = flag.convert(value)
            except (TypeError, ValueError) as error:
                raise InvalidFlagValueError(
                    "invalid value %r for flag '-%s' at %s position" % (value, name, ordinal(index)),
                    title="invalid flag value",
                    code=FaultCode.INVALID_FLAG_VALUE,
                    hint=str(error) or "expected a %s" % (flag.metavar or "value"),
                    input=name,
                    index=start,
                    docs=getdoc(FaultCode.INVALID_FLAG_VALUE),
                ) from None

            self._explicit.add(name)
            index += 1

        self._args = tuple(tokens)
        self._parsed = True
        logger.debug("flag set %r parsed %r, remaining %r", self._name, sorted(self._explicit), self._args)
        return list(tokens)

    def defaults(self):
        """
        Render one entry per flag, sorted by name:

          -o file
                write the binary to file (default "a.out")
        """
        lines = []
        for flag in self:
            lines.append("  -%s %s" % (flag.name, flag.metavar) if flag.metavar else "  -%s" % flag.name)
            usage = flag.usage
            if flag.default is not None and flag.default != _ZEROS.get(flag.type, Unset):
                usage = "%s (default %s)" % (usage, flag.format(flag.default)) if usage else "(default %s)" % flag.format(flag.default)
            if flag.choices:
                usage = "%s {%s}" % (usage, ",".join(map(flag.format, flag.choices)))
            if usage := usage.strip():
                lines.append("        " + usage)
        return "\n".join(lines)

    def __getitem__(self, name, /):
        return self._values[name]

    def __contains__(self, name, /):
        return name in self._flags

    def __iter__(self):
        return iter(sorted(self._flags.values(), key=lambda flag: flag.name))

    def __len__(self):
        return len(self._flags)

    def __repr__(self):
        return "flag-set(name=%r, flags=%r)" % (self._name, sorted(self._flags))


__all__ = (
    "Flag",
    "FlagSet",
    "HelpRequested",
)
