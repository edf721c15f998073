"""
Helmsman registry: the ordered, name-unique collection of commands.

Contract
- add(*commands) appends without checking names and marks the sequence unsorted.
- sort() orders by name (stable, code-point order) and rejects duplicate names.
- lookup(name) sorts when needed, then binary-searches the names.

The registry belongs to one Program; it is filled during setup and only read
while dispatching.
"""
import bisect
import difflib
import logging
import operator

from .commands import Command

logger = logging.getLogger(__name__)


def runnable(command, /):
    """
    True when the command has a handler and may be dispatched.
    """
    return command.runnable


class Registry:
    """
    Commands kept sorted by name for O(log n) lookup.

    Read access
    - iteration and .commands yield commands sorted by name.
    - .names: sorted names; len(); `name in registry`.
    """

    def __init__(self, *commands):
        self._commands = []
        self._sorted = True
        self.add(*commands)

    def add(self, *commands):
        for command in commands:
            if not isinstance(command, Command):
                raise TypeError(f"registry entries must be commands, not {type(command).__name__!r}")
        if commands:
            self._commands.extend(commands)
            self._sorted = False
            logger.debug("registered commands %r", [command.name for command in commands])

    def sort(self):
        """
        Order commands by name; idempotent. Duplicate names raise ValueError.
        """
        if self._sorted:
            return
        self._commands.sort(key=operator.attrgetter("name"))
        for previous, current in zip(self._commands, self._commands[1:]):
            if previous.name == current.name:
                raise ValueError(f"command name {current.name!r} is already in use")
        self._sorted = True
        logger.debug("sorted %d commands", len(self._commands))

    def lookup(self, name, /):
        """
        Return the command registered under name, or None.
        """
        self.sort()
        index = bisect.bisect_left(self._commands, name, key=operator.attrgetter("name"))
        if index < len(self._commands) and self._commands[index].name == name:
            return self._commands[index]
        return None

    def suggest(self, name, /, count=3):
        """
        Close matches among runnable command names, best first.
        """
        return difflib.get_close_matches(name, [command.name for command in self if command.runnable], count)

    @property
    def commands(self):
        self.sort()
        return tuple(self._commands)

    @property
    def names(self):
        return tuple(command.name for command in self.commands)

    def __iter__(self):
        return iter(self.commands)

    def __len__(self):
        return len(self._commands)

    def __contains__(self, name, /):
        return self.lookup(name) is not None

    def __repr__(self):
        return "registry(names=%r)" % (self.names,)


__all__ = (
    "Registry",
    "runnable",
)
