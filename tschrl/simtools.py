"""
Module for simulation tools
"""
import itertools
import logging
from collections import defaultdict
from numbers import Number
from typing import Any, Callable, DefaultDict, Dict, Generator, Set, Tuple, Union

from simpy import Environment
from simpy.events import Event, Process

from tschrl.utility import ownerPrefix


class SimulationManager:
    """
    The :class:`SimulationManager` offers methods and properties for managing
    and accessing a SimPy simulation. Simulated time is measured in seconds.

    Note:
        Do not create instances on your own. Reference the existing instance by
        :attr:`SimMan` instead.
    """

    def __init__(self):
        self._env = None

    @property
    def env(self) -> Environment:
        """
        The SimPy :class:`~simpy.core.Environment` object belonging to the
        current simulation
        """
        return self._env

    @property
    def initialized(self) -> bool:
        """bool: Whether :meth:`init` has been called"""
        return self._env is not None

    @property
    def now(self):
        """float: The current simulation time"""
        return self.env.now

    def process(self, generator: Generator[Event, None, None]) -> Process:
        """
        Registers a SimPy process generator (a generator yielding SimPy events)
        at the SimPy environment and returns it.

        Args:
            process: The generator to be registered as a process
        """
        return self.env.process(generator)

    def event(self):
        """
        Creates and returns a new :class:`~simpy.events.Event` object belonging to the
        current environment.
        """
        return Event(self.env)

    def runSimulation(self, until: Union[int, float, Event]):
        """
        Runs the simulation (or continues running it) until the amount of
        simulated time specified by `until` has passed (with `until` being a
        :class:`float`) or `until` is triggered (with `until` being an
        :class:`Event`).
        """
        logger.info("SimulationManager: Running simulation...")
        if not isinstance(until, Event):
            assert isinstance(until, Number)
            until = self.now + until
        self.env.run(until)

    def init(self):
        """
        Creates a new :class:`~simpy.core.Environment`.
        """
        logger.debug("SimulationManager: Initializing environment")
        self._env = Environment()

    def timeout(self, duration: float, value: Any = None) -> Event:
        """
        Shorthand for env.timeout(duration, value)
        """
        return self.env.timeout(duration, value)

SimMan = SimulationManager()
"""
A globally accessible :class:`SimulationManager` instance to be used whenever the
SimPy simulation is involved
"""

class SourcePrepender(logging.LoggerAdapter):
    """
    A :class:`~logging.LoggerAdapter` that prepends the string representation of
    a provided object to log messages.

    Examples:
        The following command sets up a :class:`~logging.Logger` that
        prepends message sources:
        ::

            logger = SourcePrepender(logging.getLogger(__name__))

        Assuming `self` is the object that logs a message, it could prepend `str(self)`
        to a message like this:
        ::

            logger.info("Something happened", sender=self)

        If `str(self)` is ``myObject``, this example would result in the log message
        "myObject: Something happened".
    """
    def __init__(self, logger: logging.Logger):
        """
        Args:
            logger: The :class:`~logging.Logger` instance to be wrapped by the
                SourcePrepender :class:`~logging.LoggerAdapter`
        """
        super(SourcePrepender, self).__init__(logger, {})

    def process(self, msg, kwargs):
        """
        If a `sender` keyword argument is provided, prepends "`obj`: " to `msg`,
        with `obj` being the string representation of the `sender` keyword
        argument.
        """
        if "sender" in kwargs:
            sender = kwargs.pop("sender")
            msg = str(sender) + ": " + msg
        return msg, kwargs

class SimTimePrepender(SourcePrepender):
    """
    A :class:`~logging.LoggerAdapter` that prepends the current simulation time
    (fetched by requesting :attr:`SimMan.now`) to any log message sent.
    Additionally, the `sender` keyword argument can be used for logging calls,
    which also prepends a sender to messages like explained in
    :class:`SourcePrepender`.

    If no SimPy environment has been initialized (e.g. a controller driven by
    a runtime other than :attr:`SimMan`), only the sender is prepended.

    Examples:
        The following command sets up a :class:`~logging.Logger` that
        prepends simulation time:
        ::

            logger = SimTimePrepender(logging.getLogger(__name__))

    """
    def process(self, msg, kwargs):
        """
        Prepends "[Time: `x`]" to `msg`, with `x` being the current
        simulation time. Additionally, if a `sender` argument is provided,
        str(`sender`) is also prepended to the simulation time.
        """
        msg, kwargs = super(SimTimePrepender, self).process(msg, kwargs)
        if not SimMan.initialized:
            return msg, kwargs
        return "[Time: {:12f}] {}".format(SimMan.now, msg), kwargs

logger = SimTimePrepender(logging.getLogger(__name__))

def ensureType(input: Any, validTypes: Union[type, Tuple[type]], caller: Any):
    """
    Checks whether `input` is an instance of the type / one of the types
    provided as `validTypes`. If not, raises a :class:`TypeError` with a message
    containing the string representation of `caller`.

    Args:
        input: The object for which to check the type
        validTypes: The type / tuple of types to be allowed
        caller: The object that (on type mismatch) will be mentioned in the
            error message.

    Raises:
        TypeError: If the type of `input` mismatches the type(s) specified in
            `validClasses`
    """
    if not isinstance(input, validTypes):
        raise TypeError("{}: Got object of invalid type {}. Expected type(s): {}".format(caller, type(input), validTypes) )

class Notifier:
    """
    A class implementing the observer pattern. A :class:`Notifier` can be
    triggered providing a value. Every time the :class:`Notifier` is
    triggered, it runs its subscribed callback functions in the order of
    their priorities. Aditionally, SimPy generators can wait for a
    :class:`Notifier` to be triggered by yielding its :attr:`event`.
    """

    def __init__(self, name: str = "", owner: Any = None):
        """
        Args:
            name: A string to identify the :class:`Notifier` instance (e.g.
                among all other :class:`Notifier` instances of the owner object)
            owner: The object that provides the :class:`Notifier` instance
        """
        self._name = name
        self._owner = owner
        self._event = None

        # A priority -> Set[Callable] defaultdict for callbacks:
        self._priorityToCallbacks: DefaultDict[int, Set[Callable[[Any], None]]] = defaultdict(set)
        self._callbackToPriority: Dict[Callable[[Any], None], int] = {}
        self._sortedCallbacks = [] # List of callbacks sorted by their priority

    def subscribeCallback(self, callback: Callable[[Any], None], priority: int = 0):
        """
        Adds the passed callable to the set of callback functions. Thus, when
        the :class:`Notifier` gets triggered, the callable will be invoked
        passing the value that the :class:`Notifier` was triggered with.

        Note:
            A callable can only be added once, regardless of its priority.

        Args:
            callback: The callable to be subscribed
            priority: If set, the callable is guaranteed to be invoked only
                after every callback with a higher priority value has been executed.
                Callbacks added without a priority value are assumed to have
                priority `0`.
        """
        # Every callback is only allowed to be added once
        assert callback not in self._callbackToPriority

        self._callbackToPriority[callback] = priority
        self._priorityToCallbacks[priority].add(callback)
        self._updateSortedCallbacks()

    def unsubscribeCallback(self, callback: Callable[[Any], None]):
        """
        Removes the passed callable from the set of callback functions. It is
        thus not triggered anymore by this :class:`Notifier`.

        Args:
            callback: The callable to be removed
        """
        assert callback in self._callbackToPriority

        priority = self._callbackToPriority.pop(callback)
        self._priorityToCallbacks[priority].remove(callback)
        self._updateSortedCallbacks()

    def _updateSortedCallbacks(self):
        sortedPriorities = sorted(self._priorityToCallbacks.keys(), reverse=True)
        self._sortedCallbacks = list(
            itertools.chain(
                *[self._priorityToCallbacks[p] for p in sortedPriorities]
            )
        )

    def trigger(self, value: Any = None):
        """
        Triggers the :class:`Notifier`. This runs the callbacks and makes the
        :attr:`event` succeed.
        """
        logger.debug("Triggered with value %s", value, sender=self)
        for callback in self._sortedCallbacks:
            callback(value)
        if self._event is not None:
            self._event.succeed(value)
            self._event = None

    @property
    def event(self):
        """
        :class:`~simpy.events.Event`: A SimPy event that succeeds when the
        :class:`Notifier` is triggered
        """
        if self._event is None:
            self._event = SimMan.event()
        return self._event

    @property
    def name(self):
        """
        str: The notifier's name as it has been passed to the constructor
        """
        return self._name

    def __repr__(self):
        return "{}Notifier('{}')".format(ownerPrefix(self._owner), self.name)
