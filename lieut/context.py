"""
Lieut run context: cancellation and request-scoped values for executors.

App.run() threads one Context through to the executor unchanged. The app never
cancels it; cancellation belongs to whoever created the context (a signal handler,
a supervising thread, a test).

Chains
- with_value(key, value) derives a child carrying one more value; lookups walk up
  the chain, so the child sees every value of its ancestors.
- with_cancel() derives a child with its own cancellation flag; cancelling a parent
  cancels every descendant, cancelling the child leaves the parent alone.
"""
import threading
import time


class Context:
    __slots__ = ("_parent", "_key", "_value", "_event")

    def __init__(self, parent=None, /):
        if parent is not None and not isinstance(parent, Context):
            raise TypeError("context parent must be a Context")
        self._parent = parent
        self._key = self._value = None
        # children derived by with_value() share the parent's flag
        self._event = parent._event if parent is not None else threading.Event()

    @classmethod
    def background(cls):
        """return a fresh root context that nothing cancels."""
        return cls()

    def with_value(self, key, value):
        child = type(self)(self)
        child._key = key
        child._value = value
        return child

    def with_cancel(self):
        child = type(self)(self)
        child._event = threading.Event()
        return child

    def value(self, key, default=None):
        context = self
        while context is not None:
            if context._parent is not None and context._key == key:
                return context._value
            context = context._parent
        return default

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self):
        context = self
        while context is not None:
            if context._event.is_set():
                return True
            context = context._parent
        return False

    def wait(self, timeout=None):
        """
        block until this context is cancelled or the timeout elapses.

        returns the cancelled state. an ancestor's cancellation is noticed within
        a tenth of a second.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while not self.cancelled:
            if deadline is None:
                self._event.wait(0.1)
                continue
            if (remaining := deadline - time.monotonic()) <= 0:
                return False
            self._event.wait(min(0.1, remaining))
        return True

    def __repr__(self):
        return f"Context(cancelled={self.cancelled})"


__all__ = (
    "Context",
)
