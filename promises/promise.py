'''Defines a basic :class:`Promise` class with chaining.

A Promise (also known as a Deferred or a Future) is like an order slip
for something that is still being produced.

Callbacks are attached with :meth:`Promise.then` and :meth:`Promise.catch`;
both return a new Promise, so calls can be chained. Everything runs
synchronously on the thread that settles the promise: there is no event loop
and no executor.

Classes defined here:
 * Promise
 * PromiseState, Outcome
 * PromiseError, PromiseDoneError
'''

from collections import deque, namedtuple
from enum import Enum
import logging
import threading

__all__ = ['Promise', 'PromiseState', 'Outcome', 'PromiseError', 'PromiseDoneError']

L = lambda: logging.getLogger(__name__)

# per-thread work-list of (continuation, outcome) while a cascade runs
_local = threading.local()


class PromiseState(Enum):
    pending = 0
    fulfilled = 1
    rejected = 2

# value is the result for fulfilled, the exception for rejected.
Outcome = namedtuple('Outcome', 'state value')

class PromiseError(Exception):
    '''promise-related error'''
class PromiseDoneError(PromiseError):
    '''raised to the promise issuer if a result or exception was already set.

    Only in strict mode, see :class:`Promise`.
    '''


class _Transform(object):
    '''Continuation made by .then(): maps a fulfillment, passes a rejection.'''
    def __init__(self, child, fn):
        self.child = child
        self.fn = fn

    def on_settle(self, outcome):
        if outcome.state == PromiseState.fulfilled:
            _apply(self.child, self.fn, outcome.value)
        else:
            self.child._set(*outcome)


class _Recover(object):
    '''Continuation made by .catch(): maps a rejection, passes a fulfillment.'''
    def __init__(self, child, fn):
        self.child = child
        self.fn = fn

    def on_settle(self, outcome):
        if outcome.state == PromiseState.rejected:
            _apply(self.child, self.fn, outcome.value)
        else:
            self.child._set(*outcome)


class _Forward(object):
    '''Continuation that hands an inner promise's outcome to the child.'''
    def __init__(self, child):
        self.child = child

    def on_settle(self, outcome):
        self.child._set(*outcome)


def _apply(child, fn, arg):
    '''Calls fn(arg) and settles child with what comes out.

    A returned Promise is not stored as value; the child follows it instead.
    '''
    try:
        result = fn(arg)
    except Exception as e:
        L().debug('callback %r raised %r, rejecting %r', fn, e, child)
        child._set(PromiseState.rejected, e)
        return
    if result is child:
        child._set(PromiseState.rejected, TypeError('callback returned the promise it settles'))
    elif isinstance(result, Promise):
        result._subscribe(_Forward(child))
    else:
        child._set(PromiseState.fulfilled, result)


def _notify(continuations, outcome):
    '''Hands outcome to each continuation.

    If a cascade is already running on this thread, the notifications are
    queued and the outermost call runs them, so chains of any length settle
    without recursing.
    '''
    queue = getattr(_local, 'queue', None)
    if queue is not None:
        queue.extend((c, outcome) for c in continuations)
        return
    queue = _local.queue = deque((c, outcome) for c in continuations)
    try:
        while queue:
            continuation, outcome = queue.popleft()
            continuation.on_settle(outcome)
    finally:
        _local.queue = None


class Promise(object):
    '''Encapsulates a result that will arrive later.

    The issuer calls .resolve() or .reject() exactly once. Consumers attach
    callbacks with .then() and .catch(), which fire as soon as the promise
    settles (or immediately if it already has).

    Settling twice is ignored by default. Pass `strict=True` to get a
    PromiseDoneError instead. Promises made by .then() / .catch() inherit
    the flag.

    Each instance serializes settlement with its own lock, so of several
    racing issuers only the first one wins. Callbacks run on the thread that
    settled the promise, after the lock is released, and the whole dependent
    chain is done before the outermost .resolve() / .reject() returns.
    Settling a promise from inside a callback queues its callbacks behind
    the running one.
    '''

    def __init__(self, strict=False):
        self.strict = strict
        self._lock = threading.RLock()
        self._state = PromiseState.pending
        self._result = None
        self._continuations = []

    @classmethod
    def resolved(cls, value):
        '''Returns a promise already fulfilled with `value`.'''
        p = cls()
        p.resolve(value)
        return p

    @classmethod
    def rejected(cls, error):
        '''Returns a promise already rejected with `error`.'''
        p = cls()
        p.reject(error)
        return p

    def resolve(self, value):
        '''called by the promise issuer to set the result.'''
        if value is self:
            raise TypeError('Cannot resolve promise with itself.')
        self._set(PromiseState.fulfilled, value, self.strict)

    def reject(self, error):
        '''called by the promise issuer to indicate failure.'''
        self._set(PromiseState.rejected, error, self.strict)

    def _set(self, state, result, strict=False):
        with self._lock:
            if self._state != PromiseState.pending:
                if strict:
                    raise PromiseDoneError()
                L().debug('%r is already settled, ignoring %s %r', self, state.name, result)
                return
            # _result first: readers check _state without the lock
            self._result = result
            self._state = state
            continuations, self._continuations = self._continuations, []
        _notify(continuations, Outcome(state, result))

    def _subscribe(self, continuation):
        with self._lock:
            if self._state == PromiseState.pending:
                self._continuations.append(continuation)
                return
            outcome = Outcome(self._state, self._result)
        _notify([continuation], outcome)

    def _child(self, fn):
        if not callable(fn):
            raise TypeError('callback must be callable, got %r'%(fn,))
        return self.__class__(strict=self.strict)

    def then(self, on_fulfilled):
        '''Returns a new promise for `on_fulfilled(value)`.

        If `on_fulfilled` raises, the new promise is rejected with that
        exception. If it returns a Promise, the new promise settles the way
        that one does. A rejection of this promise is passed on unchanged,
        without calling `on_fulfilled`.
        '''
        child = self._child(on_fulfilled)
        self._subscribe(_Transform(child, on_fulfilled))
        return child

    def catch(self, on_rejected):
        '''Returns a new promise for `on_rejected(error)`.

        Counterpart of .then() for the failure path: a fulfillment is passed
        on unchanged, without calling `on_rejected`.
        '''
        child = self._child(on_rejected)
        self._subscribe(_Recover(child, on_rejected))
        return child

    @property
    def state(self):
        return self._state

    @property
    def is_pending(self):
        return self._state == PromiseState.pending

    @property
    def is_fulfilled(self):
        return self._state == PromiseState.fulfilled

    @property
    def is_rejected(self):
        return self._state == PromiseState.rejected

    @property
    def value(self):
        '''the result if fulfilled, else None.'''
        with self._lock:
            return self._result if self.is_fulfilled else None

    @property
    def error(self):
        '''the exception if rejected, else None.'''
        with self._lock:
            return self._result if self.is_rejected else None

    def outcome(self):
        '''Returns the Outcome, or None while pending.'''
        with self._lock:
            if self._state == PromiseState.pending:
                return None
            return Outcome(self._state, self._result)

    def __repr__(self):
        if self._state == PromiseState.pending:
            v = '(pending)'
        else:
            v = '%r (%s)'%(self._result, self._state.name)
        return '<%s %s>'%(self.__class__.__name__, v)
