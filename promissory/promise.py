# -*- coding: utf-8 -*-

import logging
from functools import partial
from threading import Condition, Lock

from .errors import AggregateError, ChainingCycleError, RejectionError, \
    TimeoutError
from .scheduler import get_default_scheduler
from .util import is_thenable

_logger = logging.getLogger(__name__)


def _idle_executor(on_fulfilled, on_rejected):
    """Executor of the Promises settled by the Promise internals."""
    pass


class Promise(object):
    """It represents an operation expected to be completed in the future.

    A Promise is used for asynchronous computation. It contains a value not yet
    known when the Promise is created. It allows to set callbacks who will be
    called as soon as the result is known. It's a "promise" of a future value.

    Callbacks are never called synchronously: they're given to a scheduler,
    who executes them after the current call. Callbacks of the same Promise
    are called in the order they've been registered.

    All calls to the methods are thread-safe.
    """

    PENDING = 'pending'
    FULFILLED = 'fulfilled'
    REJECTED = 'rejected'

    def __init__(self, executor, scheduler=None, _name=None, _previous=None):
        """Constructor of the Promise.

        Generate the two callbacks for the executor, then call the `executor`.
        It means the executor will be fully executed before the the constructor
        returns.
        If the executor raises an exception, it's caught and the Promise is
        rejected with this exception.

        Only the first call to one of the two callbacks is taken into account.
        Subsequent calls are ignored, even if the Promise is still pending
        (that is the case when the first call resolved it with another
        Promise not yet settled).

        Args:
            executor (callable): Takes 2 callable arguments:
                The first one, `on_fulfilled()` should be called when the
                Promise is fulfilled (ie the tasks is done) and must accept the
                result's value as its only argument. If this value is a
                thenable, the Promise will follow its state.
                The second, `on_rejected()`, should be called when an error
                occurs. Its argument should be an instance of `Exception`.
            scheduler (Scheduler, optional): executes the callbacks. By
                default, the scheduler returned by `get_default_scheduler()`.
            _name (str): if set, name used when converted to text.
        """

        self._state = self.PENDING
        self._result = None
        self._error = None
        self._condition = Condition()
        if scheduler is None:
            scheduler = get_default_scheduler()
        self._scheduler = scheduler
        self._name = _name or getattr(executor, '__name__', '???')
        self._previous = _previous

        self._callbacks = []
        self._errbacks = []

        locked_in = [False]

        def _lock_in(value):
            with self._condition:
                if locked_in[0] or self._state != self.PENDING:
                    _logger.debug('Promise %r already resolved. New value '
                                  'will be ignored: %r', self, value)
                    return False
                locked_in[0] = True
                return True

        def on_fulfilled(result):
            if _lock_in(result):
                self._resolve(result)

        def on_rejected(error):
            if _lock_in(error):
                self._reject(error)

        try:
            executor(on_fulfilled, on_rejected)
        except Exception as error:
            on_rejected(error)

    @property
    def state(self):
        """str: one of PENDING, FULFILLED or REJECTED."""
        with self._condition:
            return self._state

    def result(self, timeout=None):
        """Wait for the result and returns it as soon as it's available.

        Args:
            timeout (int, optional): if set, maximum time to wait the promise
                to be fulfilled. By default, it can wait indefinitely.
        Returns:
            *: value encapsulated, defined by the operation.
        Raises:
            TimeoutError: if the promise is not settled within the delay.
            RejectionError: if the promise is rejected with a value who is not
                an exception.
            *: If the promise is rejected, the rejection cause is raised.
        """
        with self._condition:
            if self._state == self.PENDING:
                self._condition.wait(timeout)

            if self._state == self.PENDING:
                raise TimeoutError()
            elif self._state == self.REJECTED:
                if isinstance(self._error, BaseException):
                    raise self._error
                raise RejectionError(self._error)
            else:
                return self._result

    def exception(self, timeout=None):
        """Wait for the promise rejection and returns it's error.

        Args:
            timeout (int, optional): if set, maximum time to wait the promise
                to be rejected. By default, it can wait indefinitely.
        Returns:
            Exception: the error causing the rejection of the Promise.
            None: if the promise is fulfilled.
        Raises:
            TimeoutError: if the promise is not settled within the delay.
        """

        with self._condition:
            if self._state == self.PENDING:
                self._condition.wait(timeout)

            if self._state == self.PENDING:
                raise TimeoutError()
            else:
                return self._error

    def then(self, on_fulfilled=None, on_rejected=None):
        """Create a new promise from callbacks called when this one is settled.

        If the promise is fulfilled, the `on_fulfilled` callback will be
        called. Otherwise (the promise has been rejected), the `on_rejected`
        callback is called.
        In any case, the callback will define the state of the returned
        Promise. If the callback raises an exception, the new Promise is
        rejected. The callback can returns:
        - A value: the new promise will be fulfilled with this value.
        - Another Promise, or any object with a `then` method: when fulfilled
            or rejected, will transfer its status (state and result/error) to
            the Promise returned by this method.

        If a callback is not defined, the state of the "self" promise is
        transferred at the new promise (the state and the value/error).

        The callbacks are never called before this method returns, even if
        the Promise is already settled.

        Args:
            on_fulfilled (callable, optional):  This callback will receive the
                result of the original promise as argument.
            on_rejected (callable, optional): This callback will receive the
                exception raised by the original promise as argument.
        Returns:
            Promise<*>: new promise depending of self.
        """
        if not callable(on_fulfilled):
            on_fulfilled = None
        if not callable(on_rejected):
            on_rejected = None

        if not on_rejected:
            name = '%s' % getattr(on_fulfilled, '__name__', '???')
        elif not on_fulfilled:
            name = '<None, %s>' % getattr(on_rejected, '__name__', '???')
        else:
            name = '<%s, %s>' % (getattr(on_fulfilled, '__name__', '???'),
                                 getattr(on_rejected, '__name__', '???'))
        chained = Promise(_idle_executor, scheduler=self._scheduler,
                          _name=name, _previous=self)

        def callback():
            if on_fulfilled is None:
                return chained._resolve(self._result)
            try:
                new_result = on_fulfilled(self._result)
            except Exception as error:
                return chained._reject(error)
            chained._resolve(new_result)

        def errback():
            if on_rejected is None:
                return chained._reject(self._error)
            try:
                result = on_rejected(self._error)
            except Exception as error:
                return chained._reject(error)
            chained._resolve(result)

        self._add_reactions(callback, errback)
        return chained

    def catch(self, on_rejected):
        """Create a new promise with a callback called when an error occurs.

        Alias of `self.then(None, on_rejected)`

        Args:
            on_rejected (callable): Must take an argument instance of Exception
                (or one of its subclass). Will be called if `self` is rejected.
        returns:
            Promise<*>: new Promise chained to `self`. If `self` is fulfilled,
                the promised value will be the same as `self`. Otherwise, the
                value returned by the `on_rejected()` callback.
        """
        return self.then(None, on_rejected)

    def finally_(self, on_settle):
        """Call a function when the Promise is settled, whatever the result.

        The callback takes no argument, and can't modify the outcome: the
        returned Promise is settled with the same value (or error) as `self`.
        If the callback returns a thenable, the returned Promise waits for it
        before being settled.
        If the callback raises an exception (or returns a rejected Promise),
        the returned Promise is rejected with this new error.

        Args:
            on_settle (callable): callback without argument.
        Returns:
            Promise<*>: new Promise, settled like `self` after `on_settle()`
                is done.
        """
        scheduler = self._scheduler

        def _call_on_settle():
            # Always a local Promise: a foreign thenable's then() may return
            # anything.
            return Promise(lambda ok, error: ok(on_settle()),
                           scheduler=scheduler, _name='FINALLY')

        def _after_fulfillment(value):
            return _call_on_settle().then(lambda _: value)

        def _after_rejection(reason):
            def _reject_again(_):
                return Promise(lambda ok, error: error(reason),
                               scheduler=scheduler, _name='REJECT')

            return _call_on_settle().then(_reject_again)

        return self.then(_after_fulfillment, _after_rejection)

    def safeguard(self):
        """Catch all errors and log them with the most details possible.

        This method is aimed to protect the program from uncaught rejected
        Promise. If no error handler has been set (via then() or catch()), the
        default behavior is to do nothing, and thus, errors are silently
        ignored.
        Calling `safeguard()` after all chains are set will catch these errors,
        and log them as ERROR with the maximum of details possible.
        """
        def guard():
            error = self._error
            if isinstance(error, BaseException):
                _logger.error('[SAFEGUARD] %s', self, exc_info=error)
            else:
                _logger.error('[SAFEGUARD] %s rejected with %r', self, error)

        self._add_reactions(None, guard)

    def __repr__(self):
        return 'Promise(%s)' % self._inner_print()

    def _inner_print(self):
        with self._condition:
            if self._state == self.REJECTED:
                state = 'R'
            elif self._state == self.FULFILLED:
                state = 'F'
            else:
                state = 'P'

        if self._previous:
            return '%s -> %s %s' % (self._previous._inner_print(), self._name,
                                    state)
        return '%s %s' % (self._name, state)

    @classmethod
    def resolve(cls, value, scheduler=None):
        """Create a promise who resolves the selected value.

        Args:
            value: result of the promise. If it's a promise (or any thenable),
                it's returned as is.
            scheduler (Scheduler, optional): scheduler of the new Promise.
        Returns:
            Promise: new Promise resolved with the value passed in parameter.
        """
        if is_thenable(value):
            return value
        else:
            return cls(lambda ok, error: ok(value), scheduler=scheduler,
                       _name='RESOLVE')

    @classmethod
    def reject(cls, reason, scheduler=None):
        """Create a Promise rejected for the reason specified.

        Notes:
            If `reason` is a thenable, it's returned as is, like with
            `resolve()`.

        Args:
            reason: Exception set to the Promise
            scheduler (Scheduler, optional): scheduler of the new Promise.
        Returns:
            Promise: new Promise already rejected.
        """
        if is_thenable(reason):
            return reason
        return cls(lambda ok, error: error(reason), scheduler=scheduler,
                   _name='REJECT')

    @classmethod
    def defer(cls, scheduler=None):
        """Create a new Deferred, bundle of a Promise and its callbacks.

        Returns:
            Deferred: object with the attributes `promise`, `resolve` and
                `reject`.
        """
        from .deferred import Deferred
        return Deferred(scheduler=scheduler)

    @classmethod
    def all(cls, promises, scheduler=None):
        """Create a Promise who wait a list of promises to be all fulfilled.

        The resulting Promise resolve when all of the promises in the list are
        resolved, and returns a list of all the resulting values, keeping the
        order of the promise list.
        If a promise is rejected, then the resulting promise is rejected with
        the same reason, and all results from other promises are ignored.

        Args:
            promises (list): list of Promise. Elements who aren't thenable
                are considered as already fulfilled values.
            scheduler (Scheduler, optional): scheduler of the new Promise.
        Returns:
            Promise<list>: resulting promise, fulfilled when all promises
                are fulfilled, or rejected when one of the promises has been
                rejected.
        """
        promises = [cls.resolve(p, scheduler) for p in promises]
        lock = Lock()

        _remaining_tasks = [len(promises)]
        results = [None] * len(promises)

        if _remaining_tasks[0] == 0:
            return cls.resolve([], scheduler)

        def executor(resolve, reject):
            def resolve_one_promise(index, value):
                with lock:
                    results[index] = value
                    _remaining_tasks[0] -= 1
                    is_complete = _remaining_tasks[0] == 0
                if is_complete:
                    resolve(results)

            for index, p in enumerate(promises):
                p.then(partial(resolve_one_promise, index), reject)

        return cls(executor, scheduler=scheduler, _name='ALL')

    @classmethod
    def race(cls, promises, scheduler=None):
        """Run all promises, then resolve or reject with the fastest Promise.

        Run all promises given in argument, and returns a new Promise. The
        resulting Promise will be settled as soon as the one the running
        Promises is done. Result value or rejection reason of the finished
        promise are transmitted.
        All other Promise result's will be ignored.

        Args:
            promises (list): list of promises to run at the same time.
            scheduler (Scheduler, optional): scheduler of the new Promise.
        Returns:
            Promise: a promise
        Raises:
            ValueError: If the promise list is empty.
        """
        promises = [cls.resolve(p, scheduler) for p in promises]
        if len(promises) == 0:
            raise ValueError('Empty promise list in Promise.race()')

        def executor(resolve, reject):
            for p in promises:
                p.then(resolve, reject)

        return cls(executor, scheduler=scheduler, _name='RACE')

    @classmethod
    def all_settled(cls, promises, scheduler=None):
        """Create a Promise who wait a list of promises to be all settled.

        The resulting Promise is never rejected. It's fulfilled with a list of
        dicts describing the outcome of each promise, in the same order:
        - ``{'status': 'fulfilled', 'value': value}``
        - ``{'status': 'rejected', 'reason': reason}``

        Args:
            promises (list): list of Promise.
            scheduler (Scheduler, optional): scheduler of the new Promise.
        Returns:
            Promise<list of dict>: resulting promise.
        """
        promises = [cls.resolve(p, scheduler) for p in promises]
        lock = Lock()

        _remaining_tasks = [len(promises)]
        results = [None] * len(promises)

        if _remaining_tasks[0] == 0:
            return cls.resolve([], scheduler)

        def executor(resolve, reject):
            def settle_one_promise(index, outcome):
                with lock:
                    results[index] = outcome
                    _remaining_tasks[0] -= 1
                    is_complete = _remaining_tasks[0] == 0
                if is_complete:
                    resolve(results)

            def on_fulfilled(index, value):
                settle_one_promise(index, {'status': cls.FULFILLED,
                                           'value': value})

            def on_rejected(index, reason):
                settle_one_promise(index, {'status': cls.REJECTED,
                                           'reason': reason})

            for index, p in enumerate(promises):
                p.then(partial(on_fulfilled, index),
                       partial(on_rejected, index))

        return cls(executor, scheduler=scheduler, _name='ALL_SETTLED')

    @classmethod
    def any(cls, promises, scheduler=None):
        """Create a Promise fulfilled by the first of the promises fulfilled.

        Rejections are ignored, unless all the promises are rejected. In this
        case, the resulting promise is rejected with an `AggregateError`
        containing all the rejection reasons, in the order of the list.
        An empty list gives a Promise rejected immediately.

        Args:
            promises (list): list of Promise.
            scheduler (Scheduler, optional): scheduler of the new Promise.
        Returns:
            Promise: resulting promise.
        """
        promises = [cls.resolve(p, scheduler) for p in promises]
        lock = Lock()

        _remaining_tasks = [len(promises)]
        errors = [None] * len(promises)

        if _remaining_tasks[0] == 0:
            return cls(lambda ok, error: error(AggregateError([])),
                       scheduler=scheduler, _name='ANY')

        def executor(resolve, reject):
            def reject_one_promise(index, reason):
                with lock:
                    errors[index] = reason
                    _remaining_tasks[0] -= 1
                    is_complete = _remaining_tasks[0] == 0
                if is_complete:
                    reject(AggregateError(errors))

            for index, p in enumerate(promises):
                p.then(resolve, partial(reject_one_promise, index))

        return cls(executor, scheduler=scheduler, _name='ANY')

    def _resolve(self, value):
        """Settle the Promise with a value, following it if it's a thenable.

        If `value` is a thenable, the Promise adopts its state: it will be
        fulfilled or rejected when the thenable is. Values given
        synchronously by the thenable are processed by the loop below instead
        of recursive calls, so long chains of foreign thenables don't exhaust
        the stack.
        """
        values = [value]
        while values:
            value = values.pop()
            if value is self:
                return self._reject(ChainingCycleError(
                    'Chaining cycle detected for %r' % self))

            try:
                then = getattr(value, 'then', None)
            except Exception as error:
                return self._reject(error)

            if not callable(then):
                return self._settle(self.FULFILLED, value)
            self._adopt(then, values)

    def _adopt(self, then, values):
        """Call the `then` method of a thenable to follow its state.

        Only the first call of one of the two callbacks is used. If the
        success callback is called while `then()` is running, the value is
        appended in `values`, to be processed by the caller.

        Args:
            then (callable): bound `then` method of the thenable.
            values (list): values waiting to be resolved by `_resolve()`.
        """
        lock = Lock()
        status = {'committed': False, 'in_call': True}

        def _commit():
            with lock:
                if status['committed']:
                    return False
                status['committed'] = True
                return True

        def on_fulfilled(value):
            with lock:
                if status['committed']:
                    return
                status['committed'] = True
                if status['in_call']:
                    values.append(value)
                    return
            self._resolve(value)

        def on_rejected(reason):
            if _commit():
                self._reject(reason)

        try:
            then(on_fulfilled, on_rejected)
        except Exception as error:
            if _commit():
                self._reject(error)
            else:
                _logger.debug('Thenable adopted by %r raised after settling: '
                              '%r', self, error)
        finally:
            with lock:
                status['in_call'] = False

    def _reject(self, error):
        self._settle(self.REJECTED, error)

    def _settle(self, state, value):
        with self._condition:
            if self._state != self.PENDING:
                _logger.debug('Promise %r already settled. New value will be '
                              'ignored: %r', self, value)
                return
            self._state = state
            if state == self.FULFILLED:
                self._result = value
                reactions = self._callbacks
            else:
                self._error = value
                reactions = self._errbacks

            # Free the references
            self._callbacks = None
            self._errbacks = None

            self._condition.notify_all()

            for reaction in reactions:
                self._scheduler.schedule(reaction)

    def _add_reactions(self, callback=None, errback=None):
        """Register the thunks to call when the Promise is settled.

        Args:
            callback (callable, optional): called without argument if the
                Promise is fulfilled.
            errback (callable, optional): called without argument if the
                Promise is rejected.
        """
        with self._condition:
            if self._state == self.PENDING:
                if callback is not None:
                    self._callbacks.append(callback)
                if errback is not None:
                    self._errbacks.append(errback)
            elif self._state == self.FULFILLED:
                if callback is not None:
                    self._scheduler.schedule(callback)
            elif errback is not None:
                self._scheduler.schedule(errback)
