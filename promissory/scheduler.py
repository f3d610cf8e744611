# -*- coding: utf-8 -*-
"""Dispatch facilities used to run the Promise reactions.

A Promise never calls its callbacks from inside ``then()``, ``resolve()`` or
``reject()``. Instead, each reaction is wrapped in a thunk (a callable without
argument) and given to a scheduler, who will execute it later, after the
current call has returned.

Every scheduler must respect one rule: thunks scheduled by the same caller
are executed in the same order (FIFO). Nothing else is required: there is no
delay, no priority and no fairness between unrelated thunks.

Three implementations are provided:
- ``QueueScheduler``: an in-memory queue drained explicitly by its owner.
  Deterministic; well suited for tests and single-threaded loops.
- ``ThreadScheduler``: a dedicated worker thread executes the thunks.
- ``LoopScheduler``: thunks are forwarded to an asyncio event loop.

Promises created without explicit scheduler use the default one, returned by
``get_default_scheduler()``. Its type is read from the "scheduler" config
entry the first time it's needed.
"""

from collections import deque
from concurrent.futures import ThreadPoolExecutor
import logging
from threading import Lock

from .common import config

_logger = logging.getLogger(__name__)


def _exec_thunk(thunk):
    try:
        thunk()
    except Exception:
        _logger.exception('Scheduled callback raise an exception!')


class Scheduler(object):
    """Base class of the dispatch facilities."""

    def schedule(self, thunk):
        """Register a callable to be executed later.

        Args:
            thunk (callable): function without argument. It must not be
                executed before this method returns.
        """
        raise NotImplementedError()


class QueueScheduler(Scheduler):
    """FIFO queue of callables, executed when the owner drains it.

    Nothing is executed until ``run()`` or ``run_once()`` is called. Thunks
    scheduled while the queue is drained are appended at the end of the same
    queue, and so are executed by the same ``run()`` call.

    Example:

        >>> scheduler = QueueScheduler()
        >>> p = Promise.resolve(3, scheduler=scheduler).then(lambda x: x * 2)
        >>> scheduler.run()
        >>> p.result(0)
        6
    """

    def __init__(self):
        self._queue = deque()
        self._lock = Lock()

    def schedule(self, thunk):
        with self._lock:
            self._queue.append(thunk)

    def run_once(self):
        """Execute the oldest callable of the queue.

        Returns:
            boolean: True if a callable has been executed; False if the queue
                was empty.
        """
        with self._lock:
            if not self._queue:
                return False
            thunk = self._queue.popleft()
        _exec_thunk(thunk)
        return True

    def run(self, limit=None):
        """Execute callables until the queue is empty.

        Args:
            limit (int, optional): maximum number of callables to execute.
                Useful when callbacks keep scheduling new callbacks.
        Returns:
            int: number of callables executed.
        """
        count = 0
        while limit is None or count < limit:
            if not self.run_once():
                break
            count += 1
        return count

    def __len__(self):
        with self._lock:
            return len(self._queue)


class ThreadScheduler(Scheduler):
    """Execute the callables in a dedicated worker thread.

    The thread is started at the first call to ``schedule()``. There is only
    one worker, so the callables are executed one at a time, in the order
    they were scheduled.

    Notes:
        A callback executed by this scheduler must not wait (with
        ``Promise.result()``) for a Promise using the same scheduler: the
        worker would wait for itself.
    """

    def __init__(self, name='promissory'):
        self._name = name
        self._executor = None
        self._lock = Lock()

    def schedule(self, thunk):
        with self._lock:
            if self._executor is None:
                _logger.debug('Start scheduler thread "%s"', self._name)
                self._executor = ThreadPoolExecutor(
                    max_workers=1, thread_name_prefix=self._name)
            self._executor.submit(_exec_thunk, thunk)

    def shutdown(self, wait=True):
        """Stop the worker thread.

        Callables already scheduled are executed before the thread stops. The
        scheduler can be reused after: a new thread will be started.

        Args:
            wait (boolean): if True, returns only when the thread is joined.
        """
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            _logger.debug('Stop scheduler thread "%s"', self._name)
            executor.shutdown(wait=wait)

    def __enter__(self):
        return self

    def __exit__(self, _type, _value, _tb):
        self.shutdown()


class LoopScheduler(Scheduler):
    """Forward the callables to an asyncio event loop.

    The callables are executed by the loop, in its own thread, in the order
    they were scheduled. ``schedule()`` can be called from any thread.
    """

    def __init__(self, loop):
        """
        Args:
            loop (asyncio.AbstractEventLoop): loop who will run the callables.
        """
        self.loop = loop

    def schedule(self, thunk):
        self.loop.call_soon_threadsafe(_exec_thunk, thunk)


_schedulers = {
    'thread': ThreadScheduler,
    'queue': QueueScheduler
}

_default_scheduler = None
_default_lock = Lock()


def _build_scheduler(name):
    try:
        return _schedulers[name]()
    except KeyError:
        _logger.warning('Unknown scheduler "%s" in config. The thread '
                        'scheduler will be used.', name)
        return ThreadScheduler()


def get_default_scheduler():
    """Returns the scheduler used by Promises created without scheduler.

    The first call creates it, using the type set in the config.
    """
    global _default_scheduler

    with _default_lock:
        if _default_scheduler is None:
            _default_scheduler = _build_scheduler(config.get('scheduler'))
        return _default_scheduler


def set_default_scheduler(scheduler):
    """Replace the default scheduler.

    Promises already created keep the scheduler they were created with.

    Args:
        scheduler (Scheduler): new default scheduler. If None, the next call
            to ``get_default_scheduler()`` will build a new one from the
            config.
    Returns:
        Scheduler: the previous default scheduler (can be None).
    """
    global _default_scheduler

    with _default_lock:
        previous, _default_scheduler = _default_scheduler, scheduler
    return previous
