# -*- coding: utf-8 -*-

from .__version__ import __version__  # noqa

from .common import config, log
from .decorators import wrap_promise
from .deferred import Deferred
from .errors import AggregateError, ChainingCycleError, PromiseError, \
    RejectionError, TimeoutError
from .promise import Promise
from .reduce_coroutine import reduce_coroutine
from .scheduler import get_default_scheduler, LoopScheduler, \
    QueueScheduler, Scheduler, set_default_scheduler, ThreadScheduler
from .thread_pool import ThreadPoolExecutor
from .util import is_thenable


def configure():
    """Load the config file and apply its log settings."""
    config.load()
    log.set_debug_mode(config.get('debug_mode'))
    log.set_logs_level(config.get('log_levels'))


__all__ = ['AggregateError', 'ChainingCycleError', 'configure', 'Deferred',
           'get_default_scheduler', 'is_thenable', 'LoopScheduler', 'Promise',
           'PromiseError', 'QueueScheduler', 'reduce_coroutine',
           'RejectionError', 'Scheduler', 'set_default_scheduler',
           'ThreadPoolExecutor', 'ThreadScheduler', 'TimeoutError',
           'wrap_promise']
