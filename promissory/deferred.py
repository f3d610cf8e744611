# -*- coding: utf-8 -*-

from .promise import Promise


class Deferred(object):
    """Producer side of a Promise.

    A Deferred is the "creator" side of an async task, whereas a Promise
    represents the asynchronous value from the "consumer" side. It's useful
    when the Promise is settled from outside the executor function.

    Attributes:
        promise (Promise): the Promise associated to the Deferred.
        resolve (function): fulfill the promise, or make it follow the state
            of a thenable.
        reject (function): reject the promise.
    """

    def __init__(self, *args, **kwargs):
        """
        Args:
            *args: arguments passed to the Promise constructor, after the
                executor.
            **kwargs: keyword arguments passed to the Promise constructor.
        """
        kwargs.setdefault('_name', 'DEFERRED')
        self.promise = Promise(self._executor, *args, **kwargs)

    def _executor(self, resolve, reject):
        self.resolve = resolve
        self.reject = reject
