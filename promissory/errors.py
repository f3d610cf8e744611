# -*- coding: utf-8 -*-


class PromiseError(Exception):
    """Base class of the errors raised by the promise module."""
    pass


class TimeoutError(PromiseError):
    """An operation could not be executed within the time allowed."""
    pass


class ChainingCycleError(PromiseError, TypeError):
    """A Promise has been resolved with itself.

    It happens when a callback returns the very Promise it's supposed to
    resolve, or when a thenable gives back this Promise as its value.
    """
    pass


class AggregateError(PromiseError):
    """Several errors wrapped in a single one.

    Attributes:
        errors (list): rejection reasons, in the order of the promises given
            to `Promise.any()`.
    """

    def __init__(self, errors, message='All promises were rejected'):
        PromiseError.__init__(self, message)
        self.errors = list(errors)

    def __repr__(self):
        return 'AggregateError(%r)' % (self.errors,)


class RejectionError(PromiseError):
    """A Promise has been rejected with a value who is not an exception.

    Attributes:
        reason: the original rejection value.
    """

    def __init__(self, reason):
        PromiseError.__init__(self, 'Promise rejected with %r' % (reason,))
        self.reason = reason
