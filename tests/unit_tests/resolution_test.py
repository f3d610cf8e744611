# -*- coding: utf-8 -*-

import pytest

from promissory import ChainingCycleError, Deferred, Promise


class SyncThenable(object):
    """Foreign thenable calling back its callbacks synchronously."""

    def __init__(self, value):
        self.value = value

    def then(self, on_fulfilled, on_rejected):
        on_fulfilled(self.value)


class StoredThenable(object):
    """Foreign thenable keeping its callbacks to call them later."""

    def __init__(self):
        self.callbacks = []

    def then(self, on_fulfilled, on_rejected):
        self.callbacks.append((on_fulfilled, on_rejected))


class TestResolutionProcedure(object):
    """Test how a Promise adopts the state of the values it's resolved with.
    """

    def test_resolve_with_promise_itself(self, scheduler):
        """Resolve a Promise with itself, from its own executor."""

        class SelfResolvingPromise(Promise):
            def __init__(self):
                Promise.__init__(self, lambda ok, error: ok(self))

        p = SelfResolvingPromise()
        err = p.exception(0)
        assert isinstance(err, ChainingCycleError)
        assert isinstance(err, TypeError)

    def test_callback_returning_its_own_promise(self, scheduler):
        chained = []

        p = Promise.resolve(1).then(lambda _: chained[0])
        chained.append(p)
        scheduler.run()

        assert isinstance(p.exception(0), ChainingCycleError)

    def test_thenable_resolving_to_the_target_promise(self, scheduler):
        """A thenable gives back the Promise it's supposed to resolve."""
        df = Deferred()
        df.resolve(SyncThenable(df.promise))

        assert isinstance(df.promise.exception(0), ChainingCycleError)

    def test_sync_foreign_thenable(self, scheduler):
        df = Deferred()
        df.resolve(SyncThenable(42))

        assert df.promise.result(0) == 42

    def test_async_foreign_thenable(self, scheduler):
        thenable = StoredThenable()
        df = Deferred()
        df.resolve(thenable)
        assert df.promise.state == Promise.PENDING

        on_fulfilled, _ = thenable.callbacks[0]
        on_fulfilled('later')
        assert df.promise.result(0) == 'later'

    def test_only_the_first_thenable_callback_is_used(self, scheduler):
        class Err(Exception):
            pass

        thenable = StoredThenable()
        df = Deferred()
        df.resolve(thenable)

        on_fulfilled, on_rejected = thenable.callbacks[0]
        on_rejected(Err())
        on_fulfilled('ignored')
        on_rejected(ValueError())

        assert isinstance(df.promise.exception(0), Err)

    def test_thenable_calling_both_callbacks_synchronously(self, scheduler):
        class Thenable(object):
            def then(self, on_fulfilled, on_rejected):
                on_fulfilled('first')
                on_rejected(ValueError())
                on_fulfilled('second')

        df = Deferred()
        df.resolve(Thenable())
        assert df.promise.result(0) == 'first'

    def test_thenable_raising_after_callback(self, scheduler):
        """The error raised after the fulfillment is ignored."""
        class Thenable(object):
            def then(self, on_fulfilled, on_rejected):
                on_fulfilled('value')
                raise ValueError()

        df = Deferred()
        df.resolve(Thenable())
        assert df.promise.result(0) == 'value'

    def test_thenable_raising_before_callback(self, scheduler):
        class Err(Exception):
            pass

        class Thenable(object):
            def then(self, on_fulfilled, on_rejected):
                raise Err()

        df = Deferred()
        df.resolve(Thenable())
        assert isinstance(df.promise.exception(0), Err)

    def test_then_attribute_raising_error(self, scheduler):
        class Err(Exception):
            pass

        class Thenable(object):
            @property
            def then(self):
                raise Err()

        df = Deferred()
        df.resolve(Thenable())
        assert isinstance(df.promise.exception(0), Err)

    def test_then_attribute_is_read_only_once(self, scheduler):
        reads = []

        class Thenable(object):
            @property
            def then(self):
                reads.append(True)
                return lambda on_fulfilled, on_rejected: on_fulfilled(3)

        df = Deferred()
        df.resolve(Thenable())
        assert df.promise.result(0) == 3
        assert len(reads) == 1

    def test_non_callable_then_attribute(self, scheduler):
        """An object with a non-callable `then` is a plain value."""
        class NotThenable(object):
            then = 'not a method'

        value = NotThenable()
        df = Deferred()
        df.resolve(value)
        assert df.promise.result(0) is value

    def test_thenable_resolving_to_thenable(self, scheduler):
        df = Deferred()
        df.resolve(SyncThenable(SyncThenable(Promise.resolve('deep'))))
        scheduler.run()
        assert df.promise.result(0) == 'deep'

    def test_long_chain_of_sync_thenables(self, scheduler):
        """A very deep chain must not exhaust the stack."""
        value = 'bottom'
        for _ in range(5000):
            value = SyncThenable(value)

        df = Deferred()
        df.resolve(value)
        assert df.promise.result(0) == 'bottom'

    def test_rejection_reason_is_never_unwrapped(self, scheduler):
        reason = Promise.resolve('value')

        df = Deferred()
        df.reject(reason)
        scheduler.run()
        assert df.promise.exception(0) is reason

    def test_callback_returning_foreign_thenable(self, scheduler):
        p = Promise.resolve(1).then(lambda x: SyncThenable(x + 1))
        scheduler.run()
        assert p.result(0) == 2

    def test_promise_adopted_by_foreign_code(self, scheduler):
        """Promise objects are thenables usable by other implementations."""
        results = []

        Promise.resolve('value').then(results.append)
        scheduler.run()

        p = Promise.resolve('direct')
        p.then(results.append, pytest.fail)
        scheduler.run()
        assert results == ['value', 'direct']
