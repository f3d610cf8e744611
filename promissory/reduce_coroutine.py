# -*- coding: utf-8 -*-

from .deferred import Deferred
from .errors import RejectionError
from .util import is_thenable


def reduce_coroutine(safeguard=False):
    """Decorator who converts a coroutine of promises into a single promise.

    The greatest interest is the ability to write a function in an
    synchronous-like style, using many asynchronous Promises.
    Whatever is the number of Promises or async calls used, the result will
    always be an unique Promise wrapping the whole process.

    Each time the generator yields a Promise, the value of this Promise is
    sent back into the generator. If the Promise is rejected, the error is
    raised at the `yield` instruction.
    The resulting Promise is resolved by the first non-thenable value
    yielded, by the value returned by the generator, or by the last value
    sent when the generator is over.

    Args:
        safeguard (boolean): if true, use `Promise.safeguard()` on the
            resulting promise.
    """

    def decorator(func):
        def wrapper(*args, **kwargs):
            """
            Args:
                *args
                **kwargs
            Returns:
                Promise<*>
            """
            df = Deferred(_name='COROUTINE %s' % func.__name__)
            if safeguard:
                df.promise.safeguard()

            try:
                # Create generator; Initialization phase
                gen = func(*args, **kwargs)
            except Exception as error:
                df.reject(error)
                return df.promise

            def _call_next_or_set_result(value):
                if is_thenable(value):
                    value.then(iter_next, iter_error)
                else:
                    gen.close()
                    df.resolve(value)

            def iter_next(yielded_value):
                try:
                    next_value = gen.send(yielded_value)
                except StopIteration as stop:
                    if stop.value is not None:
                        return df.resolve(stop.value)
                    return df.resolve(yielded_value)
                except Exception as error:
                    return df.reject(error)
                _call_next_or_set_result(next_value)

            def iter_error(raised_error):
                if isinstance(raised_error, BaseException):
                    error = raised_error
                else:
                    error = RejectionError(raised_error)
                try:
                    next_value = gen.throw(error)
                except StopIteration as stop:
                    if stop.value is not None:
                        return df.resolve(stop.value)
                    return df.reject(raised_error)
                except Exception as new_error:
                    return df.reject(new_error)
                _call_next_or_set_result(next_value)

            # Start and resolve loop.
            try:
                f = next(gen)
            except StopIteration as stop:
                df.resolve(stop.value)
                return df.promise
            except Exception as error:
                df.reject(error)
                return df.promise
            _call_next_or_set_result(f)

            return df.promise

        return wrapper
    return decorator
