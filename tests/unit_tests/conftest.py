# -*- coding: utf-8 -*-

import pytest

from promissory import QueueScheduler, set_default_scheduler, \
    ThreadScheduler


@pytest.fixture
def scheduler(request):
    """Install a QueueScheduler as the default scheduler.

    Nothing is executed until the test calls ``scheduler.run()``, so the
    order of the callbacks is fully deterministic.

    Returns:
        QueueScheduler: the scheduler used by all new promises.
    """
    queue_scheduler = QueueScheduler()
    previous = set_default_scheduler(queue_scheduler)

    def _restore():
        set_default_scheduler(previous)
    request.addfinalizer(_restore)
    return queue_scheduler


@pytest.fixture
def thread_scheduler(request):
    """Install a ThreadScheduler as the default scheduler.

    The worker thread is stopped at the end of the test.
    """
    worker_scheduler = ThreadScheduler(name='test-scheduler')
    previous = set_default_scheduler(worker_scheduler)

    def _restore():
        set_default_scheduler(previous)
        worker_scheduler.shutdown()
    request.addfinalizer(_restore)
    return worker_scheduler
