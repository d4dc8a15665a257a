import logging
import threading
import time

import pytest

from ddnsync import TaskSupervisor

from doubles import ScriptedTask, wait_until


@pytest.fixture
def run_supervisor(shutdown):
    """Fixture to run a supervisor in a background thread. Shutdown is
    signaled (and the thread joined) at teardown."""
    threads = []

    def run(supervisor):
        thread = threading.Thread(target=supervisor.run)
        thread.start()
        threads.append(thread)
        return thread

    yield run
    shutdown.signal()
    for thread in threads:
        thread.join(5)
        assert not thread.is_alive()


def supervisor_errors(caplog):
    return [r for r in caplog.records
            if r.name == 'ddnsync.supervisor' and r.levelno == logging.ERROR]


def test_staggered_start_delays(shutdown, run_supervisor):
    """Test task i is started with a delay of i * startup_interval"""
    tasks = [ScriptedTask(f'task{i}') for i in range(3)]
    supervisor = TaskSupervisor(tasks, shutdown, startup_interval=5,
                                retry_timeout=10)

    run_supervisor(supervisor)

    assert wait_until(lambda: all(t.runs == 1 for t in tasks))
    assert [t.delays for t in tasks] == [[0], [5], [10]]
    assert [h.delay for _, h in sorted(supervisor.handles.items())] == \
        [0, 5, 10]


def test_staggered_start_timing(shutdown, run_supervisor):
    """Test the third task really starts no earlier than two intervals after
    the supervisor"""
    tasks = [ScriptedTask(f'task{i}') for i in range(3)]
    supervisor = TaskSupervisor(tasks, shutdown, startup_interval=0.1)

    started = time.monotonic()
    run_supervisor(supervisor)

    assert wait_until(lambda: len(tasks[2].start_times) == 1)
    assert tasks[2].start_times[0] - started >= 0.2
    assert tasks[0].start_times[0] <= tasks[1].start_times[0] <= \
        tasks[2].start_times[0]


def test_failed_task_respawned(mocker, caplog, shutdown, run_supervisor):
    """Test a failed task is restarted in its slot after the retry timeout
    plus jitter, and the failure is logged exactly once"""
    mocker.patch('ddnsync.supervisor.random.random', return_value=0.5)
    failing = ScriptedTask('flaky', ['fail'])
    steady = ScriptedTask('steady')
    supervisor = TaskSupervisor([failing, steady], shutdown,
                                startup_interval=0, retry_timeout=0.05,
                                retry_jitter=0.1)

    with caplog.at_level(logging.INFO):
        run_supervisor(supervisor)
        assert wait_until(lambda: len(failing.start_times) == 2)

    assert failing.delays == [0, pytest.approx(0.1)]
    assert failing.start_times[1] - failing.start_times[0] >= 0.1
    assert supervisor.handles[0].runs == 2
    assert supervisor.handles[1].runs == 1
    assert steady.runs == 1

    errors = supervisor_errors(caplog)
    assert len(errors) == 1
    assert 'flaky' in errors[0].getMessage()
    assert 'provider exploded' in errors[0].getMessage()


def test_unexpected_error_logged_with_traceback(mocker, caplog, shutdown,
                                                run_supervisor):
    mocker.patch('ddnsync.supervisor.random.random', return_value=0)
    task = ScriptedTask('buggy', ['crash'])
    supervisor = TaskSupervisor([task], shutdown, retry_timeout=0.01)

    with caplog.at_level(logging.INFO):
        run_supervisor(supervisor)
        assert wait_until(lambda: len(task.start_times) == 2)

    errors = supervisor_errors(caplog)
    assert len(errors) == 1
    assert errors[0].exc_info is not None
    assert 'has a bug' in errors[0].getMessage()


@pytest.mark.parametrize('rand', [0, 0.25, 0.999999])
def test_retry_delay_range(mocker, shutdown, rand):
    mocker.patch('ddnsync.supervisor.random.random', return_value=rand)
    supervisor = TaskSupervisor([], shutdown, retry_timeout=10,
                                retry_jitter=5)

    delay = supervisor.retry_delay()

    assert 10 <= delay < 15
    assert delay == pytest.approx(10 + rand * 5)


def test_no_tasks_returns_immediately(caplog, shutdown):
    supervisor = TaskSupervisor([], shutdown)

    with caplog.at_level(logging.INFO):
        supervisor.run()

    assert "No tasks" in caplog.text
    assert shutdown.subscriber_count == 0


def test_signal_drains_all_tasks(shutdown):
    """Test signaling shutdown returns only after the supervisor and every
    task have finished"""
    tasks = [ScriptedTask(f'task{i}') for i in range(3)]
    supervisor = TaskSupervisor(tasks, shutdown, startup_interval=0.05)
    thread = threading.Thread(target=supervisor.run)
    thread.start()
    assert wait_until(lambda: all(len(t.start_times) == 1 for t in tasks))

    shutdown.signal()

    assert [t.finished for t in tasks] == [1, 1, 1]
    assert supervisor.handles == {}
    thread.join(5)
    assert not thread.is_alive()


def test_signal_during_stagger(shutdown):
    """Test tasks still waiting for their first start are drained too"""
    tasks = [ScriptedTask(f'task{i}') for i in range(3)]
    supervisor = TaskSupervisor(tasks, shutdown, startup_interval=60)
    thread = threading.Thread(target=supervisor.run)
    thread.start()
    assert wait_until(lambda: all(t.runs == 1 for t in tasks))

    shutdown.signal()

    assert [len(t.start_times) for t in tasks] == [1, 0, 0]
    assert [t.finished for t in tasks] == [1, 1, 1]
    thread.join(5)


def test_no_respawn_after_shutdown(caplog, shutdown):
    task = ScriptedTask('stubborn', ['fail_on_shutdown'])
    supervisor = TaskSupervisor([task], shutdown, retry_timeout=0)
    thread = threading.Thread(target=supervisor.run)
    thread.start()
    assert wait_until(lambda: len(task.start_times) == 1)

    with caplog.at_level(logging.INFO):
        shutdown.signal()
    thread.join(5)

    assert task.runs == 1
    assert "failed during shutdown" in caplog.text
