import logging
import threading

import pytest

import ddnsync
from ddnsync import Family, Task

from doubles import (ListSource, MemoryProvider, RecordingNotifier, ip,
                     wait_until)


def make_task(source=None, provider=None, notifiers=(), families=(Family.V4,),
              interval=60, force=False):
    return Task(
        'test_task',
        families,
        interval,
        source if source is not None else ListSource(ipv4=['1.2.3.4']),
        provider if provider is not None else MemoryProvider(),
        notifiers,
        ttl=300,
        force=force,
    )


def test_run_once_both_families():
    """Test a pass syncs each family and notifies once per family that
    changed"""
    source = ListSource(ipv4=['1.2.3.4'], ipv6=['2001:db8::1'])
    provider = MemoryProvider(addresses=['4.3.2.1'])
    notifier = RecordingNotifier()
    task = make_task(source, provider, [notifier],
                     families=(Family.V4, Family.V6))

    task.run_once()

    assert provider.addresses() == {ip('1.2.3.4'), ip('2001:db8::1')}
    assert notifier.received == [[ip('1.2.3.4')], [ip('2001:db8::1')]]
    assert source.calls == [Family.V4, Family.V6]


def test_no_notification_without_changes():
    provider = MemoryProvider(addresses=['1.2.3.4'])
    notifier = RecordingNotifier()
    task = make_task(provider=provider, notifiers=[notifier])

    task.run_once()

    assert provider.mutations == []
    assert notifier.received == []


def test_force_notifies_every_pass():
    provider = MemoryProvider(addresses=['1.2.3.4'])
    notifier = RecordingNotifier()
    task = make_task(provider=provider, notifiers=[notifier], force=True)

    task.run_once()
    task.run_once()

    assert notifier.received == [[ip('1.2.3.4')], [ip('1.2.3.4')]]


def test_source_error_skips_family(caplog):
    """Test a failed lookup skips only that family"""
    source = ListSource(ipv6=['2001:db8::1'])
    source.addresses[Family.V4] = ddnsync.SourceError("lookup timed out")
    provider = MemoryProvider(addresses=['9.9.9.9'])
    task = make_task(source, provider, families=(Family.V4, Family.V6))

    with caplog.at_level(logging.WARNING):
        task.run_once()

    # IPv4 records are untouched, IPv6 synced
    assert provider.addresses() == {ip('9.9.9.9'), ip('2001:db8::1')}
    assert "lookup timed out" in caplog.text


def test_wrong_family_skips_family(caplog):
    """Test a source returning an address of the wrong family causes that
    family to be skipped rather than mixing families"""
    source = ListSource(ipv4=['1.2.3.4'])
    source.addresses[Family.V4].append(ip('2001:db8::1'))
    provider = MemoryProvider(addresses=['9.9.9.9'])
    task = make_task(source, provider)

    with caplog.at_level(logging.WARNING):
        task.run_once()

    assert provider.calls == []
    assert "wrong family" in caplog.text


def test_notifiers_called_in_order():
    order = []
    notifiers = [RecordingNotifier(name, log_to=order)
                 for name in ('first', 'second', 'third')]
    task = make_task(notifiers=notifiers)

    task.run_once()

    assert order == ['first', 'second', 'third']


def test_notifier_error_stops_remaining_notifiers():
    order = []
    notifiers = [RecordingNotifier('first', log_to=order),
                 RecordingNotifier('broken', log_to=order, fail=True),
                 RecordingNotifier('last', log_to=order)]
    provider = MemoryProvider()
    task = make_task(provider=provider, notifiers=notifiers)

    with pytest.raises(ddnsync.NotifyError):
        task.run_once()

    assert order == ['first', 'broken']
    # The records were still updated
    assert provider.addresses() == {ip('1.2.3.4')}


def test_provider_error_propagates():
    provider = MemoryProvider()
    provider.fail_on.add('list')
    notifier = RecordingNotifier()
    task = make_task(provider=provider, notifiers=[notifier])

    with pytest.raises(ddnsync.ProviderError):
        task.run_once()
    assert notifier.received == []


def test_run_once_stops_after_shutdown(shutdown):
    source = ListSource(ipv4=['1.2.3.4'], ipv6=['2001:db8::1'])
    task = make_task(source, families=(Family.V4, Family.V6))
    shutdown.signal()

    task.run_once(shutdown)

    assert source.calls == []


def test_run_ticks_until_shutdown(shutdown):
    """Test a running task makes repeated passes and stops on shutdown, with
    signal returning only once the task has finished"""
    provider = MemoryProvider()
    task = make_task(provider=provider, interval=0.02)
    thread = threading.Thread(target=task.run, args=(shutdown,))
    thread.start()

    assert wait_until(lambda: len(provider.calls) >= 3)
    shutdown.signal()
    thread.join(5)

    assert not thread.is_alive()
    assert shutdown.subscriber_count == 0
    # Only the first pass changed anything
    assert provider.mutations == [('create', ip('1.2.3.4'), 300)]


def test_shutdown_during_start_delay(shutdown):
    """Test a task that is still waiting to start makes no passes"""
    provider = MemoryProvider()
    task = make_task(provider=provider)
    thread = threading.Thread(target=task.run, args=(shutdown, 60))
    thread.start()

    assert wait_until(lambda: shutdown.subscriber_count == 1)
    shutdown.signal()
    thread.join(5)

    assert not thread.is_alive()
    assert provider.calls == []


def test_run_raises_on_error(shutdown):
    provider = MemoryProvider()
    provider.fail_on.add('create')
    task = make_task(provider=provider, interval=0.01)

    with pytest.raises(ddnsync.ProviderError):
        task.run(shutdown)
    assert shutdown.subscriber_count == 0
