import logging
import threading

import pytest

import ddnsync
import ddnsync.manager
from ddnsync import Family

import doubles


class TestComponentValidation:
    @pytest.mark.parametrize('which', ['source', 'provider', 'notifier'])
    @pytest.mark.parametrize('expected', [True, False])
    def test_validate_type(self, mocker, which, expected):
        """Test each validate_*_type calls _validate_component_type with its
        kind and registry"""
        validator = mocker.patch(
            "ddnsync.manager._validate_component_type",
            return_value=expected,
        )
        registry = {'test': object}
        mocker.patch(f"ddnsync.manager.{which}s.{which}s", new=registry)
        validate = getattr(ddnsync.manager, f"validate_{which}_type")

        result = validate('testmod', 'testtype')

        assert result == expected
        assert validator.call_args == (
            (which, registry, 'testmod', 'testtype'),
        )

    def test_built_in(self):
        notifiers = {
            'test': doubles.RecordingNotifier,
        }
        result = ddnsync.manager._validate_component_type(
            'notifier', notifiers, None, 'test'
        )
        assert result
        assert notifiers == {
            'test': doubles.RecordingNotifier,
        }

    def test_entry_point(self, mocker):
        """Test a type found through a ddnsync.<kind> entry point is loaded
        and registered"""
        entry_point = mocker.Mock()
        entry_point.load.return_value = doubles.ListSource
        entry_points = mocker.patch("ddnsync.manager.entry_points",
                                    return_value={'_test': entry_point})
        sources = {
            'test': doubles.MemoryProvider,
        }
        result = ddnsync.manager._validate_component_type(
            'source', sources, None, '_test'
        )
        assert result
        assert entry_points.call_args == ((), {'group': 'ddnsync.source'})
        assert sources == {
            'test': doubles.MemoryProvider,
            '_test': doubles.ListSource,
        }

    def test_built_in_entry_point_conflict(self, mocker):
        """Test a built-in type isn't replaced by an entry point of the same
        name"""
        entry_points = mocker.patch("ddnsync.manager.entry_points")
        notifiers = {
            '_test': doubles.RecordingNotifier,
        }
        result = ddnsync.manager._validate_component_type(
            'notifier', notifiers, None, '_test'
        )
        assert result
        assert not entry_points.called
        assert notifiers == {
            '_test': doubles.RecordingNotifier,
        }

    def test_no_such_type(self, mocker):
        mocker.patch("ddnsync.manager.entry_points", return_value={})
        notifiers = {
            'test': doubles.RecordingNotifier,
        }
        result = ddnsync.manager._validate_component_type(
            'notifier', notifiers, None, 'test_invalid'
        )
        assert not result
        assert notifiers == {
            'test': doubles.RecordingNotifier,
        }

    def test_module_and_class(self):
        notifiers = {
            'test': doubles.RecordingNotifier,
        }
        result = ddnsync.manager._validate_component_type(
            'notifier', notifiers, 'doubles', 'RecordingNotifier'
        )
        assert result
        assert notifiers == {
            'test': doubles.RecordingNotifier,
            ('doubles', 'RecordingNotifier'): doubles.RecordingNotifier,
        }

    def test_no_such_module(self):
        notifiers = dict()
        result = ddnsync.manager._validate_component_type(
            'notifier', notifiers, 'no_such_module_anywhere', 'Notifier'
        )
        assert not result
        assert notifiers == dict()

    def test_no_such_class(self):
        notifiers = dict()
        result = ddnsync.manager._validate_component_type(
            'notifier', notifiers, 'doubles', 'NoSuchNotifier'
        )
        assert not result
        assert notifiers == dict()


@pytest.fixture
def manager_factory(configfile_factory):
    def factory(contents):
        configfile = configfile_factory(contents)
        config = ddnsync.read_file_from_path(configfile.filename)
        return ddnsync.DDNSManager(config)
    return factory


CONFIG = """
    [ddnsync]
    datadir = /tmp/ddnsync-test
    task_startup_interval = 0
    task_retry_timeout = 3
    task_retry_jitter = 1

    [source.home]
    type = static
    ipv4 = 192.0.2.1
    ipv6 = 2001:db8::1

    [provider.store]
    type = fake

    [notifier.quiet]
    type = empty

    [notifier.custom]
    type = RecordingNotifier
    module = doubles

    [task.first]
    family = both
    interval = 30
    source = home
    provider = store
    notifiers = custom, quiet
    ttl = 120
    force = yes

    [task.second]
    family = ipv6
    source = home
    provider = store
"""


def test_manager_builds_tasks(manager_factory):
    """Test tasks are built in config order and wired to their components"""
    manager = manager_factory(CONFIG)

    assert [t.name for t in manager.tasks] == ['first', 'second']
    first, second = manager.tasks
    assert first.families == (Family.V4, Family.V6)
    assert first.interval == 30
    assert first.ttl == 120
    assert first.force
    assert first.source is manager.sources['home']
    assert first.provider is manager.providers['store']
    assert [n.name for n in first.notifiers] == ['custom', 'quiet']
    assert isinstance(first.notifiers[0], doubles.RecordingNotifier)

    assert second.families == (Family.V6,)
    assert second.interval == 60
    assert second.ttl == 300
    assert not second.force
    assert second.notifiers == ()


def test_supervisor_settings(manager_factory, shutdown):
    manager = manager_factory(CONFIG)

    supervisor = manager.make_supervisor(shutdown)

    assert supervisor.tasks == tuple(manager.tasks)
    assert supervisor.startup_interval == 0
    assert supervisor.retry_timeout == 3
    assert supervisor.retry_jitter == 1


def test_unused_components_warned(manager_factory, caplog):
    with caplog.at_level(logging.WARNING):
        manager_factory(CONFIG + """
            [source.spare]
            type = static
            ipv4 = 192.0.2.9

            [notifier.lonely]
            type = empty
        """)

    assert "Source spare is not used by any task" in caplog.text
    assert "Notifier lonely is not used by any task" in caplog.text
    assert "home" not in caplog.text


def test_unknown_kind(manager_factory, caplog):
    with pytest.raises(ddnsync.ConfigError):
        manager_factory(CONFIG.replace("type = fake", "type = carrier_pigeon"))
    assert "carrier_pigeon" in caplog.text


def test_component_config_error(manager_factory):
    """Test a component rejecting its options fails manager creation"""
    with pytest.raises(ddnsync.ConfigError):
        manager_factory(CONFIG.replace("ipv4 = 192.0.2.1", "ipv4 = nope"))


def test_start_and_stop(manager_factory):
    """Test the manager runs its tasks and stops them on request"""
    manager = manager_factory(CONFIG)
    exited = threading.Event()
    provider = manager.providers['store']

    manager.start(on_exit=exited.set)
    assert doubles.wait_until(
        lambda: (provider.list_records(Family.V4) and
                 provider.list_records(Family.V6))
    )
    assert not exited.is_set()
    manager.stop()

    assert exited.is_set()
    records = provider.list_records(Family.V4) + \
        provider.list_records(Family.V6)
    assert {r.address for r in records} == {
        doubles.ip('192.0.2.1'), doubles.ip('2001:db8::1'),
    }


def test_no_tasks_exits(manager_factory):
    manager = manager_factory("""
        [source.home]
        type = static
        ipv4 = 192.0.2.1
    """)
    exited = threading.Event()

    manager.start(on_exit=exited.set)

    assert exited.wait(5)
    manager.stop()


def test_stop_before_start(manager_factory):
    manager = manager_factory(CONFIG)
    manager.stop()
