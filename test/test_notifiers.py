import aiosmtplib
import pytest
import requests

import ddnsync
from ddnsync.notifiers import EmptyNotifier
from ddnsync.notifiers.smtp import EmailNotifier
from ddnsync.notifiers.webhook import WebhookNotifier

from doubles import ip


ADDRESSES = [ip('192.0.2.1'), ip('2001:db8::1'), ip('192.0.2.2')]


class TestWebhook:
    @pytest.fixture
    def session(self, mocker):
        factory = mocker.patch('ddnsync.notifiers.webhook.bound_session')
        session = factory.return_value.__enter__.return_value
        session.factory = factory
        session.post.return_value.status_code = 200
        return session

    def test_requires_url(self):
        with pytest.raises(ddnsync.ConfigError):
            WebhookNotifier('hook', {})

    def test_bad_local_address(self):
        with pytest.raises(ddnsync.ConfigError):
            WebhookNotifier('hook', {'url': 'https://hook.example/',
                                     'local_address': 'eth0'})

    def test_payload(self, session):
        notifier = WebhookNotifier('hook', {
            'url': 'https://hook.example/ddns',
            'authorization_header': 'Bearer abc',
            'timeout': '4',
        })

        notifier.notify(ADDRESSES)

        assert session.factory.call_args == ((None,),)
        args, kwargs = session.post.call_args
        assert args == ('https://hook.example/ddns',)
        assert kwargs['json'] == [{
            'ipv4_list': ['192.0.2.1', '192.0.2.2'],
            'ipv6_list': ['2001:db8::1'],
        }]
        assert kwargs['headers'] == {'Authorization': 'Bearer abc'}
        assert kwargs['timeout'] == 4.0

    def test_local_address(self, session):
        notifier = WebhookNotifier('hook', {'url': 'https://hook.example/',
                                            'local_address': '192.0.2.50'})

        notifier.notify(ADDRESSES)

        assert session.factory.call_args == (('192.0.2.50',),)
        assert session.post.call_args[1]['headers'] == {}

    def test_http_error(self, session):
        response = session.post.return_value
        response.status_code = 500
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(
            "500 Server Error"
        )
        notifier = WebhookNotifier('hook', {'url': 'https://hook.example/'})

        with pytest.raises(ddnsync.NotifyError):
            notifier.notify(ADDRESSES)

    def test_connection_error(self, session):
        session.post.side_effect = requests.exceptions.ConnectionError(
            "refused"
        )
        notifier = WebhookNotifier('hook', {'url': 'https://hook.example/'})

        with pytest.raises(ddnsync.NotifyError):
            notifier.notify(ADDRESSES)


class TestEmail:
    CONFIG = {
        'smtp_host': 'smtp.example.com',
        'smtp_username': 'robot@example.com',
        'smtp_password': 'hunter2',
        'to': 'admin@example.com',
    }

    @pytest.fixture
    def send(self, mocker):
        return mocker.patch('ddnsync.notifiers.smtp.aiosmtplib.send',
                            new_callable=mocker.AsyncMock)

    @pytest.mark.parametrize('missing', ['smtp_host', 'smtp_username',
                                         'smtp_password', 'to'])
    def test_required_options(self, missing):
        config = dict(self.CONFIG)
        del config[missing]
        with pytest.raises(ddnsync.ConfigError):
            EmailNotifier('mail', config)

    def test_defaults(self):
        notifier = EmailNotifier('mail', self.CONFIG)
        assert notifier.starttls
        assert notifier.port == 587
        assert notifier.from_ == 'ddnsync <robot@example.com>'
        assert notifier.subject == 'ddnsync notification'

    def test_implicit_tls_default_port(self):
        notifier = EmailNotifier('mail', dict(self.CONFIG,
                                              smtp_starttls='off'))
        assert notifier.port == 465

    def test_message(self):
        notifier = EmailNotifier('mail', dict(self.CONFIG,
                                              subject='IP changed'))

        msg = notifier.build_message(ADDRESSES)

        assert msg['Subject'] == 'IP changed'
        assert msg['To'] == 'admin@example.com'
        plain, html = msg.get_payload()
        assert plain.get_content_type() == 'text/plain'
        assert html.get_content_type() == 'text/html'
        for address in ('192.0.2.1', '2001:db8::1', '192.0.2.2'):
            assert address in plain.get_payload(decode=True).decode()
            assert f'<li>{address}</li>' in \
                html.get_payload(decode=True).decode()

    def test_send_starttls(self, send):
        notifier = EmailNotifier('mail', dict(self.CONFIG, smtp_port='2525'))

        notifier.notify(ADDRESSES)

        args, kwargs = send.call_args
        assert args[0]['To'] == 'admin@example.com'
        assert kwargs == {
            'hostname': 'smtp.example.com',
            'port': 2525,
            'username': 'robot@example.com',
            'password': 'hunter2',
            'start_tls': True,
            'use_tls': False,
            'timeout': 10.0,
        }
        assert send.await_count == 1

    def test_send_implicit_tls(self, send):
        notifier = EmailNotifier('mail', dict(self.CONFIG,
                                              smtp_starttls='false'))

        notifier.notify(ADDRESSES)

        kwargs = send.call_args[1]
        assert kwargs['port'] == 465
        assert not kwargs['start_tls']
        assert kwargs['use_tls']

    def test_login_failure(self, send):
        send.side_effect = aiosmtplib.SMTPAuthenticationError(
            535, "bad credentials"
        )
        notifier = EmailNotifier('mail', self.CONFIG)

        with pytest.raises(ddnsync.NotifyError):
            notifier.notify(ADDRESSES)

    def test_connection_failure(self, send):
        send.side_effect = aiosmtplib.SMTPConnectError("connection refused")
        notifier = EmailNotifier('mail', self.CONFIG)

        with pytest.raises(ddnsync.NotifyError):
            notifier.notify(ADDRESSES)

    def test_socket_error(self, send):
        send.side_effect = OSError("network unreachable")
        notifier = EmailNotifier('mail', self.CONFIG)

        with pytest.raises(ddnsync.NotifyError):
            notifier.notify(ADDRESSES)

    @pytest.mark.parametrize('option, value', [('smtp_port', 'smtp'),
                                               ('smtp_starttls', 'maybe'),
                                               ('timeout', 'never')])
    def test_bad_options(self, option, value):
        with pytest.raises(ddnsync.ConfigError):
            EmailNotifier('mail', dict(self.CONFIG, **{option: value}))


def test_empty_notifier():
    EmptyNotifier('nothing', {}).notify(ADDRESSES)
