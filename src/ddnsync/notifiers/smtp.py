"""ddnsync notifier that sends an email over SMTP"""

import asyncio
import html
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import aiosmtplib

from ..configuration import get_bool, get_number
from ..exceptions import ConfigError, NotifyError
from .notifier import BaseNotifier


HTML_TEMPLATE = """\
<html>
  <head><title>{title}</title></head>
  <body style="font-family: sans-serif;">
    <h2>{title}</h2>
    <p>DNS records now point to:</p>
    <ol>
{items}
    </ol>
  </body>
</html>
"""


class EmailNotifier(BaseNotifier):
    """ddnsync notifier that sends an email listing the new addresses. The
    message has a plain text and an HTML part.

    With ``smtp_starttls`` on (the default), connects in plain text (port 587
    unless ``smtp_port`` is set) and upgrades with STARTTLS. With it off,
    connects with implicit TLS (port 465 unless ``smtp_port`` is set).

    :param name: Name of the notifier (from config section heading)
    :param config: Dict of config options for this notifier
    """

    def __init__(self, name, config):
        super().__init__(name, config)

        try:
            self.host = config['smtp_host']
            self.username = config['smtp_username']
            self.password = config['smtp_password']
            self.to = config['to']
        except KeyError as e:
            self.log.critical("'%s' config option is required", e.args[0])
            raise ConfigError(f"{self.name} notifier requires '{e.args[0]}' "
                              "config option") from None

        owner = f"{self.name} notifier"
        try:
            self.starttls = get_bool(config, 'smtp_starttls', 'true', owner)
            self.port = get_number(config, 'smtp_port',
                                   '587' if self.starttls else '465', owner,
                                   minimum=1, integer=True)
            self.timeout = get_number(config, 'timeout', '10', owner)
        except ConfigError as e:
            self.log.critical("%s", e)
            raise

        self.from_ = config.get('from', f"ddnsync <{self.username}>")
        self.subject = config.get('subject', "ddnsync notification")

    def build_message(self, addresses) -> MIMEMultipart:
        """Build the notification message for the given addresses"""
        msg = MIMEMultipart('alternative')
        msg['Subject'] = self.subject
        msg['From'] = self.from_
        msg['To'] = self.to

        text = "New IP list:\n" + "".join(f"\t{a}\n" for a in addresses)
        items = "\n".join(f"      <li>{html.escape(str(a))}</li>"
                          for a in addresses)
        body = HTML_TEMPLATE.format(title=html.escape(self.subject),
                                    items=items)
        msg.attach(MIMEText(text, 'plain'))
        msg.attach(MIMEText(body, 'html'))
        return msg

    def notify(self, addresses):
        msg = self.build_message(addresses)
        self.log.info("Emailing %d address(es) to %s", len(addresses),
                      self.to)
        try:
            # Tasks run in plain threads, none of which has an event loop
            asyncio.run(aiosmtplib.send(
                msg,
                hostname=self.host,
                port=self.port,
                username=self.username,
                password=self.password,
                start_tls=self.starttls,
                use_tls=not self.starttls,
                timeout=self.timeout,
            ))
        except (aiosmtplib.SMTPException, OSError) as e:
            self.log.error("Could not send email via %s:%d: %s", self.host,
                           self.port, e)
            raise NotifyError(f"Could not send email for {self.name} "
                              "notifier") from e
