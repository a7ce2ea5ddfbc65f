from __future__ import annotations

import logging
import smtplib
import ssl
import time
from collections.abc import Sequence
from email.message import EmailMessage

from jinja2 import TemplateError

from player_watch.logging.init import component_logger
from player_watch.mail.templates import TemplateLoader
from player_watch.models.config_models import MailConfig
from player_watch.models.player import Player
from player_watch.services.deadline import Deadline

"""Store notification mailer.

One HTML mail per store, rendered from the configured Jinja2 template and
sent over SMTP. Template context:

- store_number: int store number (0 for players without a store tag)
- store_id: label from mail.stores, or the number as text
- players: list of Player
- sender, recipients, subject

With a run deadline no SMTP step starts after expiry and each step waits on
the socket for at most the remaining budget.
"""

__all__ = [
    "MailError",
    "Mailer",
]

DEFAULT_SMTP_TIMEOUT = 30.0


class MailError(Exception):
    """Raised when a store mail cannot be rendered or sent."""


class Mailer:
    def __init__(
        self,
        config: MailConfig,
        loader: TemplateLoader,
        logger: logging.Logger | None = None,
    ) -> None:
        """Compile the body and subject templates.

        Raises:
            TemplateLoadError: template missing or invalid
        """
        self.config = config
        self.logger = logger or component_logger("mailer")
        self.body_template = loader.load(config.template_name)
        self.subject_template = loader.from_string(config.subject)

    def send(self, store_number: int, players: Sequence[Player], deadline: Deadline | None = None) -> None:
        """Render and send the mail for one store.

        Args:
            store_number: Store the players belong to
            players: Offline players of that store
            deadline: Run budget; every SMTP step must start before it expires

        Raises:
            MailError: rendering or SMTP delivery failed, or the deadline expired
        """
        start = time.perf_counter()
        message = self.build_message(store_number, players)
        try:
            self._deliver(message, deadline)
        except (smtplib.SMTPException, OSError) as e:
            raise MailError(f"failed to send mail: {e}") from e
        self.logger.debug(
            f"mailer: sent store={store_number} players={len(players)} elapsed_sec={time.perf_counter() - start:.3f}"
        )

    def build_message(self, store_number: int, players: Sequence[Player]) -> EmailMessage:
        context = {
            "store_number": store_number,
            "store_id": self.config.store_label(store_number),
            "players": list(players),
            "sender": self.config.sender,
            "recipients": list(self.config.recipients),
        }
        try:
            subject = self.subject_template.render(**context).strip()
            body = self.body_template.render(subject=subject, **context)
        except TemplateError as e:
            raise MailError(f"failed to build mail body: {e}") from e

        message = EmailMessage()
        message["From"] = self.config.sender
        message["To"] = ", ".join(self.config.recipients)
        message["Subject"] = subject
        message.set_content(body, subtype="html")
        return message

    def _deliver(self, message: EmailMessage, deadline: Deadline | None) -> None:
        cfg = self.config
        timeout = deadline.timeout() if deadline is not None else DEFAULT_SMTP_TIMEOUT
        self._checkpoint(None, deadline, "connect")
        if cfg.use_ssl:
            smtp: smtplib.SMTP = smtplib.SMTP_SSL(
                cfg.host, cfg.port, timeout=timeout, context=ssl.create_default_context()
            )
        else:
            smtp = smtplib.SMTP(cfg.host, cfg.port, timeout=timeout)

        with smtp:
            self._checkpoint(smtp, deadline, "EHLO")
            smtp.ehlo()
            if not cfg.use_ssl and smtp.has_extn("starttls"):
                self._checkpoint(smtp, deadline, "STARTTLS")
                smtp.starttls(context=ssl.create_default_context())
                self._checkpoint(smtp, deadline, "EHLO")
                smtp.ehlo()
            if cfg.password:
                self._checkpoint(smtp, deadline, "AUTH")
                smtp.login(cfg.sender, cfg.password)
            self._checkpoint(smtp, deadline, "MAIL")
            smtp.send_message(message, from_addr=cfg.sender, to_addrs=list(cfg.recipients))

    @staticmethod
    def _checkpoint(smtp: smtplib.SMTP | None, deadline: Deadline | None, step: str) -> None:
        """Refuse to start ``step`` after expiry; otherwise cap its socket wait at the remaining budget."""
        if deadline is None:
            return
        if deadline.expired:
            raise MailError(f"deadline expired before {step}")
        if smtp is not None and smtp.sock is not None:
            smtp.sock.settimeout(deadline.timeout())
