"""Mail the end-of-run failure report."""

from __future__ import annotations

import html
import logging
import smtplib
from email.message import EmailMessage
from email.utils import formatdate, make_msgid
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .config import RetentionConfig
    from .failures import RunStats

# priority -> (X-Priority, Importance)
PRIORITY_HEADERS: dict[str, tuple[str, str]] = {
    "high": ("1 (Highest)", "High"),
    "normal": ("3 (Normal)", "Normal"),
    "low": ("5 (Lowest)", "Low"),
}


class Notifier:
    """Builds and sends the HTML failure report over SMTP."""

    def __init__(self, config: RetentionConfig, logger: logging.Logger) -> None:
        """Initialize the notifier.

        Args:
            config: Retention configuration.
            logger: Logger instance.

        """
        self.config = config
        self.settings = config.notification
        self.logger = logger

    def build_body(self, stats: RunStats) -> str:
        """Render the report as HTML. Paths and details are escaped."""
        items = "\n".join(
            "    <li><b>{}</b>: {} ({})</li>".format(
                html.escape(failure.context.label),
                html.escape(failure.subject_path),
                html.escape(failure.detail),
            )
            for failure in stats.failures
        )
        return (
            "<html>\n<body>\n"
            "  <p>The file retention run finished with failures.</p>\n"
            f"  <p>Files deleted: {stats.deleted_count}<br>\n"
            f"  Failures: {stats.failure_count}</p>\n"
            "  <ul>\n"
            f"{items}\n"
            "  </ul>\n"
            f"  <p>See the log for details: {html.escape(str(self.config.log_file))}</p>\n"
            "</body>\n</html>\n"
        )

    def build_message(self, stats: RunStats) -> EmailMessage:
        """Assemble the message with sender, recipients, subject and priority."""
        message = EmailMessage()
        message["From"] = self.settings.sender
        message["To"] = ", ".join(self.settings.recipients)
        message["Subject"] = self.settings.subject
        message["Date"] = formatdate(localtime=True)
        message["Message-ID"] = make_msgid()

        x_priority, importance = PRIORITY_HEADERS[self.settings.priority]
        message["X-Priority"] = x_priority
        message["Importance"] = importance

        message.set_content(self.build_body(stats), subtype="html")
        return message

    def send(self, stats: RunStats) -> bool:
        """Send the report through the configured relay.

        Args:
            stats: Final statistics of the run.

        Returns:
            True if the relay accepted the message.

        """
        if not self.settings.enabled:
            self.logger.warning("Notification disabled; %d failure(s) not mailed", stats.failure_count)
            return False
        if not self.settings.recipients:
            self.logger.warning("No notification recipients configured; report not sent")
            return False

        message = self.build_message(stats)

        try:
            with smtplib.SMTP(self.settings.smtp_host, self.settings.smtp_port, timeout=30) as smtp:
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            self.logger.error(
                "Failed to send report via %s:%d: %s",
                self.settings.smtp_host,
                self.settings.smtp_port,
                e,
            )
            return False

        self.logger.info(
            "Failure report sent to %s (%d failure(s))",
            ", ".join(self.settings.recipients),
            stats.failure_count,
        )
        return True
