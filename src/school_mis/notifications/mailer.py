"""Outbound email over SMTP.

Every send returns a bool: delivery problems are logged, never raised.
"""
from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass
from datetime import date
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape
from typing import Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MailConfig:
    host: str
    port: int = 587
    user: str = ""
    password: str = ""
    sender: str = "noreply@schoolmis.com"

    @property
    def enabled(self) -> bool:
        return bool(self.host)


def _format_day(value: Union[date, str]) -> str:
    if isinstance(value, date):
        return value.strftime("%d %B %Y")
    return str(value)


def _one_line(value: str) -> str:
    return " ".join(str(value).split())


class SmtpMailer:
    def __init__(self, config: MailConfig):
        self._config = config

    def _send(self, *, to: str, subject: str, html: str) -> bool:
        if not self._config.enabled:
            logger.warning("Email not configured, skipped %r to %s", subject, to)
            return False

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f'"School MIS" <{self._config.sender}>'
        msg["To"] = to
        msg.attach(MIMEText(html, "html"))

        try:
            with smtplib.SMTP(self._config.host, int(self._config.port), timeout=10) as server:
                server.starttls()
                if self._config.user:
                    server.login(self._config.user, self._config.password)
                server.sendmail(self._config.sender, [to], msg.as_string())
            return True
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Email send failed (%s): %s", subject, e)
            return False

    def send_absentee_alert(
        self,
        parent_email: str,
        student_name: str,
        day: Union[date, str],
        class_name: str,
        section: str,
    ) -> bool:
        name = escape(str(student_name))
        placement = f"{escape(str(class_name))} - {escape(str(section))}"
        html = f"""
        <div style="font-family:Arial,sans-serif;max-width:600px;margin:0 auto;padding:20px">
          <h2 style="color:#dc3545">Attendance Alert</h2>
          <p>Dear Parent/Guardian,</p>
          <p>Your child <strong>{name}</strong> was marked
             <strong style="color:#dc3545">Absent</strong>.</p>
          <table>
            <tr><td><strong>Student Name:</strong></td><td>{name}</td></tr>
            <tr><td><strong>Class &amp; Section:</strong></td><td>{placement}</td></tr>
            <tr><td><strong>Date:</strong></td><td>{_format_day(day)}</td></tr>
          </table>
          <p>If the absence was due to illness or another valid reason, please submit a leave
             note to the class teacher.</p>
          <p style="color:#6c757d;font-size:12px">This is an automated message from School MIS.</p>
        </div>
        """
        return self._send(to=parent_email, subject=f"Attendance Alert: {_one_line(student_name)} Absent", html=html)

    def send_password_reset(self, email: str, token: str) -> bool:
        html = f"""
        <div style="font-family:Arial,sans-serif;max-width:600px;margin:0 auto;padding:20px">
          <h2>Password reset</h2>
          <p>Use this token to reset your School MIS password. It expires in 10 minutes.</p>
          <p style="font-family:monospace;font-size:16px">{escape(token)}</p>
          <p style="color:#6c757d;font-size:12px">If you did not request this, ignore this email.</p>
        </div>
        """
        return self._send(to=email, subject="School MIS password reset", html=html)
