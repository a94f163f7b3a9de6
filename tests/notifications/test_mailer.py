from __future__ import annotations

from datetime import date

import pytest

from school_mis.notifications.mailer import MailConfig, SmtpMailer


@pytest.fixture
def sent(monkeypatch):
    outbox = []

    def capture(self, *, to, subject, html):
        outbox.append({"to": to, "subject": subject, "html": html})
        return True

    monkeypatch.setattr(SmtpMailer, "_send", capture)
    return outbox


def test_absentee_alert_escapes_names_and_class(sent):
    mailer = SmtpMailer(MailConfig(host="smtp.test"))

    assert mailer.send_absentee_alert(
        "parent@home.test", "<b>Bob</b>", date(2025, 1, 15), "Class <10>", "A&B"
    ) is True

    (mail,) = sent
    assert "&lt;b&gt;Bob&lt;/b&gt;" in mail["html"]
    assert "<b>Bob</b>" not in mail["html"]
    assert "Class &lt;10&gt; - A&amp;B" in mail["html"]
    assert "15 January 2025" in mail["html"]


def test_absentee_alert_subject_stays_on_one_line(sent):
    SmtpMailer(MailConfig(host="smtp.test")).send_absentee_alert(
        "parent@home.test", "Bob\r\nBcc: someone@evil.test", date(2025, 1, 15), "Class 10", "A"
    )

    (mail,) = sent
    assert "\n" not in mail["subject"]
    assert mail["subject"] == "Attendance Alert: Bob Bcc: someone@evil.test Absent"


def test_unconfigured_mailer_skips_sending():
    assert SmtpMailer(MailConfig(host="")).send_password_reset("a@school.test", "token") is False
