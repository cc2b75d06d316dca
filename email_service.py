"""
InnoVest — risk alert emails over SMTP.

ENV:
  SMTP_HOST, SMTP_PORT, SMTP_USER, SMTP_PASS   (all four required)
  ALERT_FROM_EMAIL                             (defaults to SMTP_USER)
"""

import logging
import os
import smtplib
from email.mime.text import MIMEText

logger = logging.getLogger(__name__)

SMTP_TIMEOUT = 15


def has_smtp_config() -> bool:
    return all(os.getenv(k) for k in ("SMTP_HOST", "SMTP_PORT", "SMTP_USER", "SMTP_PASS"))


def build_alert_body(user_name, risk_level, risk_score, explanation) -> str:
    return "\n".join([
        f"Hello {user_name or 'User'},",
        "",
        "A risk alert has been triggered.",
        f"Risk Level: {risk_level}",
        f"Risk Score: {risk_score}",
        "",
        "AI Explanation:",
        explanation or "No explanation provided.",
        "",
        "Please review the dashboard and take required action.",
    ])


def _open_smtp(host: str, port: int):
    # 465 is implicit TLS, everything else is upgraded with STARTTLS after connecting
    if port == 465:
        return smtplib.SMTP_SSL(host, port, timeout=SMTP_TIMEOUT)
    return smtplib.SMTP(host, port, timeout=SMTP_TIMEOUT)


def send_risk_alert_email(to_email: str, user_name: str, risk_level: str,
                          risk_score, explanation: str = None) -> dict:
    """
    Send one alert. Returns {"sent": True} or {"sent": False, "reason": ...}
    when SMTP is not configured. smtplib errors propagate to the caller.
    """
    if not has_smtp_config():
        logger.info("Alert for %s not sent: SMTP not configured", to_email)
        return {"sent": False, "reason": "SMTP is not configured on backend."}

    host = os.getenv("SMTP_HOST")
    port = int(os.getenv("SMTP_PORT"))
    user = os.getenv("SMTP_USER")
    from_email = os.getenv("ALERT_FROM_EMAIL") or user

    msg = MIMEText(build_alert_body(user_name, risk_level, risk_score, explanation), "plain")
    msg["Subject"] = f"[InnoVest Alert] {risk_level} risk detected"
    msg["From"] = from_email
    msg["To"] = to_email

    with _open_smtp(host, port) as server:
        if port != 465:
            server.starttls()
        server.login(user, os.getenv("SMTP_PASS"))
        server.sendmail(from_email, [to_email], msg.as_string())

    logger.info("Risk alert (%s, score %s) emailed to %s", risk_level, risk_score, to_email)
    return {"sent": True}
