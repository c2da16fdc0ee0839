"""
Budget alert delivery channels.

Every notifier exposes ``async notify(threshold, state)``. Delivery problems
are logged and swallowed: a broken alert channel must never fail the search
request that happened to cross a threshold.
"""

import asyncio
import smtplib
from email.message import EmailMessage
from typing import Any, Dict, Optional, Protocol

import httpx

from shared.config import BaseConfig
from shared.errors import ConfigurationError
from shared.logging import get_logger

from .monitor import BudgetState

CONSOLE_URL = "https://console.cloud.google.com/apis/api/places-backend.googleapis.com/metrics"
USAGE_STATS_PATH = "/api/usage/stats"
REMEDIATION_HINTS = (
    "Check for unexpected spikes",
    "Review cache hit rates",
    "Adjust rate limits if needed",
    "Increase budget if usage is expected",
)


def format_alert_text(threshold: int, state: BudgetState, source_label: str = "Google Places API") -> str:
    """Human-readable alert body shared by all channels."""
    hints = "\n".join(f"- {hint}" for hint in REMEDIATION_HINTS)
    return (
        f"[BUDGET ALERT] {source_label} usage has reached {threshold}% of monthly budget!\n\n"
        f"Current Usage: ${state.current_usage:.2f} / ${state.budget_limit:.2f}\n"
        f"Percentage Used: {state.percentage_used:.1f}%\n"
        f"Days Remaining: {state.days_remaining_in_month}\n"
        f"Projected Monthly Cost: ${state.projected_monthly_cost:.2f}\n\n"
        f"Please review your API usage and consider:\n{hints}\n\n"
        f"View detailed usage: {USAGE_STATS_PATH}\n"
        f"Provider console: {CONSOLE_URL}"
    )


class Notifier(Protocol):
    """Alert sink for budget threshold crossings."""

    async def notify(self, threshold: int, state: BudgetState) -> bool:
        ...


class LogNotifier:
    """Write the alert as an error-level structured log line."""

    channel = "log"

    def __init__(self):
        self.logger = get_logger("places.budget_alerts")

    async def notify(self, threshold: int, state: BudgetState) -> bool:
        self.logger.error(
            "Budget alert",
            threshold=threshold,
            current_usage=round(state.current_usage, 2),
            budget=state.budget_limit,
            percentage_used=round(state.percentage_used, 1),
            days_remaining=state.days_remaining_in_month,
            projected_monthly_cost=round(state.projected_monthly_cost, 2),
            hints=list(REMEDIATION_HINTS),
            usage_stats=USAGE_STATS_PATH,
        )
        return True


class WebhookNotifier:
    """POST the alert as JSON to a generic or chat webhook."""

    channel = "webhook"

    def __init__(self, url: str, timeout: float = 5.0, client: Optional[httpx.AsyncClient] = None):
        self.url = url
        self.timeout = timeout
        self._client = client
        self.logger = get_logger("places.budget_alerts")

    def build_payload(self, threshold: int, state: BudgetState) -> Dict[str, Any]:
        return {
            "type": "budget_alert",
            "threshold": threshold,
            "budget": state.to_dict(),
            "text": format_alert_text(threshold, state),
        }

    async def notify(self, threshold: int, state: BudgetState) -> bool:
        payload = self.build_payload(threshold, state)
        try:
            if self._client is not None:
                response = await self._client.post(self.url, json=payload, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.url, json=payload)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            self.logger.error("Budget alert webhook error", threshold=threshold, error=str(exc))
            return False

        if response.is_success:
            self.logger.info("Budget alert delivered", channel=self.channel, threshold=threshold,
                             status_code=response.status_code)
            return True

        self.logger.warning(
            "Budget alert webhook rejected",
            threshold=threshold,
            status_code=response.status_code,
            body=response.text[:200],
        )
        return False


class EmailNotifier:
    """Send the alert as a plain-text email over SMTP."""

    channel = "email"

    def __init__(self, host: str, port: int, sender: str, recipient: str, timeout: float = 10.0):
        self.host = host
        self.port = port
        self.sender = sender
        self.recipient = recipient
        self.timeout = timeout
        self.logger = get_logger("places.budget_alerts")

    def build_message(self, threshold: int, state: BudgetState) -> EmailMessage:
        message = EmailMessage()
        message["Subject"] = f"[Budget alert] Places API at {threshold}% of monthly budget"
        message["From"] = self.sender
        message["To"] = self.recipient
        message.set_content(format_alert_text(threshold, state))
        return message

    def _send(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            smtp.send_message(message)

    async def notify(self, threshold: int, state: BudgetState) -> bool:
        message = self.build_message(threshold, state)
        try:
            await asyncio.to_thread(self._send, message)
        except (smtplib.SMTPException, OSError) as exc:
            self.logger.error("Budget alert email error", threshold=threshold, error=str(exc))
            return False

        self.logger.info("Budget alert delivered", channel=self.channel, threshold=threshold)
        return True


def build_notifier(config: BaseConfig) -> Notifier:
    """Select the alert channel configured for this deployment."""
    channel = config.alert_channel
    if channel == "log":
        return LogNotifier()

    if channel == "webhook":
        if not config.alert_webhook_url:
            raise ConfigurationError("Alert webhook URL is not configured")
        return WebhookNotifier(config.alert_webhook_url)

    if channel == "email":
        missing = [
            name for name, value in (
                ("PLACES_SMTP_HOST", config.smtp_host),
                ("PLACES_ALERT_EMAIL_FROM", config.alert_email_from),
                ("PLACES_ALERT_EMAIL_TO", config.alert_email_to),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError("Alert email is not configured", details={"missing": missing})
        return EmailNotifier(config.smtp_host, config.smtp_port, config.alert_email_from, config.alert_email_to)

    raise ConfigurationError(f"Unknown alert channel '{channel}'")
