"""
Budget monitoring and alerting for metered upstream spend.
"""

from .monitor import BudgetAlert, BudgetMonitor, BudgetState, DailyUsage
from .notifiers import EmailNotifier, LogNotifier, Notifier, WebhookNotifier, build_notifier

__all__ = [
    "BudgetAlert",
    "BudgetMonitor",
    "BudgetState",
    "DailyUsage",
    "EmailNotifier",
    "LogNotifier",
    "Notifier",
    "WebhookNotifier",
    "build_notifier",
]
