"""Notification utilities for sync and supervisor alerts.

Provides Teams webhook delivery with adaptive card formatting, severity
thresholds and per-alert cooldown deduplication.

SECURITY: All webhook URLs are sanitized from logs to prevent credential leakage.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any

import httpx

from app.core.config import get_settings
from app.core.supervisor.types import EventKind, SupervisorEvent

logger = logging.getLogger(__name__)

# Regex patterns for sensitive data redaction
WEBHOOK_URL_PATTERN = re.compile(
    r"https?://[^\s\"]+webhook[^\s\"]*|https?://[^\s\"]*office\.com/webhook[^\s\"]*",
    re.IGNORECASE,
)
SENSITIVE_PATTERNS = {
    "password": re.compile(r"(['\"]?(?:password|passwd|pwd)['\"]?\s*[:=]\s*)['\"][^'\"]+['\"]", re.IGNORECASE),
    "token": re.compile(r"(['\"]?(?:token|access_token)['\"]?\s*[:=]\s*)['\"][^'\"]+['\"]", re.IGNORECASE),
    "bearer": re.compile(r"((?:bearer|jwt|token)\s+)[A-Za-z0-9._\-]{16,}", re.IGNORECASE),
}


class Severity(str, Enum):
    """Alert severity levels."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


@dataclass
class Notification:
    """Notification data structure."""

    title: str
    message: str
    severity: Severity = Severity.INFO
    metadata: dict[str, Any] = field(default_factory=dict)
    job_type: str | None = None
    service_name: str | None = None
    error_message: str | None = None
    retry_url: str | None = None


# In-memory tracking for notification deduplication
# Maps (alert_type, subject) -> last_notification_time
_notification_history: dict[tuple[str, str | None], datetime] = {}


def should_notify(
    alert_type: str,
    subject: str | None = None,
    cooldown_minutes: int | None = None,
) -> bool:
    """Check if notification should be sent based on deduplication rules.

    Args:
        alert_type: Type of alert (e.g., 'sync_failure', 'service_failed')
        subject: Job or service name for more granular tracking
        cooldown_minutes: Optional override for cooldown period

    Returns:
        True if notification should be sent, False if in cooldown
    """
    settings = get_settings()

    if not settings.notification_enabled:
        return False

    cooldown = timedelta(minutes=cooldown_minutes or settings.notification_cooldown_minutes)
    key = (alert_type, subject)
    now = datetime.utcnow()

    last_sent = _notification_history.get(key)
    if last_sent and (now - last_sent) < cooldown:
        logger.debug(
            f"Skipping notification for {alert_type}/{subject}: "
            f"in cooldown period (last sent {last_sent.isoformat()})"
        )
        return False

    return True


def record_notification_sent(alert_type: str, subject: str | None = None) -> None:
    _notification_history[(alert_type, subject)] = datetime.utcnow()


def clear_notification_history() -> None:
    _notification_history.clear()


def severity_meets_threshold(severity: Severity | str, threshold: Severity | str) -> bool:
    """Check if severity meets or exceeds the threshold.

    Severity order: info < warning < error < critical
    """
    severity_order = {
        Severity.INFO: 0,
        Severity.WARNING: 1,
        Severity.ERROR: 2,
        Severity.CRITICAL: 3,
    }
    return severity_order[Severity(severity)] >= severity_order[Severity(threshold)]


def get_severity_color(severity: Severity | str) -> str:
    colors = {
        Severity.INFO: "#0078D4",
        Severity.WARNING: "#FFB900",
        Severity.ERROR: "#D83B01",
        Severity.CRITICAL: "#A80000",
    }
    return colors.get(Severity(severity), "#0078D4")


def format_alert_card(notification: Notification) -> dict[str, Any]:
    """Format a notification as a Teams Adaptive Card."""
    timestamp = datetime.utcnow().strftime("%Y-%m-%d %H:%M UTC")

    facts = []
    if notification.job_type:
        facts.append({"title": "Sync Job", "value": notification.job_type})
    if notification.service_name:
        facts.append({"title": "Service", "value": notification.service_name})
    for key, value in notification.metadata.items():
        facts.append({"title": key.replace("_", " ").title(), "value": str(value)})

    body: list[dict[str, Any]] = [
        {
            "type": "TextBlock",
            "text": notification.title,
            "weight": "Bolder",
            "size": "Large",
            "color": "Attention" if notification.severity == Severity.CRITICAL else "Default",
        },
        {
            "type": "TextBlock",
            "text": f"Severity: **{notification.severity.value.upper()}** - {timestamp}",
            "size": "Small",
            "isSubtle": True,
        },
        {
            "type": "TextBlock",
            "text": notification.message,
            "wrap": True,
            "spacing": "Medium",
        },
    ]

    if notification.error_message:
        body.append({
            "type": "Container",
            "style": "emphasis",
            "items": [
                {"type": "TextBlock", "text": "Error Details", "weight": "Bolder"},
                {
                    "type": "TextBlock",
                    "text": notification.error_message[:500],  # Truncate long errors
                    "fontType": "Monospace",
                    "wrap": True,
                    "size": "Small",
                },
            ],
        })

    if facts:
        body.append({"type": "FactSet", "facts": facts})

    content: dict[str, Any] = {
        "type": "AdaptiveCard",
        "version": "1.4",
        "backgroundColor": get_severity_color(notification.severity),
        "body": body,
    }
    if notification.retry_url:
        content["actions"] = [
            {"type": "Action.OpenUrl", "title": "Retry Sync", "url": notification.retry_url}
        ]

    return {
        "type": "message",
        "attachments": [
            {
                "contentType": "application/vnd.microsoft.card.adaptive",
                "contentVersion": "1.4",
                "content": content,
            }
        ],
    }


def sanitize_log_message(message: str) -> str:
    """Redact webhook URLs, passwords and tokens from a log message."""
    if not message:
        return message

    sanitized = WEBHOOK_URL_PATTERN.sub("[WEBHOOK_URL_REDACTED]", message)

    def replace_sensitive(match: re.Match) -> str:
        return f"{match.group(1)}[REDACTED]"

    for pattern in SENSITIVE_PATTERNS.values():
        sanitized = pattern.sub(replace_sensitive, sanitized)

    return sanitized


def safe_log(level: str, message: str, *args, **kwargs) -> None:
    """Log a message with automatic sanitization of sensitive data."""
    log_func = getattr(logger, level.lower(), logger.info)
    log_func(sanitize_log_message(message), *args, **kwargs)


async def send_teams_notification(
    notification: Notification,
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict[str, Any]:
    """Send notification to Microsoft Teams via webhook.

    SECURITY: Webhook URLs are never logged - sanitized automatically.
    """
    settings = get_settings()

    if not settings.teams_webhook_url:
        safe_log("warning", "Teams webhook URL not configured")
        return {"success": False, "error": "Teams webhook URL not configured"}

    # NEVER log the actual webhook URL
    safe_log("debug", "Sending Teams notification to configured webhook")

    try:
        async with httpx.AsyncClient(timeout=30.0, transport=transport) as client:
            response = await client.post(
                settings.teams_webhook_url,
                json=format_alert_card(notification),
                headers={"Content-Type": "application/json"},
            )
            response.raise_for_status()
    except httpx.HTTPStatusError as e:
        safe_log("error", f"Teams webhook returned error: HTTP {e.response.status_code}")
        return {"success": False, "error": "Teams webhook request failed"}
    except httpx.HTTPError as e:
        safe_log("error", f"Failed to send Teams notification: {e}")
        return {"success": False, "error": "Failed to send notification"}

    safe_log("info", f"Teams notification sent: {notification.title}")
    return {"success": True, "status_code": response.status_code}


async def send_notification(
    notification: Notification,
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict[str, Any]:
    """Dispatch a notification if enabled and severe enough."""
    settings = get_settings()

    if not settings.notification_enabled:
        logger.debug("Notifications disabled in settings")
        return {"success": False, "error": "Notifications disabled"}

    if not severity_meets_threshold(notification.severity, settings.notification_min_severity):
        logger.debug(
            f"Notification severity {notification.severity.value} below threshold "
            f"{settings.notification_min_severity}"
        )
        return {"success": False, "error": f"Severity {notification.severity.value} below threshold"}

    return await send_teams_notification(notification, transport=transport)


def create_retry_url(job_type: str) -> str:
    """API URL that re-runs a sync job."""
    settings = get_settings()
    return f"http://{settings.host}:{settings.port}/api/v1/sync/{job_type}"


# =============================================================================
# Supervisor escalations
# =============================================================================


def format_escalation_alert(event: SupervisorEvent) -> Notification | None:
    """Build a notification for supervisor events operators must act on."""
    if event.kind is EventKind.CRITICAL_SERVICE_FAILURE:
        return Notification(
            title=f"Critical service down: {event.service}",
            message=(
                f"Critical service {event.service} exceeded its restart ceiling and "
                "could not be recovered. Automatic restarts are suspended until an "
                "operator restarts it."
            ),
            severity=Severity.CRITICAL,
            service_name=event.service,
            error_message=event.detail,
        )
    if event.kind is EventKind.SERVICE_FAILED:
        return Notification(
            title=f"Service failed: {event.service}",
            message=f"Service {event.service} exceeded its restart ceiling and was left stopped.",
            severity=Severity.ERROR,
            service_name=event.service,
            error_message=event.detail,
        )
    if event.kind is EventKind.STARTUP_ERROR:
        return Notification(
            title="Startup aborted",
            message=f"Service {event.service} failed to start; the platform did not boot.",
            severity=Severity.CRITICAL,
            service_name=event.service,
            error_message=event.detail,
        )
    if event.kind is EventKind.EMERGENCY_SHUTDOWN:
        return Notification(
            title="Emergency shutdown",
            message="The platform force-stopped all services after an unhandled fault.",
            severity=Severity.CRITICAL,
            error_message=event.detail,
        )
    return None


async def notify_supervisor_event(event: SupervisorEvent) -> None:
    """Event sink that forwards escalations as notifications."""
    notification = format_escalation_alert(event)
    if notification is None:
        return
    if not should_notify(event.kind.value, event.service):
        return
    result = await send_notification(notification)
    if result.get("success"):
        record_notification_sent(event.kind.value, event.service)
