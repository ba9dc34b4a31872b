"""Relay call log and process counters.

Every relayed call ends in `log_relay_operation`, which writes one JSON line
to the `relay.metrics` logger and bumps the in-process counters served by
`GET /metrics` and `GET /metrics/prometheus`.
"""

import json
import logging
from collections import Counter, deque
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from typing import Any

from .utils import extract_domain, sanitize_url

logger = logging.getLogger("relay.metrics")

# Durations kept for the timing summary
TIMING_WINDOW = 1000


@dataclass
class OperationLog:
    """One relayed call, as logged."""

    timestamp: str
    operation_id: str
    operation: str
    url: str
    domain: str
    tier_used: int
    tier_name: str
    status_code: int
    success: bool
    execution_time_ms: float
    escalated: bool = False
    challenge_reason: str | None = None
    error_type: str | None = None
    error_message: str | None = None

    def to_json(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)


class RelayMetrics:
    """Counters over the relayed calls of this process.

    Only touched from the event loop, so no locking.
    """

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self.started_at = datetime.now(UTC)
        self.outcomes: Counter[str] = Counter()
        self.by_operation: Counter[str] = Counter()
        self.by_tier: Counter[int] = Counter()
        self.by_status: Counter[int] = Counter()
        self.challenges: Counter[str] = Counter()
        self.errors: Counter[str] = Counter()
        self.escalations = 0
        self.durations: deque[float] = deque(maxlen=TIMING_WINDOW)

    @property
    def total(self) -> int:
        return sum(self.outcomes.values())

    def record(self, log: OperationLog) -> None:
        self.outcomes["success" if log.success else "failure"] += 1
        self.by_operation[log.operation] += 1
        self.by_tier[log.tier_used] += 1
        self.by_status[log.status_code] += 1
        if log.escalated:
            self.escalations += 1
        if log.challenge_reason:
            self.challenges[log.challenge_reason] += 1
        if log.error_type:
            self.errors[log.error_type] += 1
        self.durations.append(log.execution_time_ms)

    def summary(self) -> dict[str, Any]:
        timing: dict[str, Any] = {"samples": len(self.durations)}
        if self.durations:
            timing["mean_ms"] = round(sum(self.durations) / len(self.durations), 2)
            timing["max_ms"] = round(max(self.durations), 2)

        return {
            "uptime_seconds": (datetime.now(UTC) - self.started_at).total_seconds(),
            "requests": {
                "total": self.total,
                "success": self.outcomes["success"],
                "failure": self.outcomes["failure"],
                "by_operation": dict(self.by_operation),
                "by_tier": dict(self.by_tier),
                "by_status": dict(self.by_status),
            },
            "escalations": self.escalations,
            "challenges": dict(self.challenges),
            "errors": dict(self.errors),
            "timing": timing,
        }

    def to_prometheus(self) -> str:
        lines = [
            f"relay_requests_total {self.total}",
            f"relay_success_total {self.outcomes['success']}",
            f"relay_failure_total {self.outcomes['failure']}",
            f"relay_escalations_total {self.escalations}",
        ]
        labelled = (
            ("relay_requests_by_operation", "operation", self.by_operation),
            ("relay_requests_by_tier", "tier", self.by_tier),
            ("relay_challenges_total", "reason", self.challenges),
            ("relay_errors_total", "type", self.errors),
        )
        for name, label, counter in labelled:
            lines.extend(f'{name}{{{label}="{key}"}} {count}' for key, count in counter.items())
        return "\n".join(lines)


_metrics = RelayMetrics()


def log_relay_operation(
    operation_id: str,
    operation: str,
    url: str,
    tier_used: int,
    tier_name: str,
    status_code: int,
    success: bool,
    execution_time_ms: float,
    escalated: bool = False,
    challenge_reason: str | None = None,
    error_type: str | None = None,
    error_message: str | None = None,
) -> OperationLog:
    """Record one relayed call and log it as a JSON line.

    The URL is logged with sensitive query parameters redacted. Failures
    (transport errors or an error status) are logged at WARNING.
    """
    log = OperationLog(
        timestamp=datetime.now(UTC).isoformat(),
        operation_id=operation_id,
        operation=operation,
        url=sanitize_url(url),
        domain=extract_domain(url),
        tier_used=tier_used,
        tier_name=tier_name,
        status_code=status_code,
        success=success,
        execution_time_ms=execution_time_ms,
        escalated=escalated,
        challenge_reason=challenge_reason,
        error_type=error_type,
        error_message=error_message,
    )
    _metrics.record(log)
    logger.log(logging.INFO if success else logging.WARNING, log.to_json())
    return log


def get_metrics_summary() -> dict[str, Any]:
    return _metrics.summary()


def get_prometheus_metrics() -> str:
    return _metrics.to_prometheus()


def reset_metrics() -> None:
    """Zero every counter."""
    _metrics.reset()
