"""Python client for the dashboard API."""

from .api import ApiError, Attachment, DashboardClient
from .dashboard import DashboardResult, DashboardSession, ResponseFeatures
from .parsing import parse_evaluation, parse_knowledge_graph
from .poller import (
    Completed,
    Failed,
    Pending,
    PayloadParseError,
    Poller,
    PollingConfig,
    PollingError,
    PollingTimeoutError,
    poll_for_completion,
)

__all__ = [
    "ApiError",
    "Attachment",
    "Completed",
    "DashboardClient",
    "DashboardResult",
    "DashboardSession",
    "Failed",
    "PayloadParseError",
    "Pending",
    "Poller",
    "PollingConfig",
    "PollingError",
    "PollingTimeoutError",
    "ResponseFeatures",
    "parse_evaluation",
    "parse_knowledge_graph",
    "poll_for_completion",
]
