"""Audit sinks for resolution run lifecycle events."""

from mergeflow.audit.sink import (
    AuditSink,
    AuditSinkError,
    DatadogLogSink,
    InMemoryAuditSink,
    JsonlFileAuditSink,
)

__all__ = [
    "AuditSink",
    "AuditSinkError",
    "DatadogLogSink",
    "InMemoryAuditSink",
    "JsonlFileAuditSink",
]
