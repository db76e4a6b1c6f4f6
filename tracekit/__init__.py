"""Span records, identifiers, collector settings and Jaeger, Datadog and console reporters."""

__version__ = "0.1.0"

__all__ = ["datadog", "ids", "jaeger", "records", "reporter", "thrift"]