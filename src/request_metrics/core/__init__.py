"""Core configuration for request-metrics."""
