"""Retention policy enforcement for CloudWatch log groups."""

__version__ = "0.1.0"
