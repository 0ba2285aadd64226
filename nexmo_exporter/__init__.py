"""Prometheus exporter for the Nexmo (Vonage) account balance."""

__version__ = "0.1.0"
