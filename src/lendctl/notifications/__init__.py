"""Notification fan-out: handler registry, dispatcher, and default handlers."""
