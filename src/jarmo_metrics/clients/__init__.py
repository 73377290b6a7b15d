"""Outbound transport clients."""
