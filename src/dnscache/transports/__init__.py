"""Upstream transports used by the resolution coordinator."""
