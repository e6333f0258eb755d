"""Caddy admin API adapter — config walking, route mutation, metrics parsing."""
