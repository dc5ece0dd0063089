"""Manage the lifecycle of ephemeral VM and cluster universes."""

__version__ = "0.1.0"
