"""Contribution metrics for the repositories of a GitHub organization."""

__version__ = "0.1.0"
