"""Jira Ticket Sync - closed tickets with time spent per status bucket."""

__version__ = "0.1.0"
