"""CLI commands for Jira Ticket Sync."""

from .sync import sync

__all__ = ['sync']
