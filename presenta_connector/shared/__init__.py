"""Shared utilities: errors, logging, ids and common types."""
