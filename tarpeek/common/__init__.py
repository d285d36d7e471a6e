"""Shared configuration, error and logging helpers."""
