"""Shared command-line helpers."""
