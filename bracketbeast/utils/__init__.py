"""Logging and lookup helpers."""
