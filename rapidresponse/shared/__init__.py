"""Shared models and utilities used across services."""
