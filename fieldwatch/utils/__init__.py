"""Shared utilities for FieldWatch."""
