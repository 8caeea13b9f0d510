"""Utility helpers - authentication dependencies."""
