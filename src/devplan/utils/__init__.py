"""Utility helpers for devplan."""
