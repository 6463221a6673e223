"""Utility helpers for Project Health."""
