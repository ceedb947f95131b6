"""Shared input models."""
