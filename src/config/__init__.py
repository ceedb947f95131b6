"""Typed settings loaded from the environment."""
