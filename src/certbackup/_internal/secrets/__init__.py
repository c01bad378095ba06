"""Stores holding the live secrets."""
