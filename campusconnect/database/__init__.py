"""Persistence schema for the progression core."""
