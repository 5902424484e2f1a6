"""Batch changelog generation from GitHub commit history."""
