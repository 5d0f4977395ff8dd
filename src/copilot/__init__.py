"""Sensihi website copilot service."""
