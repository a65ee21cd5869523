"""Merge-queue and try-build bot for GitHub pull requests."""
