"""
Command line helpers for managing password digests.
"""
