"""
Remote-callable operations over the task store.

- operations.py: operation registry, argument validation, JSON reply envelope
"""
