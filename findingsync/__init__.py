"""Reconcile static-analysis findings into identity-stable editor annotations."""

__version__ = "0.1.0"
