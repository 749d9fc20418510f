"""Reconcile engine — decision, execution loop, and report rendering."""
