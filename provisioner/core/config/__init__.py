"""Catalog configuration loading."""
