"""Core domain: models, reconcile engine, config, persistence, use cases."""
