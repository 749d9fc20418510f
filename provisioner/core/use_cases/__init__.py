"""Use cases — vertical slices invoked by the CLI."""
