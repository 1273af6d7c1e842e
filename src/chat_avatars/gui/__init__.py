"""Qt overlay GUI."""
