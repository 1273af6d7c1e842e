"""Chat connection and message pipeline."""
