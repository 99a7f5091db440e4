"""I/O-adjacent infrastructure."""
