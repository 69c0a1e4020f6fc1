"""Vote load harness services."""
