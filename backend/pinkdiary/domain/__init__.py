"""Domain enums and error types."""
