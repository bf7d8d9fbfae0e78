"""Core infrastructure: database, logging, codec, container format and sinks."""
