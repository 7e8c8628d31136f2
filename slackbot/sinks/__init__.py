"""Pluggable message sinks."""
