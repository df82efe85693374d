"""Adapters binding the domain ports to local files."""
