"""Adapters implementing core ports and bridging host frameworks."""
