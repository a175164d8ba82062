"""Adapters - Storage and delivery implementations of the domain ports."""
