"""Typed data shapes shared across the producer packages."""
