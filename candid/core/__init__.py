"""Core utilities shared across Candid packages."""
