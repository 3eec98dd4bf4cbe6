"""Core utilities shared by the bootstrap, client and CLI layers."""
