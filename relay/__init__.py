"""Passwordless auth relay service."""
