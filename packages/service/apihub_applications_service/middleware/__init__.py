"""Middleware for the applications service."""
