"""Shared helpers: logging, HTTP and CI environment plumbing."""
