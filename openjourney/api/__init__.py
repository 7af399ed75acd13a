"""Openjourney HTTP API."""
