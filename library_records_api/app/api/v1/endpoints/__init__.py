"""Endpoint modules of API v1, one per entity kind plus ``info``."""
