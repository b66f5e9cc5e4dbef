"""Configuration, logging, errors and the persistent storage container."""
