"""
API package for the Library Records service.

Each API version lives in its own subpackage.  ``deps`` holds the
FastAPI dependencies that hand the storage container and the services
to route handlers.
"""
