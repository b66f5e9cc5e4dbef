"""Version 1 of the Library Records API."""

from .router import router  # noqa: F401
