"""
Top-level package for the Library Records API.

All functionality lives in submodules under ``app``: the stable storage
structures (``app.stable``), the storage container and configuration
(``app.core``), the record services (``app.services``) and the HTTP
layer (``app.api`` and ``app.main``).
"""

__all__ = []
