"""Schema of the storage report returned by ``GET /info``."""

from typing import Dict

from pydantic import BaseModel


class StorageInfo(BaseModel):
    project_name: str
    version: str
    storage_path: str
    bucket_size_in_pages: int
    # region handle -> size in 64 KiB pages
    regions: Dict[int, int]
    id_counter: int
    books: int
    members: int
    loans: int
    reservations: int
