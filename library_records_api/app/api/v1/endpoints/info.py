"""
Information endpoint for API v1.

Reports how the store is laid out: the size of every region, the
value of the id counter and the number of rows per entity kind.  Useful
to check after a restart that the store was reloaded as expected.
"""

from fastapi import APIRouter, Depends

from library_records_api.app.api.deps import get_settings, get_storage
from library_records_api.app.core.config import Settings
from library_records_api.app.core.storage import LibraryStorage
from library_records_api.app.schemas.info import StorageInfo


router = APIRouter()


@router.get("", response_model=StorageInfo)
async def get_info(
    storage: LibraryStorage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
) -> StorageInfo:
    with storage.lock:
        return StorageInfo(
            project_name=settings.project_name,
            version=settings.api_version,
            storage_path=storage.path,
            bucket_size_in_pages=storage.memory_manager.bucket_size_in_pages,
            regions=storage.memory_manager.regions(),
            id_counter=storage.id_counter.get(),
            books=len(storage.books),
            members=len(storage.members),
            loans=len(storage.loans),
            reservations=len(storage.reservations),
        )
