import pytest
from fastapi.testclient import TestClient

from library_records_api.app.core.config import Settings
from library_records_api.app.core.storage import LibraryStorage
from library_records_api.app.main import create_app
from library_records_api.app.stable import VectorMemory


class FakeClock:
    """Deterministic nanosecond clock that ticks on every read."""

    def __init__(self, start: int = 1_700_000_000_000_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        self.now += 1
        return self.now


@pytest.fixture()
def memory() -> VectorMemory:
    return VectorMemory()


@pytest.fixture()
def storage(memory: VectorMemory) -> LibraryStorage:
    return LibraryStorage(memory, bucket_size_in_pages=1)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def settings() -> Settings:
    return Settings(storage_path=":memory:", storage_fsync=False, log_level="WARNING")


@pytest.fixture()
def client(settings: Settings, storage: LibraryStorage, clock: FakeClock):
    app = create_app(settings, storage=storage, clock=clock)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def book_payload() -> dict:
    return {
        "title": "Dune",
        "author": "Herbert",
        "genre": "Science fiction",
        "publication_year": 1965,
        "isbn": "0001",
        "location": "Shelf B3",
        "available": True,
    }


@pytest.fixture()
def member_payload() -> dict:
    return {"username": "alice", "phone_number": "+1 555 0100", "address": "12 Baker Street"}
