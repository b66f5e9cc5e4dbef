import asyncio
import json

import inspect_store
from library_records_api.app.core.config import Settings
from library_records_api.app.core.storage import open_storage
from library_records_api.app.schemas.book import BookPayload
from library_records_api.app.services import BookService


def make_store(path, book_payload: dict) -> None:
    settings = Settings(storage_path=str(path), storage_fsync=False, storage_bucket_size=1)
    with open_storage(settings) as storage:
        service = BookService(storage)
        asyncio.run(service.create_book(BookPayload(**book_payload)))
        asyncio.run(service.create_book(BookPayload(**dict(book_payload, title="Children of Dune"))))


def test_inspect_summary(tmp_path, capsys, book_payload: dict) -> None:
    path = tmp_path / "store.mem"
    make_store(path, book_payload)

    assert inspect_store.main(["--path", str(path)]) == 0
    report = json.loads(capsys.readouterr().out)
    assert report["path"] == str(path)
    assert report["bucket_size_in_pages"] == 1
    assert report["id_counter"] == 2
    assert report["rows"] == {"books": 2, "members": 0, "loans": 0, "reservations": 0}
    assert set(report["regions"]) == {"id counter", "books", "members", "loans", "reservations"}


def test_inspect_dump(tmp_path, capsys, book_payload: dict) -> None:
    path = tmp_path / "store.mem"
    make_store(path, book_payload)

    assert inspect_store.main(["--path", str(path), "--dump", "books"]) == 0
    out = capsys.readouterr().out
    rows = [json.loads(line) for line in out.splitlines() if line.startswith('{"')]
    assert [row["title"] for row in rows] == ["Dune", "Children of Dune"]


def test_inspect_missing_store(tmp_path, capsys) -> None:
    path = tmp_path / "absent.mem"
    assert inspect_store.main(["--path", str(path)]) == 1
    assert not path.exists()
    assert "Store not found" in capsys.readouterr().err


def test_inspect_foreign_file(tmp_path, capsys) -> None:
    path = tmp_path / "foreign.mem"
    path.write_bytes(b"\x01" * 65536)
    assert inspect_store.main(["--path", str(path)]) == 2
    assert "Cannot read store" in capsys.readouterr().err


def test_inspect_leaves_an_empty_file_alone(tmp_path, capsys) -> None:
    path = tmp_path / "empty.mem"
    path.write_bytes(b"")
    assert inspect_store.main(["--path", str(path)]) == 1
    assert path.stat().st_size == 0
    assert "Store is empty" in capsys.readouterr().err


def test_inspect_keeps_stray_trailing_bytes(tmp_path, capsys, book_payload: dict) -> None:
    path = tmp_path / "store.mem"
    make_store(path, book_payload)
    with open(path, "ab") as handle:
        handle.write(b"\x00" * 10)
    size = path.stat().st_size

    assert inspect_store.main(["--path", str(path)]) == 0
    assert json.loads(capsys.readouterr().out)["rows"]["books"] == 2
    assert path.stat().st_size == size


def test_inspect_does_not_modify_a_store(tmp_path, capsys, book_payload: dict) -> None:
    path = tmp_path / "store.mem"
    make_store(path, book_payload)
    before = path.read_bytes()

    assert inspect_store.main(["--path", str(path), "--dump", "books"]) == 0
    assert path.read_bytes() == before
