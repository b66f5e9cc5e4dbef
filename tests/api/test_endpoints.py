import pytest
from fastapi.testclient import TestClient

from library_records_api.app.core.config import Settings
from library_records_api.app.main import create_app
from library_records_api.app.stable import GrowFailedError

API = "/api/v1"


def create(client: TestClient, resource: str, payload: dict) -> dict:
    response = client.post(f"{API}/{resource}", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def test_lending_scenario(client: TestClient, book_payload: dict, member_payload: dict) -> None:
    book = create(client, "books", book_payload)
    member = create(client, "members", member_payload)
    loan = create(client, "loans", {"book_id": book["id"], "member_id": member["id"], "due_date": 1_800_000_000})
    assert (book["id"], member["id"], loan["id"]) == (1, 2, 3)
    assert loan["return_date"] is None
    assert loan["fine"] == 0.0
    assert loan["loan_date"] > 0

    response = client.delete(f"{API}/books/{book['id']}")
    assert response.status_code == 200
    assert response.json() == {"Success": "Book deleted successfully"}

    # Existing loans keep pointing at the deleted book
    response = client.get(f"{API}/loans/{loan['id']}")
    assert response.status_code == 200
    assert response.json()["book_id"] == book["id"]

    response = client.post(
        f"{API}/loans", json={"book_id": book["id"], "member_id": member["id"], "due_date": 5}
    )
    assert response.status_code == 404
    assert response.json() == {"NotFound": "Book not found"}


@pytest.mark.parametrize("resource,plural", [
    ("books", "books"),
    ("members", "members"),
    ("loans", "loans"),
    ("reservations", "reservations"),
])
def test_empty_listing_is_not_found(client: TestClient, resource: str, plural: str) -> None:
    response = client.get(f"{API}/{resource}")
    assert response.status_code == 404
    assert response.json() == {"NotFound": f"No {plural} found"}


def test_empty_listing_can_be_an_empty_list(storage, clock) -> None:
    settings = Settings(storage_path=":memory:", empty_list_is_error=False)
    with TestClient(create_app(settings, storage=storage, clock=clock)) as client:
        response = client.get(f"{API}/members")
    assert response.status_code == 200
    assert response.json() == []


def test_book_crud(client: TestClient, book_payload: dict) -> None:
    book = create(client, "books", book_payload)
    assert client.get(f"{API}/books").json() == [book]

    book_payload["location"] = "Returns cart"
    response = client.put(f"{API}/books/{book['id']}", json=book_payload)
    assert response.status_code == 200
    updated = response.json()
    assert updated["location"] == "Returns cart"
    assert updated["id"] == book["id"]
    assert updated["created_at"] == book["created_at"]

    assert client.delete(f"{API}/books/{book['id']}").status_code == 200
    response = client.delete(f"{API}/books/{book['id']}")
    assert response.status_code == 404
    assert response.json() == {"NotFound": "Book not found"}


def test_missing_book_fields(client: TestClient) -> None:
    response = client.post(f"{API}/books", json={"title": "Dune", "author": "Herbert"})
    assert response.status_code == 400
    assert response.json() == {"InvalidPayload": "Ensure 'title', 'author', and 'isbn' are provided."}


def test_wrongly_typed_field_is_an_invalid_payload(client: TestClient, book_payload: dict) -> None:
    book_payload["publication_year"] = "nineteen sixty-five"
    response = client.post(f"{API}/books", json=book_payload)
    assert response.status_code == 400
    body = response.json()
    assert list(body) == ["InvalidPayload"]
    assert "publication_year" in body["InvalidPayload"]


def test_negative_reference_is_an_invalid_payload(client: TestClient) -> None:
    response = client.post(f"{API}/reservations", json={"book_id": -1, "member_id": 2})
    assert response.status_code == 400
    assert "InvalidPayload" in response.json()


def test_reservation_needs_both_ids(client: TestClient) -> None:
    response = client.post(f"{API}/reservations", json={"book_id": 1})
    assert response.status_code == 400
    assert response.json() == {"InvalidPayload": "Ensure 'book_id' and 'member_id' are provided."}


def test_reservation_lifecycle(client: TestClient, book_payload: dict, member_payload: dict) -> None:
    book = create(client, "books", book_payload)
    member = create(client, "members", member_payload)
    reservation = create(client, "reservations", {"book_id": book["id"], "member_id": member["id"]})
    assert reservation["reservation_date"] > 0

    response = client.put(
        f"{API}/reservations/{reservation['id']}", json={"book_id": 999, "member_id": member["id"]}
    )
    assert response.status_code == 200
    assert response.json()["book_id"] == 999
    assert response.json()["reservation_date"] == reservation["reservation_date"]

    response = client.delete(f"{API}/reservations/{reservation['id']}")
    assert response.json() == {"Success": "Reservation deleted successfully"}


def test_unknown_ids(client: TestClient, member_payload: dict) -> None:
    assert client.get(f"{API}/members/42").json() == {"NotFound": "Member not found"}
    assert client.get(f"{API}/loans/42").json() == {"NotFound": "Loan not found"}
    response = client.put(f"{API}/members/42", json=member_payload)
    assert response.status_code == 404
    assert response.json() == {"NotFound": "Member not found"}


def test_id_outside_u64_is_rejected(client: TestClient) -> None:
    response = client.get(f"{API}/books/{2**64}")
    assert response.status_code == 400
    assert "InvalidPayload" in response.json()


def test_storage_failure_is_a_server_error(client: TestClient, storage, book_payload: dict, monkeypatch) -> None:
    def refuse(key, value):
        raise GrowFailedError(storage.memory.size(), 1)

    monkeypatch.setattr(storage.books, "insert", refuse)
    response = client.post(f"{API}/books", json=book_payload)
    assert response.status_code == 500
    assert list(response.json()) == ["Error"]
    assert len(storage.books) == 0


def test_info_reports_the_store(client: TestClient, book_payload: dict) -> None:
    create(client, "books", book_payload)
    response = client.get(f"{API}/info")
    assert response.status_code == 200
    info = response.json()
    assert info["storage_path"] == ":memory:"
    assert info["bucket_size_in_pages"] == 1
    assert set(info["regions"]) == {"0", "1", "2", "3", "4"}
    assert info["id_counter"] == 1
    assert (info["books"], info["members"], info["loans"], info["reservations"]) == (1, 0, 0, 0)


def test_app_opens_and_closes_its_own_store(tmp_path, book_payload: dict) -> None:
    settings = Settings(storage_path=str(tmp_path / "records.mem"), storage_fsync=False, storage_bucket_size=1)
    with TestClient(create_app(settings)) as client:
        first = create(client, "books", book_payload)

    with TestClient(create_app(settings)) as client:
        assert client.get(f"{API}/books/{first['id']}").json() == first
        second = create(client, "books", book_payload)
    assert second["id"] == first["id"] + 1
