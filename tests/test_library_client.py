import pytest
import requests

from library_client import LibraryClient


@pytest.fixture()
def api(client) -> LibraryClient:
    return LibraryClient(base_url="http://testserver", session=client)


def test_client_round_trip(api: LibraryClient, book_payload: dict, member_payload: dict) -> None:
    book, error = api.create_book(book_payload)
    assert error is None
    member, _ = api.create_member(member_payload)
    loan, error = api.create_loan({"book_id": book["id"], "member_id": member["id"], "due_date": 10})
    assert error is None

    loans, error = api.get_book_loans()
    assert error is None
    assert loans == [loan]

    updated, _ = api.update_loan(loan["id"], {"book_id": book["id"], "member_id": member["id"], "due_date": 10, "fine": 2.5})
    assert updated["fine"] == 2.5

    data, error = api.delete_loan(loan["id"])
    assert data == {"Success": "Loan deleted successfully"}
    assert error is None


def test_client_reports_message_envelopes(api: LibraryClient) -> None:
    reservations, error = api.get_reservations()
    assert reservations == []
    assert error == {"status_code": 404, "kind": "NotFound", "message": "No reservations found"}

    data, error = api.create_member({"username": "bob"})
    assert data is None
    assert error["status_code"] == 400
    assert error["kind"] == "InvalidPayload"

    data, error = api.get_book_by_id(9)
    assert data is None
    assert error["message"] == "Book not found"


def test_client_reports_info(api: LibraryClient, book_payload: dict) -> None:
    api.create_book(book_payload)
    info, error = api.get_info()
    assert error is None
    assert info["books"] == 1


def test_client_reports_transport_failures() -> None:
    class BrokenSession:
        def request(self, **kwargs):
            raise requests.ConnectionError("connection refused")

    api = LibraryClient(base_url="http://localhost:9", session=BrokenSession())
    data, error = api.get_member_by_id(1)
    assert data is None
    assert error == {"status_code": None, "kind": None, "message": "connection refused"}
