"""Library Records API client.

A thin wrapper around the HTTP API exposed by
``library_records_api.app.main``.  Every operation of the service has a
method here; each returns a tuple ``(data, error)``:

* on success ``data`` is the decoded JSON body (an entity, a list of
  entities or a ``{"Success": "..."}`` message) and ``error`` is
  ``None``;
* on failure ``data`` is ``None`` (or an empty list for listings) and
  ``error`` is a dictionary with the keys ``status_code``, ``kind``
  (``"NotFound"``, ``"InvalidPayload"``, ``"Error"`` or ``None`` for
  transport failures) and ``message``.

The client uses the ``requests`` library.  Any object with a compatible
``request`` method can be passed as ``session``, which is how the tests
drive the client against an in-process application.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

import requests


logger = logging.getLogger(__name__)

Result = Tuple[Optional[Any], Optional[Dict[str, Any]]]

MESSAGE_KINDS = ("Success", "Error", "NotFound", "InvalidPayload")


class LibraryClient:
    """Client for the Library Records API."""

    # Resource path for each entity kind under the API prefix
    _RESOURCES = {
        "book": "/books",
        "member": "/members",
        "loan": "/loans",
        "reservation": "/reservations",
    }

    def __init__(
        self,
        *,
        base_url: str,
        api_prefix: str = "/api/v1",
        session: Optional[requests.Session] = None,
        timeout: float = 15,
    ) -> None:
        """Initialise the API client.

        Args:
            base_url: Base URL of the server, e.g. ``http://localhost:8000``.
            api_prefix: Prefix under which the versioned API is mounted.
            session: Optional requests session (or compatible object).
            timeout: Seconds to wait for each response.
        """
        self.base_url = base_url.rstrip("/") + api_prefix
        self.session = session or requests.Session()
        self.timeout = timeout

    # ------------------------------------------------------------------
    # Low level HTTP helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _parse_error(status: int, body: Any, fallback: str) -> Dict[str, Any]:
        """Turn an error response into the ``error`` dictionary."""
        if isinstance(body, dict) and len(body) == 1:
            kind, message = next(iter(body.items()))
            if kind in MESSAGE_KINDS:
                return {"status_code": status, "kind": kind, "message": message}
        if isinstance(body, dict) and "detail" in body:
            return {"status_code": status, "kind": "Error", "message": str(body["detail"])}
        return {"status_code": status, "kind": "Error", "message": fallback}

    def _request(self, method: str, path: str, *, json_body: Any | None = None) -> Result:
        """Perform an HTTP request and split the outcome into data or error."""
        url = f"{self.base_url}{path}"
        try:
            logger.debug("Sending %s request to %s", method, url)
            response = self.session.request(method=method, url=url, json=json_body, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.error("API request failed: %s", exc)
            return None, {"status_code": None, "kind": None, "message": str(exc)}

        try:
            body = response.json() if response.content else None
        except ValueError:
            body = None
        if response.status_code >= 400:
            error = self._parse_error(response.status_code, body, response.text)
            logger.info("API request %s %s failed (%s): %s", method, path, response.status_code, error["message"])
            return None, error
        return body, None

    def _create(self, kind: str, payload: Dict[str, Any]) -> Result:
        return self._request("POST", self._RESOURCES[kind], json_body=payload)

    def _list(self, kind: str) -> Tuple[List[Dict[str, Any]], Optional[Dict[str, Any]]]:
        data, error = self._request("GET", self._RESOURCES[kind])
        if error:
            return [], error
        return data or [], None

    def _get(self, kind: str, record_id: int) -> Result:
        return self._request("GET", f"{self._RESOURCES[kind]}/{record_id}")

    def _update(self, kind: str, record_id: int, payload: Dict[str, Any]) -> Result:
        return self._request("PUT", f"{self._RESOURCES[kind]}/{record_id}", json_body=payload)

    def _delete(self, kind: str, record_id: int) -> Result:
        return self._request("DELETE", f"{self._RESOURCES[kind]}/{record_id}")

    # ------------------------------------------------------------------
    # Books
    # ------------------------------------------------------------------
    def create_book(self, payload: Dict[str, Any]) -> Result:
        return self._create("book", payload)

    def get_books(self) -> Tuple[List[Dict[str, Any]], Optional[Dict[str, Any]]]:
        return self._list("book")

    def get_book_by_id(self, book_id: int) -> Result:
        return self._get("book", book_id)

    def update_book(self, book_id: int, payload: Dict[str, Any]) -> Result:
        return self._update("book", book_id, payload)

    def delete_book(self, book_id: int) -> Result:
        return self._delete("book", book_id)

    # ------------------------------------------------------------------
    # Members
    # ------------------------------------------------------------------
    def create_member(self, payload: Dict[str, Any]) -> Result:
        return self._create("member", payload)

    def get_members(self) -> Tuple[List[Dict[str, Any]], Optional[Dict[str, Any]]]:
        return self._list("member")

    def get_member_by_id(self, member_id: int) -> Result:
        return self._get("member", member_id)

    def update_member(self, member_id: int, payload: Dict[str, Any]) -> Result:
        return self._update("member", member_id, payload)

    def delete_member(self, member_id: int) -> Result:
        return self._delete("member", member_id)

    # ------------------------------------------------------------------
    # Loans
    # ------------------------------------------------------------------
    def create_loan(self, payload: Dict[str, Any]) -> Result:
        return self._create("loan", payload)

    def get_book_loans(self) -> Tuple[List[Dict[str, Any]], Optional[Dict[str, Any]]]:
        return self._list("loan")

    def get_book_loan_by_id(self, loan_id: int) -> Result:
        return self._get("loan", loan_id)

    def update_loan(self, loan_id: int, payload: Dict[str, Any]) -> Result:
        return self._update("loan", loan_id, payload)

    def delete_loan(self, loan_id: int) -> Result:
        return self._delete("loan", loan_id)

    # ------------------------------------------------------------------
    # Reservations
    # ------------------------------------------------------------------
    def create_reservation(self, payload: Dict[str, Any]) -> Result:
        return self._create("reservation", payload)

    def get_reservations(self) -> Tuple[List[Dict[str, Any]], Optional[Dict[str, Any]]]:
        return self._list("reservation")

    def get_reservation_by_id(self, reservation_id: int) -> Result:
        return self._get("reservation", reservation_id)

    def update_reservation(self, reservation_id: int, payload: Dict[str, Any]) -> Result:
        return self._update("reservation", reservation_id, payload)

    def delete_reservation(self, reservation_id: int) -> Result:
        return self._delete("reservation", reservation_id)

    # ------------------------------------------------------------------
    # Info
    # ------------------------------------------------------------------
    def get_info(self) -> Result:
        """Return the storage report of the server."""
        return self._request("GET", "/info")
