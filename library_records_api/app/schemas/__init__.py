"""
Pydantic models shared by the service and API layers.

The entity models (``Book``, ``Member``, ``Loan``, ``Reservation``) are
both the API response bodies and the records persisted in the stable
maps; the ``*Payload`` models are the request bodies.
"""
