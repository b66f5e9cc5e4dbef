"""
Identifier allocation.

Every entity, whatever its kind, takes its id from one persistent
counter, so ids are unique across books, members, loans and
reservations and increase in creation order.  Ids are never reused,
not even after a deletion.
"""

import logging

from library_records_api.app.core.storage import LibraryStorage


logger = logging.getLogger(__name__)


class IdAllocator:
    """Hands out ids from the storage's counter cell.

    The cell holds the last id issued (``0`` for a fresh store), so the
    first entity ever created gets id ``1`` and ``0`` never identifies an
    entity.
    """

    def __init__(self, storage: LibraryStorage) -> None:
        self.cell = storage.id_counter
        self.lock = storage.lock

    def next_id(self) -> int:
        """Persist ``v + 1`` and return it, where ``v`` is the stored value.

        Returning the incremented value (not ``v``) is what makes the ids
        of a fresh store run 1, 2, 3, ...
        """
        with self.lock:
            current = self.cell.get()
            # A failed write propagates and no id is handed out.
            self.cell.set(current + 1)
        logger.debug("Allocated id %s", current + 1)
        return current + 1

    def peek(self) -> int:
        """Return the last id handed out without allocating a new one."""
        return self.cell.get()
