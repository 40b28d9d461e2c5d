"""
Capacity & registration service.

All event/registration business rules live here:
- Only an event's owner may update it, delete it, or change its ticket count.
- tickets_available never goes below zero.
- A user holds at most one registration per event.

The service depends only on a store object (see backend.database.store) and
raises backend.errors types; it never touches Flask or SQL.
"""

import logging
from typing import Any, Dict, List

from backend.database.store import DuplicateRegistration
from backend.errors import (
    AlreadyRegistered,
    InvalidCapacity,
    NotFound,
    NotRegistered,
    Unauthorized,
)
from backend.events_service.models import Event


def is_owner(event: Event, user_id: int) -> bool:
    """True if `user_id` created `event`."""
    return event.user_id is not None and event.user_id == user_id


def _check_capacity(tickets_available: int) -> None:
    if tickets_available < 0:
        raise InvalidCapacity()


class EventService:
    """Coordinates the event store and registration ledger."""

    def __init__(self, store) -> None:
        self._store = store

    def _require_owner(self, event: Event, user_id: int, action: str) -> None:
        if not is_owner(event, user_id):
            logging.warning(
                f"[Events] User {user_id} denied {action} on event {event.event_id} "
                f"(owner {event.user_id})"
            )
            raise Unauthorized(f"You are not authorized to {action} this event")

    # --- EVENTS ---

    def list_events(self) -> List[Event]:
        return self._store.list_events()

    def get_event(self, event_id: int) -> Event:
        event = self._store.get_event(event_id)
        if event is None:
            raise NotFound("Event not found")
        return event

    def create_event(self, owner_user_id: int, attrs: Dict[str, Any]) -> Event:
        """
        Persist a new event owned by `owner_user_id`.

        Raises:
            InvalidCapacity: tickets_available < 0. Nothing is written.
        """
        _check_capacity(attrs.get("tickets_available", 0))
        event = Event(**{**attrs, "user_id": owner_user_id})
        saved = self._store.save_event(event)
        logging.info(f"[Events] User {owner_user_id} created event {saved.event_id}")
        return saved

    def update_event(self, event_id: int, requesting_user_id: int, attrs: Dict[str, Any]) -> Event:
        event = self.get_event(event_id)
        self._require_owner(event, requesting_user_id, "update")
        if "tickets_available" in attrs:
            _check_capacity(attrs["tickets_available"])

        updated = self._store.update_event(event_id, attrs)
        if updated is None:
            raise NotFound("Event not found")
        return updated

    def delete_event(self, event_id: int, requesting_user_id: int) -> None:
        event = self.get_event(event_id)
        self._require_owner(event, requesting_user_id, "delete")
        if not self._store.delete_event(event_id):
            raise NotFound("Event not found or already deleted")
        logging.info(f"[Events] User {requesting_user_id} deleted event {event_id}")

    def update_ticket_count(self, event_id: int, requesting_user_id: int, new_count: int) -> int:
        """
        Overwrite the event's ticket counter.

        The new value is not reconciled against current registrations, and
        concurrent updates are last-writer-wins.

        Returns:
            int: The stored count.
        """
        event = self.get_event(event_id)
        self._require_owner(event, requesting_user_id, "update tickets for")
        _check_capacity(new_count)

        if not self._store.update_tickets(event_id, new_count):
            raise NotFound("Event not found")
        return new_count

    # --- REGISTRATIONS ---

    def register(self, event_id: int, user_id: int) -> None:
        """
        Add (event_id, user_id) to the ledger.

        Registering does not consume a ticket; tickets_available only moves
        through update_ticket_count. If capacity enforcement becomes a
        requirement this is where the two would have to be coupled.

        Raises:
            NotFound: Unknown event.
            AlreadyRegistered: The store rejected a duplicate pair.
        """
        self.get_event(event_id)
        try:
            self._store.insert_registration(event_id, user_id)
        except DuplicateRegistration:
            raise AlreadyRegistered()
        logging.info(f"[Events] User {user_id} registered for event {event_id}")

    def cancel_registration(self, event_id: int, user_id: int) -> None:
        self.get_event(event_id)
        if not self._store.delete_registration(event_id, user_id):
            raise NotRegistered()
        logging.info(f"[Events] User {user_id} cancelled registration for event {event_id}")

    def is_registered(self, event_id: int, user_id: int) -> bool:
        self.get_event(event_id)
        return self._store.count_registration(event_id, user_id) > 0

    def list_registrations(self, event_id: int, requesting_user_id: int) -> List[Dict[str, Any]]:
        event = self.get_event(event_id)
        self._require_owner(event, requesting_user_id, "view registrations for")
        return self._store.list_registrations(event_id)
