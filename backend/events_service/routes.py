"""
Events service routes: create, read, update, delete events, manage ticket
capacity, and register/cancel registration.

Business rules live in EventService; this module handles HTTP, auth, and
payload validation.
"""

import logging
from datetime import datetime
from typing import Tuple, Dict, Any, Optional

from flask import Blueprint, request, jsonify, Response

from backend.auth_service.utils import verify_token_from_request, verify_token
from backend.database.store import PostgresStore
from backend.errors import AppError, InvalidCapacity, ValidationError, handle_app_error
from backend.events_service.service import EventService

events_bp = Blueprint("events", __name__)
events_bp.register_error_handler(AppError, handle_app_error)

service = EventService(PostgresStore())

# --- CONSTANTS FOR VALIDATION ---
NAME_MAX_LENGTH = 200
LOCATION_MAX_LENGTH = 255
COLOR_MAX_LENGTH = 32
TICKETS_MAX = 2147483647  # INTEGER column
PRICE_MAX = 99999999.99  # NUMERIC(10, 2) column
VALID_PRIORITIES = ['available', 'almost-full', 'full']
REQUIRED_FIELDS = ['name', 'description', 'location', 'date_time', 'tickets_available']
TEXT_FIELDS = ['name', 'description', 'location']
OPTIONAL_TEXT_FIELDS = ['image_data', 'color']


# --- REQUEST LOGGING ---
@events_bp.before_request
def before_request() -> None:
    logging.info(f"[Events] Incoming {request.method} {request.path}")


@events_bp.after_request
def after_request(response: Response) -> Response:
    logging.info(f"[Events] Response {response.status}")
    return response


def parse_dt(val: Optional[str]) -> Optional[datetime]:
    """
    Safely parse an ISO-8601 or datetime-local string to a datetime object.

    Args:
        val (str): The date string to parse.

    Returns:
        datetime: The parsed datetime, or None if invalid.
    """
    if not val or not isinstance(val, str):
        return None
    try:
        # Handles 'YYYY-MM-DDTHH:MM' and '...Z' or '...+00:00'
        if val.endswith('Z'):
            val = val[:-1] + '+00:00'
        return datetime.fromisoformat(val)
    except (ValueError, TypeError):
        return None


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    # camelCase alias used by older clients
    if "ticketsAvailable" in data and "tickets_available" not in data:
        data["tickets_available"] = data.pop("ticketsAvailable")
    return data


def parse_event_payload(data: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
    """
    Validate an event create/update body and return the column values.

    Args:
        data (dict): Decoded JSON body.
        partial (bool): Update mode; only supplied keys are validated.

    Returns:
        dict: Field name -> cleaned value.

    Raises:
        ValidationError: Missing or malformed fields.
    """
    fields: Dict[str, Any] = {}

    if not partial:
        missing = [f for f in REQUIRED_FIELDS if data.get(f) is None or data.get(f) == ""]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    for key in TEXT_FIELDS:
        if key in data:
            value = data[key]
            if not isinstance(value, str) or not value.strip():
                raise ValidationError(f"{key} cannot be empty")
            fields[key] = value.strip()

    if len(fields.get("name", "")) > NAME_MAX_LENGTH:
        raise ValidationError(f"name must be {NAME_MAX_LENGTH} characters or less.")
    if len(fields.get("location", "")) > LOCATION_MAX_LENGTH:
        raise ValidationError(f"location must be {LOCATION_MAX_LENGTH} characters or less.")

    if "date_time" in data:
        dt = parse_dt(data["date_time"])
        if not dt:
            raise ValidationError("Invalid date_time format. Use ISO-8601.")
        fields["date_time"] = dt

    # The sign is checked by the service (InvalidCapacity), not here.
    if "tickets_available" in data:
        if not _is_int(data["tickets_available"]):
            raise ValidationError("tickets_available must be an integer")
        if data["tickets_available"] > TICKETS_MAX:
            raise ValidationError(f"tickets_available cannot exceed {TICKETS_MAX}")
        fields["tickets_available"] = data["tickets_available"]

    if "price" in data:
        price = data["price"]
        if price is not None:
            if isinstance(price, bool) or not isinstance(price, (int, float)):
                raise ValidationError("price must be a number")
            if price < 0:
                raise ValidationError("price cannot be negative")
            if round(price, 2) > PRICE_MAX:
                raise ValidationError(f"price cannot exceed {PRICE_MAX}")
            price = float(price)
        fields["price"] = price

    if "priority" in data:
        priority = data["priority"]
        if priority is not None and priority not in VALID_PRIORITIES:
            raise ValidationError(f"priority must be one of: {', '.join(VALID_PRIORITIES)}")
        fields["priority"] = priority

    for key in OPTIONAL_TEXT_FIELDS:
        if key in data:
            value = data[key]
            if value is not None and not isinstance(value, str):
                raise ValidationError(f"{key} must be a string")
            if key == "color" and value and len(value) > COLOR_MAX_LENGTH:
                raise ValidationError(f"color must be {COLOR_MAX_LENGTH} characters or less.")
            fields[key] = value or None

    if partial and not fields:
        raise ValidationError("No valid fields to update")

    return fields


def parse_ticket_count(data: Dict[str, Any]) -> int:
    """
    Validate a `{"tickets_available": n}` body.

    Raises:
        ValidationError: Missing, non-integer, or out-of-range value.
        InvalidCapacity: Negative value.
    """
    if "tickets_available" not in data:
        raise ValidationError("tickets_available is required")
    count = data["tickets_available"]
    if not _is_int(count):
        raise ValidationError("tickets_available must be an integer")
    if count < 0:
        raise InvalidCapacity()
    if count > TICKETS_MAX:
        raise ValidationError(f"tickets_available cannot exceed {TICKETS_MAX}")
    return count


# --- EVENTS ---
@events_bp.route("/", methods=["GET"])
def list_events() -> Tuple[Response, int]:
    """
    Return all events ordered by date_time. Public.

    Returns:
        200: List of event objects.
        500: Database error.
    """
    events = service.list_events()
    return jsonify([e.to_dict() for e in events]), 200


@events_bp.route("/<int:event_id>", methods=["GET"])
def get_event(event_id: int) -> Tuple[Response, int]:
    """
    Get a single event by ID. Public.

    If a valid bearer token is supplied, the response also carries
    `registered` for that user.

    Returns:
        200: Event object.
        404: Event not found.
    """
    event = service.get_event(event_id)
    event_dict = event.to_dict()

    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer "):
        auth_user_id = verify_token(auth.split(" ", 1)[1])
        if auth_user_id is not None:
            event_dict["registered"] = service.is_registered(event_id, auth_user_id)

    return jsonify(event_dict), 200


@events_bp.route("/", methods=["POST"])
def create_event() -> Tuple[Response, int]:
    """
    Create an event owned by the caller.

    Expects JSON with name, description, location, date_time (ISO-8601) and
    tickets_available; image_data, color, price, priority are optional.

    Returns:
        201: { "message": str, "event": Event }
        400: Validation error or negative tickets_available.
        401: Authentication failure.
    """
    user_id, _, err, code = verify_token_from_request()
    if err:
        return err, code

    attrs = parse_event_payload(_json_body())
    event = service.create_event(user_id, attrs)

    return jsonify({"message": "Event created successfully", "event": event.to_dict()}), 201


@events_bp.route("/<int:event_id>", methods=["PUT"])
def update_event(event_id: int) -> Tuple[Response, int]:
    """
    Update the supplied fields of an event. Owner only.

    Returns:
        200: { "message": str, "event": Event }
        400: Validation error or negative tickets_available.
        401: Not authenticated, or not the owner.
        404: Event not found.
    """
    user_id, _, err, code = verify_token_from_request()
    if err:
        return err, code

    attrs = parse_event_payload(_json_body(), partial=True)
    event = service.update_event(event_id, user_id, attrs)

    return jsonify({"message": "Event updated successfully", "event": event.to_dict()}), 200


@events_bp.route("/<int:event_id>", methods=["DELETE"])
def delete_event(event_id: int) -> Tuple[Response, int]:
    """
    Delete an event and its registrations. Owner only.
    """
    user_id, _, err, code = verify_token_from_request()
    if err:
        return err, code

    service.delete_event(event_id, user_id)
    return jsonify({"message": "Event deleted successfully"}), 200


@events_bp.route("/<int:event_id>/tickets", methods=["PUT"])
def update_tickets(event_id: int) -> Tuple[Response, int]:
    """
    Overwrite the event's ticket counter. Owner only.

    Expects JSON: { "tickets_available": int >= 0 }

    Returns:
        200: { "event_id": int, "tickets_available": int }
        400: Missing, non-integer, or negative count.
        401: Not authenticated, or not the owner.
        404: Event not found.
    """
    user_id, _, err, code = verify_token_from_request()
    if err:
        return err, code

    count = parse_ticket_count(_json_body())
    new_count = service.update_ticket_count(event_id, user_id, count)

    return jsonify({"event_id": event_id, "tickets_available": new_count}), 200


# --- REGISTRATIONS ---
@events_bp.route("/<int:event_id>/register", methods=["POST"])
def register_for_event(event_id: int) -> Tuple[Response, int]:
    """
    Register the caller for an event.

    Returns:
        201: Registered.
        404: Event not found.
        409: Already registered.
    """
    user_id, _, err, code = verify_token_from_request()
    if err:
        return err, code

    service.register(event_id, user_id)
    return jsonify({"message": "Registered for event successfully"}), 201


@events_bp.route("/<int:event_id>/register", methods=["DELETE"])
def cancel_registration(event_id: int) -> Tuple[Response, int]:
    """
    Cancel the caller's registration.

    Returns:
        200: Cancelled.
        404: Event not found, or the caller was not registered.
    """
    user_id, _, err, code = verify_token_from_request()
    if err:
        return err, code

    service.cancel_registration(event_id, user_id)
    return jsonify({"message": "Cancelled successfully"}), 200


@events_bp.route("/<int:event_id>/register", methods=["GET"])
def registration_status(event_id: int) -> Tuple[Response, int]:
    user_id, _, err, code = verify_token_from_request()
    if err:
        return err, code

    registered = service.is_registered(event_id, user_id)
    return jsonify({"event_id": event_id, "registered": registered}), 200


@events_bp.route("/<int:event_id>/registrations", methods=["GET"])
def list_registrations(event_id: int) -> Tuple[Response, int]:
    """
    List the users registered for an event. Owner only.
    """
    user_id, _, err, code = verify_token_from_request()
    if err:
        return err, code

    return jsonify(service.list_registrations(event_id, user_id)), 200
