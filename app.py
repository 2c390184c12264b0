"""
Lab Seat Grid — Flask Application
=================================
JSON API over the layout engine: the admin side edits the shared grid, the
browsing side reads both rooms and picks one workstation to reserve.
"""
from __future__ import annotations
import logging
import os
import sys
sys.path.insert(0, os.path.dirname(__file__))

from flask import Flask, abort, jsonify, request
from typing import Optional
from werkzeug.exceptions import HTTPException

from labgrid.autosave import AUTOSAVE_DELAY_S
from labgrid.catalog import palette_to_dict
from labgrid.errors import NotFoundError
from labgrid.occupancy import SelectionBoard, room_view
from labgrid.repository import LayoutRepository, RoomStatusBoard
from labgrid.reservations import ReservationBook, ReservationError
from labgrid.rooms import room_by_key
from labgrid.store import GridStore

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("labgrid_api")

AUTOSAVE_DELAY = float(os.environ.get("LABGRID_AUTOSAVE_DELAY", AUTOSAVE_DELAY_S))
PORT = int(os.environ.get("LABGRID_PORT", "5050"))


def _body() -> dict:
    return request.get_json(silent=True) or {}


def _int_field(d: dict, *keys: str) -> int:
    for key in keys:
        if key in d:
            value = d[key]
            if isinstance(value, bool):
                abort(400, description=f"'{key}' must be an integer")
            try:
                return int(value)
            except (TypeError, ValueError, OverflowError):
                abort(400, description=f"'{key}' must be an integer")
    abort(400, description=f"Missing '{keys[0]}'")


def create_app(store: Optional[GridStore] = None,
               repository: Optional[LayoutRepository] = None,
               board: Optional[RoomStatusBoard] = None,
               book: Optional[ReservationBook] = None) -> Flask:
    app = Flask(__name__)

    # ── In-memory state (single editor session) ───────────────────────────────
    repository = repository or LayoutRepository()
    store = store or GridStore(load=repository.load, save=repository.save,
                               autosave_delay_s=AUTOSAVE_DELAY)
    board = board or RoomStatusBoard()
    book = book or ReservationBook()
    selections = SelectionBoard()
    store.load()

    app.config.update(STORE=store, REPOSITORY=repository, BOARD=board, BOOK=book, SELECTIONS=selections)

    # ── Errors ────────────────────────────────────────────────────────────────

    @app.errorhandler(HTTPException)
    def http_error(exc):
        return jsonify({"error": exc.description}), exc.code

    @app.errorhandler(NotFoundError)
    def not_found(exc):
        return jsonify({"error": str(exc)}), 404

    @app.errorhandler(ReservationError)
    def reservation_conflict(exc):
        return jsonify({"error": str(exc)}), 409

    @app.errorhandler(ValueError)
    def bad_value(exc):
        return jsonify({"error": str(exc)}), 400

    # ── Layout API (admin) ────────────────────────────────────────────────────

    @app.route("/api/layout/grid", methods=["GET"])
    def get_grid():
        return jsonify(store.to_dict())

    @app.route("/api/layout/grid", methods=["PUT"])
    def put_grid():
        """Replace the layout with a client-side grid; it is normalized before saving."""
        d = _body()
        store.install(d, strict=True)
        result = store.save(save_version=bool(d.get("saveVersion")))
        return jsonify({"ok": True, "result": result, **store.to_dict()})

    @app.route("/api/layout/save", methods=["POST"])
    def save_grid():
        d = _body()
        result = store.save(save_version=bool(d.get("saveVersion", True)))
        return jsonify({"ok": True, "result": result, **store.to_dict()})

    @app.route("/api/layout/reset", methods=["POST"])
    def reset_grid():
        store.reset()
        return jsonify({"ok": True, **store.to_dict()})

    @app.route("/api/layout/palette", methods=["GET"])
    def get_palette():
        return jsonify({"palette": palette_to_dict()})

    @app.route("/api/layout/stats", methods=["GET"])
    def get_stats():
        return jsonify(store.grid.stats())

    @app.route("/api/layout/apply", methods=["POST"])
    def apply_tool():
        d = _body()
        row, col = _int_field(d, "row"), _int_field(d, "col")
        changed = store.apply(row, col, d.get("tool", store.painter.tool))
        return jsonify({"ok": True, "changed": changed, **store.to_dict()})

    @app.route("/api/layout/drag/down", methods=["POST"])
    def drag_down():
        d = _body()
        row, col = _int_field(d, "row"), _int_field(d, "col")
        changed = store.pointer_down(row, col, d.get("tool"))
        return jsonify({"ok": True, "changed": changed, **store.to_dict()})

    @app.route("/api/layout/drag/enter", methods=["POST"])
    def drag_enter():
        d = _body()
        changed = store.pointer_enter(_int_field(d, "row"), _int_field(d, "col"))
        return jsonify({"ok": True, "changed": changed, **store.to_dict()})

    @app.route("/api/layout/drag/up", methods=["POST"])
    def drag_up():
        store.pointer_up()
        return jsonify({"ok": True, "dragging": False})

    @app.route("/api/layout/versions", methods=["GET"])
    def list_versions():
        return jsonify({"versions": repository.list_versions()})

    @app.route("/api/layout/versions/<version_id>/restore", methods=["POST"])
    def restore_version(version_id: str):
        snapshot = repository.get_version(version_id)
        store.restore(snapshot)
        return jsonify({"ok": True, "versions": repository.list_versions(), **store.to_dict()})

    # ── Rooms API ─────────────────────────────────────────────────────────────

    @app.route("/api/rooms", methods=["GET"])
    def get_rooms():
        occupied = book.occupied_seats()
        selection = selections.peek(request.args.get("email"))
        views = [room_view(room, board.get(room.key), occupied, selection) for room in store.rooms()]
        return jsonify({"rooms": views, **selection.to_dict()})

    @app.route("/api/rooms/status", methods=["GET"])
    def get_room_status():
        return jsonify({"rooms": board.to_dict()})

    @app.route("/api/rooms/<room_key>/status", methods=["PUT"])
    def put_room_status(room_key: str):
        d = _body()
        status = board.update(room_key, bool(d.get("disabled")), d.get("reservedBy"))
        if status.disabled:
            selections.clear_room(room_key)
        return jsonify({"ok": True, "room": status.to_dict()})

    # ── Seat selection API ────────────────────────────────────────────────────

    def _seat_request():
        d = _body()
        room_key = d.get("roomKey")
        if not room_key:
            abort(400, description="Missing 'roomKey'")
        room = room_by_key(store.rooms(), room_key)
        return room, _int_field(d, "row", "seatRow"), _int_field(d, "col", "seatCol")

    @app.route("/api/seats/select", methods=["POST"])
    def select_seat():
        selection = selections.for_user(_body().get("userEmail"))
        room, row, col = _seat_request()
        if not selection.select(room, row, col, book.occupied_seats(), board.get(room.key)):
            return jsonify({"error": "Seat is not available", **selection.to_dict()}), 409
        return jsonify({"ok": True, **selection.to_dict()})

    @app.route("/api/seats/toggle", methods=["POST"])
    def toggle_seat():
        selection = selections.for_user(_body().get("userEmail"))
        room, row, col = _seat_request()
        if not selection.toggle(room, row, col, book.occupied_seats(), board.get(room.key)):
            return jsonify({"error": "Seat is not available", **selection.to_dict()}), 409
        return jsonify({"ok": True, **selection.to_dict()})

    @app.route("/api/seats/clear", methods=["POST"])
    def clear_selection():
        d = _body()
        selection = selections.for_user(d.get("userEmail"))
        selection.clear(d.get("roomKey"))
        return jsonify({"ok": True, **selection.to_dict()})

    # ── Reservations API ──────────────────────────────────────────────────────

    @app.route("/api/reservations/occupied", methods=["GET"])
    def occupied_seats():
        return jsonify({"seats": [s.to_dict() for s in book.occupied_seats()]})

    @app.route("/api/reservations", methods=["POST"])
    def create_reservation():
        d = _body()
        user_email = d.get("userEmail", "")
        seat = selections.peek(user_email).current
        if "roomKey" in d:
            room, row, col = _seat_request()
        elif seat is not None:
            room, row, col = room_by_key(store.rooms(), seat.room_key), seat.row, seat.col
        else:
            abort(400, description="Select an available workstation first")
        reservation = book.create(room, row, col, user_email, d.get("userName"),
                                  room_status=board.get(room.key))
        selections.for_user(user_email).clear()
        selections.drop_seat(room.key, row, col)
        return jsonify({"ok": True, "reservation": reservation.to_dict()}), 201

    @app.route("/api/reservations/requests", methods=["GET"])
    def reservation_requests():
        return jsonify({"requests": [r.to_dict() for r in book.requests()]})

    @app.route("/api/reservations/mine", methods=["GET"])
    def my_reservations():
        email = request.args.get("email", "")
        return jsonify({"reservations": [r.to_dict() for r in book.for_user(email)]})

    @app.route("/api/reservations/<reservation_id>/validate", methods=["POST"])
    def validate_reservation(reservation_id: str):
        reservation = book.validate(reservation_id, _body().get("code", ""))
        return jsonify({"ok": True, "reservation": reservation.to_dict()})

    @app.route("/api/reservations/<reservation_id>/release", methods=["POST"])
    def release_reservation(reservation_id: str):
        reservation = book.release(reservation_id)
        return jsonify({"ok": True, "reservation": reservation.to_dict()})

    return app


app = create_app()


if __name__ == "__main__":
    app.run(debug=True, port=PORT)
