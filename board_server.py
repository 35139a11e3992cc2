#!/usr/bin/env python3
"""
Marketing Board Server
----------------------
JSON API over the scheduling surface: task/campaign/channel boards and the
month calendar. The browser handles pointer input and posts committed moves
here; every move is applied optimistically, persisted to the dashboard
backend, and rolled back if the backend refuses it.

Usage:
    python board_server.py                         # backend at MKTG_API_URL
    python board_server.py --offline               # sample data, no backend
    python board_server.py --config board.yaml --port 3000

API:
    GET  /api/board/<variant>                 → { variant, columns }
    POST /api/board/<variant>/move            ← { item_id, from, to, index }
    POST /api/board/channel/<id>/toggle-pause
    GET  /api/calendar?year=2025&month=2      → month grid (month 0-indexed)
    POST /api/calendar/move                   ← { variant, item_id, from, to, index }
    POST /api/reload                          → re-read the backend feed

Dependencies: flask[async], requests, pyyaml
"""

import logging
import sys
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Dict, Optional

from flask import Flask, jsonify, request

from mktg.board.calendar_grid import WEEKDAY_LABELS
from mktg.board.config import BoardConfig
from mktg.board.drag import CommittedMove
from mktg.board.errors import BoardError, InvalidMoveError, MoveFailed, MoveInFlightError
from mktg.board.feed import BoardFeed, FeedResult, sample_feed
from mktg.board.schema import DATED_VARIANTS, Variant
from mktg.board.store import BoardStore, CalendarBoard, StatusBoard
from mktg.board.sync import HttpSyncAdapter, InMemorySyncAdapter, SyncAdapter

logger = logging.getLogger("board")


@dataclass
class Boards:
    """Everything one browser session looks at."""
    adapter: SyncAdapter
    status: Dict[Variant, StatusBoard] = field(default_factory=dict)
    calendar: Optional[CalendarBoard] = None
    feed: Optional[BoardFeed] = None
    feed_errors: Dict[str, str] = field(default_factory=dict)

    def load(self, result: FeedResult) -> None:
        for variant, board in self.status.items():
            board.load(result.for_variant(variant))
        self.calendar.load(result.calendar_items())
        self.feed_errors = dict(result.errors)

    def reload(self) -> None:
        self.load(self.feed.load_all() if self.feed else sample_feed())


def create_app(
    cfg: Optional[BoardConfig] = None,
    adapter: Optional[SyncAdapter] = None,
    feed_result: Optional[FeedResult] = None,
    today: Optional[date] = None,
) -> Flask:
    cfg = cfg or BoardConfig.load()
    today = today or date.today()

    feed = None
    if adapter is None:
        if cfg.offline:
            adapter = InMemorySyncAdapter()
        else:
            adapter = HttpSyncAdapter(cfg.api_url, timeout=cfg.request_timeout)
            feed = BoardFeed(cfg.api_url, timeout=cfg.request_timeout)

    boards = Boards(adapter=adapter, feed=feed)
    boards.status = {v: StatusBoard(v, adapter) for v in Variant}
    boards.calendar = CalendarBoard(today.year, today.month - 1, adapter, today=today)
    if feed_result is not None:
        boards.load(feed_result)
    else:
        boards.reload()

    app = Flask(__name__)
    # Column order is the status order; keep it in the JSON
    app.json.sort_keys = False
    app.config["BOARDS"] = boards
    app.config["BOARD_CFG"] = cfg
    _register_routes(app, boards)
    return app


# ── Serialization ────────────────────────────────────────────────────────────

def board_json(board: StatusBoard) -> dict:
    return {
        "variant": board.variant.value,
        "columns": {
            name: [item.to_dict() for item in items]
            for name, items in board.columns().items()
        },
    }


def calendar_json(board: CalendarBoard) -> dict:
    grid = board.grid
    cells = []
    for cell in grid.cells:
        cells.append({
            "date": cell.date,
            "day": cell.day,
            "is_today": cell.is_today,
            "items": [i.to_dict() for i in board.cell(cell.date)] if cell.date else [],
        })
    return {
        "year": grid.year,
        "month": grid.month,
        "title": grid.title,
        "weekdays": list(WEEKDAY_LABELS),
        "cells": cells,
    }


def _parse_move(data: dict) -> CommittedMove:
    try:
        item_id = str(data["item_id"])
        origin = str(data["from"])
        destination = str(data["to"])
        index = int(data.get("index", 0))
    except (KeyError, TypeError, ValueError) as e:
        raise InvalidMoveError(f"Malformed move: {e}")
    return CommittedMove(item_id=item_id, origin=origin, destination=destination, index=index)


def _parse_calendar_move(data: dict) -> CommittedMove:
    """Calendar moves name the item by (variant, item_id), e.g. campaign 1."""
    move = _parse_move(data)
    variant_name = data.get("variant")
    if not variant_name:
        return move
    try:
        variant = Variant.from_str(str(variant_name))
    except BoardError:
        raise InvalidMoveError(f"Unknown variant: {variant_name}")
    if variant not in DATED_VARIANTS:
        raise InvalidMoveError(f"{variant.value} items are not on the calendar")
    return replace(move, item_id=f"{variant.value}-{move.item_id}")


async def _run_move(store: BoardStore, move: CommittedMove, render):
    """Commit a move and map the outcome to an HTTP response."""
    try:
        outcome = await store.commit_move(move)
    except MoveInFlightError as e:
        return jsonify({"error": str(e)}), 409
    except InvalidMoveError as e:
        return jsonify({"error": str(e)}), 400
    except MoveFailed as e:
        # Already rolled back: the board in the body is the pre-move state
        return jsonify({
            "error": e.message,
            "retryable": e.retryable,
            "board": render(store),
        }), 502
    return jsonify({"outcome": outcome.value, "board": render(store)})


# ── Routes ───────────────────────────────────────────────────────────────────

def _register_routes(app: Flask, boards: Boards) -> None:

    def status_board(variant_name: str) -> StatusBoard:
        try:
            return boards.status[Variant.from_str(variant_name)]
        except BoardError:
            raise InvalidMoveError(f"Unknown board: {variant_name}")

    @app.errorhandler(InvalidMoveError)
    def invalid_move(e):
        return jsonify({"error": str(e)}), 400

    @app.route("/api/board/<variant>")
    def api_board(variant):
        return jsonify(board_json(status_board(variant)))

    @app.route("/api/board/<variant>/move", methods=["POST"])
    async def api_board_move(variant):
        board = status_board(variant)
        move = _parse_move(request.get_json(force=True, silent=True) or {})
        return await _run_move(board, move, board_json)

    @app.route("/api/board/channel/<item_id>/toggle-pause", methods=["POST"])
    async def api_toggle_pause(item_id):
        board = boards.status[Variant.CHANNEL]
        try:
            outcome = await board.toggle_pause(item_id)
        except MoveInFlightError as e:
            return jsonify({"error": str(e)}), 409
        except MoveFailed as e:
            return jsonify({"error": e.message, "retryable": e.retryable, "board": board_json(board)}), 502
        return jsonify({"outcome": outcome.value, "board": board_json(board)})

    @app.route("/api/calendar")
    def api_calendar():
        cal = boards.calendar
        try:
            year = int(request.args.get("year", cal.grid.year))
            month = int(request.args.get("month", cal.grid.month))
        except ValueError:
            return jsonify({"error": "year and month must be integers"}), 400
        if not 0 <= month <= 11:
            return jsonify({"error": "month must be 0..11"}), 400
        if (year, month) != (cal.grid.year, cal.grid.month):
            try:
                cal.show_month(year, month)
            except MoveInFlightError as e:
                return jsonify({"error": str(e)}), 409
        return jsonify(calendar_json(cal))

    @app.route("/api/calendar/move", methods=["POST"])
    async def api_calendar_move():
        move = _parse_calendar_move(request.get_json(force=True, silent=True) or {})
        return await _run_move(boards.calendar, move, calendar_json)

    @app.route("/api/reload", methods=["POST"])
    def api_reload():
        boards.reload()
        return jsonify({"status": "ok", "errors": boards.feed_errors})

    @app.route("/health")
    def health():
        cfg = app.config["BOARD_CFG"]
        return jsonify({
            "status": "ok",
            "backend": None if cfg.offline else cfg.api_url,
            "feed_errors": boards.feed_errors,
        })


# ── Main ─────────────────────────────────────────────────────────────────────

if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Marketing Board Server")
    parser.add_argument("--config", help="Path to board.yaml (overrides MKTG_BOARD_CONFIG)")
    parser.add_argument("--host", help="Bind address")
    parser.add_argument("--port", type=int)
    parser.add_argument("--offline", action="store_true", help="Use sample data and an in-memory backend")
    args = parser.parse_args()

    cfg = BoardConfig.load(args.config)
    if args.host:
        cfg.host = args.host
    if args.port:
        cfg.port = args.port
    if args.offline:
        cfg.offline = True

    logging.basicConfig(
        level=getattr(logging, cfg.log_level.upper(), logging.INFO),
        format="%(asctime)s [board] %(levelname)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    app = create_app(cfg)
    logger.info(f"Serving boards on http://{cfg.host}:{cfg.port} "
                f"(backend: {'offline' if cfg.offline else cfg.api_url})")
    # One worker thread keeps all board mutations on a single thread
    app.run(host=cfg.host, port=cfg.port, debug=False, threaded=False)
