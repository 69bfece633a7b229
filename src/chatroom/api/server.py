"""HTTP surface: translates JSON requests into :class:`ChatRoom` calls."""

from __future__ import annotations

import json
import logging
import threading
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Callable
from urllib.parse import parse_qs, urlsplit

from chatroom.api.schemas import JoinRequest, MessagesQuery, SendRequest, parse_request
from chatroom.errors import ChatRoomError, InternalError, NotFoundError, ValidationError
from chatroom.presence.registry import Participant
from chatroom.room import ChatRoom

logger = logging.getLogger(__name__)

Response = tuple[int, Any]

IDENTITY_HEADER = "User"


def participant_to_dict(participant: Participant) -> dict[str, Any]:
    """Wire form of a participant; ``lastSeen`` is epoch milliseconds."""
    return {
        "name": participant.name,
        "lastSeen": int(participant.last_seen * 1000),
    }


def _decode_header(value: str | None) -> str:
    """Recover UTF-8 names from a header that http.server decoded as latin-1."""
    if not value:
        return ""
    try:
        return value.encode("latin-1").decode("utf-8").strip()
    except (UnicodeEncodeError, UnicodeDecodeError):
        return value.strip()


# ------------------------------------------------------------------
# Request handler
# ------------------------------------------------------------------


def _make_handler(room: ChatRoom) -> type:
    """Create a request handler class bound to *room*."""

    class Handler(BaseHTTPRequestHandler):
        server_version = "chatroom"

        # -- routing -------------------------------------------------

        def do_GET(self) -> None:
            self._dispatch("GET")

        def do_POST(self) -> None:
            self._dispatch("POST")

        def do_OPTIONS(self) -> None:
            self.send_response(HTTPStatus.NO_CONTENT)
            self._send_cors_headers()
            self.send_header("Access-Control-Allow-Methods", "GET, POST, OPTIONS")
            self.send_header(
                "Access-Control-Allow-Headers", f"Content-Type, {IDENTITY_HEADER}"
            )
            self.send_header("Content-Length", "0")
            self.end_headers()

        def _dispatch(self, method: str) -> None:
            url = urlsplit(self.path)
            routes: dict[tuple[str, str], Callable[[dict[str, list[str]]], Response]] = {
                ("POST", "/participants"): self._join,
                ("GET", "/participants"): self._list_participants,
                ("POST", "/messages"): self._send_message,
                ("GET", "/messages"): self._list_messages,
                ("POST", "/status"): self._heartbeat,
                ("GET", "/health"): self._health,
            }
            route = routes.get((method, url.path.rstrip("/") or "/"))

            try:
                if route is None:
                    raise NotFoundError(f"No route for {method} {url.path}")
                status, payload = route(parse_qs(url.query))
            except ChatRoomError as exc:
                if exc.status_code >= 500:
                    logger.error("%s %s failed: %s", method, url.path, exc.message)
                else:
                    logger.info(
                        "%s %s rejected (%d): %s",
                        method,
                        url.path,
                        exc.status_code,
                        exc.message,
                    )
                status, payload = exc.status_code, exc.to_payload()
            except Exception as exc:
                logger.exception("Unhandled error in %s %s", method, url.path)
                err = InternalError(str(exc) or type(exc).__name__)
                status, payload = err.status_code, err.to_payload()

            self._send_json(status, payload)

        # -- endpoints -----------------------------------------------

        def _join(self, query: dict[str, list[str]]) -> Response:
            request = parse_request(JoinRequest, self._read_json())
            participant = room.join(request.name)
            return HTTPStatus.CREATED, participant_to_dict(participant)

        def _list_participants(self, query: dict[str, list[str]]) -> Response:
            return HTTPStatus.OK, [participant_to_dict(p) for p in room.list_participants()]

        def _send_message(self, query: dict[str, list[str]]) -> Response:
            body = self._read_json()
            if not isinstance(body, dict):
                raise ValidationError(["request body must be a JSON object"])
            request = parse_request(SendRequest, {**body, "from": self._identity()})
            message = room.send(request.sender, request.to, request.text, request.type)
            return HTTPStatus.CREATED, message.to_dict()

        def _list_messages(self, query: dict[str, list[str]]) -> Response:
            params = {key: values[-1] for key, values in query.items() if values}
            limit = parse_request(MessagesQuery, params).limit
            messages = room.list_messages(self._identity(), limit)
            return HTTPStatus.OK, [m.to_dict() for m in messages]

        def _heartbeat(self, query: dict[str, list[str]]) -> Response:
            participant = room.heartbeat(self._identity())
            return HTTPStatus.OK, participant_to_dict(participant)

        def _health(self, query: dict[str, list[str]]) -> Response:
            return HTTPStatus.OK, {
                "status": "ok",
                "participants": len(room.registry),
                "messages": len(room.store),
            }

        # -- helpers -------------------------------------------------

        def _identity(self) -> str:
            return _decode_header(self.headers.get(IDENTITY_HEADER))

        def _read_json(self) -> Any:
            header = self.headers.get("Content-Length") or "0"
            try:
                length = int(header)
            except ValueError as exc:
                raise ValidationError(
                    [f'"Content-Length" must be an integer, got {header!r}']
                ) from exc
            if length < 0:
                raise ValidationError(['"Content-Length" must not be negative'])
            raw = self.rfile.read(length) if length > 0 else b""
            if not raw.strip():
                return {}
            try:
                return json.loads(raw)
            except (UnicodeDecodeError, json.JSONDecodeError) as exc:
                raise ValidationError([f"request body must be valid JSON ({exc})"]) from exc

        def _send_json(self, status: int, payload: Any) -> None:
            body = json.dumps(payload, ensure_ascii=False).encode("utf-8")
            self.send_response(status)
            self._send_cors_headers()
            self.send_header("Content-Type", "application/json; charset=utf-8")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

        def _send_cors_headers(self) -> None:
            self.send_header("Access-Control-Allow-Origin", "*")

        def log_message(self, format: str, *args: Any) -> None:
            logger.debug("%s - %s", self.address_string(), format % args)

    return Handler


# ------------------------------------------------------------------
# Server
# ------------------------------------------------------------------


class ChatServer(ThreadingHTTPServer):
    """Thread-per-request HTTP server around a shared :class:`ChatRoom`."""

    daemon_threads = True
    request_queue_size = 64

    def __init__(self, room: ChatRoom, host: str = "0.0.0.0", port: int = 5000) -> None:
        self.room = room
        self._thread: threading.Thread | None = None
        super().__init__((host, port), _make_handler(room))

    @property
    def port(self) -> int:
        return self.server_address[1]

    def start(self) -> None:
        """Serve on a daemon thread."""
        self._thread = threading.Thread(
            target=self.serve_forever, name="chatroom-http", daemon=True
        )
        self._thread.start()

    def close(self) -> None:
        """Stop the serving thread, if any, and release the socket."""
        if self._thread is not None:
            self.shutdown()
            self._thread.join()
            self._thread = None
        self.server_close()


def start_server(room: ChatRoom, host: str = "0.0.0.0", port: int = 5000) -> ChatServer:
    """Start a :class:`ChatServer` on a daemon thread and return it."""
    server = ChatServer(room, host, port)
    server.start()
    logger.info("HTTP server on http://%s:%d", host, server.port)
    return server
