from collections import defaultdict
from typing import Any

from fastapi import Request, WebSocket

from vcheck.utils.logging import get_logger

logger = get_logger(__name__)

ALL_OFFICES = None


class ConnectionManager:
    """
    Fan-out of attendance events to supervisor dashboards.

    Subscriptions are keyed by office id; ``None`` (admins) receives every
    office. One instance is created in the app lifespan and handed to the
    services that publish.
    """

    def __init__(self):
        self.subscriptions: dict[int | None, list[WebSocket]] = defaultdict(list)

    async def connect(self, websocket: WebSocket, office_id: int | None):
        await websocket.accept()
        self.subscriptions[office_id].append(websocket)

    def disconnect(self, websocket: WebSocket, office_id: int | None):
        connections = self.subscriptions.get(office_id, [])
        if websocket in connections:
            connections.remove(websocket)

    @property
    def connection_count(self) -> int:
        return sum(len(conns) for conns in self.subscriptions.values())

    async def publish(self, office_id: int, event: str, data: dict[str, Any]):
        """Best-effort delivery: a failed send drops that connection only."""
        payload = {"event": event, "office_id": office_id, "data": data}
        for key in (office_id, ALL_OFFICES):
            for connection in list(self.subscriptions.get(key, [])):
                try:
                    await connection.send_json(payload)
                except Exception as exc:
                    logger.info("Dropping websocket subscriber: %s", exc)
                    self.disconnect(connection, key)


def get_event_hub(request: Request) -> ConnectionManager:
    return request.app.state.events
