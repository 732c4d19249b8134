"""
Tests for the /ws endpoint.

Verifies:
- Acks come back over the socket for enveloped events
- A malformed frame is skipped without dropping the seat
"""

from fastapi.testclient import TestClient

import main


class TestWebSocketEndpoint:

    def test_bad_frame_keeps_connection_and_seat(self):
        client = TestClient(main.app)
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"event": "room:create", "payload": {"name": "Alice"}, "ack": 1})
            ack = None
            while ack is None:
                msg = ws.receive_json()
                if msg["event"] == "ack":
                    ack = msg
            room_id = ack["data"]["roomId"]

            ws.send_text("this is not json")
            ws.send_json({"event": "chat:send", "payload": {"text": "still here"}, "ack": 2})

            reply = None
            while reply is None:
                msg = ws.receive_json()
                if msg["event"] == "ack" and msg["ack"] == 2:
                    reply = msg

            assert reply["data"] == {"ok": True}
            room = main.room_manager.get_room(room_id)
            assert [p.name for p in room.players] == ["Alice"]
