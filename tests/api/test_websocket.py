"""
Tests for the realtime WebSocket endpoint.
"""

import pytest
from fastapi.testclient import TestClient


def send(ws, event, data=None, ack=None):
    frame = {"event": event, "data": data}
    if ack is not None:
        frame["ack"] = ack
    ws.send_json(frame)


def expect(ws, event):
    frame = ws.receive_json()
    assert frame["event"] == event, frame
    return frame["data"]


@pytest.mark.integration
class TestConnect:
    def test_state_init_on_connect(self, client: TestClient) -> None:
        with client.websocket_connect("/ws") as ws:
            data = expect(ws, "state:init")
            assert len(data["songs"]) == 25
            assert data["users"] == []
            assert data["currentRound"] is None

    def test_late_joiner_sees_current_round(self, client: TestClient) -> None:
        with client.websocket_connect("/ws") as ws:
            expect(ws, "state:init")
            send(ws, "round:preparePoll")
            prepared = expect(ws, "round:updated")

            with client.websocket_connect("/ws") as late:
                data = expect(late, "state:init")
                assert data["currentRound"]["id"] == prepared["id"]


@pytest.mark.integration
class TestRoundFlow:
    def test_full_poll_broadcast_to_all(self, client: TestClient) -> None:
        with client.websocket_connect("/ws") as host, client.websocket_connect("/ws") as guest:
            expect(host, "state:init")
            expect(guest, "state:init")

            send(host, "round:preparePoll")
            for ws in (host, guest):
                prepared = expect(ws, "round:updated")
                assert prepared["state"] == "prepared"

            send(host, "round:openVoting")
            for ws in (host, guest):
                started = expect(ws, "round:started")
                assert started["votingOpen"] is True
                assert expect(ws, "round:updated") == started

            song_id = prepared["songs"][3]["id"]
            for user in (1, 2, 3):
                send(guest, "round:vote", {"userId": user, "songId": song_id})
                for ws in (host, guest):
                    assert len(expect(ws, "round:updated")["votes"]) == user
                    assert expect(ws, "vote:registered") == {"userId": user, "songId": song_id}

            send(host, "round:close")
            for ws in (host, guest):
                results = expect(ws, "round:ended")
                assert results["winner"]["id"] == song_id
                assert results["stats"][0]["votes"] == 3
                assert len(results["stats"]) == 11
                assert expect(ws, "round:updated") is None

    def test_vote_ignored_when_voting_closed(self, client: TestClient) -> None:
        with client.websocket_connect("/ws") as ws:
            expect(ws, "state:init")
            send(ws, "round:preparePoll")
            expect(ws, "round:updated")

            send(ws, "round:vote", {"userId": 1, "songId": 1})
            send(ws, "round:reset")
            # the vote produced nothing, so the next frame is the reset
            expect(ws, "round:reset")

    def test_not_enough_songs_only_to_requester(self, client: TestClient) -> None:
        with client.websocket_connect("/ws") as host, client.websocket_connect("/ws") as guest:
            expect(host, "state:init")
            expect(guest, "state:init")

            send(host, "songs:replace", [{"id": 1, "title": "Only", "artist": "One"}])
            for ws in (host, guest):
                assert [s["id"] for s in expect(ws, "songs:updated")] == [1]
                assert expect(ws, "round:reset") is None

            send(host, "round:preparePoll")
            assert expect(host, "round:error") == "need at least 10 songs"

            send(host, "round:reset")
            expect(guest, "round:reset")
            expect(host, "round:reset")


@pytest.mark.integration
class TestRoster:
    def test_register_broadcasts_and_acks(self, client: TestClient) -> None:
        with client.websocket_connect("/ws") as ws, client.websocket_connect("/ws") as other:
            expect(ws, "state:init")
            expect(other, "state:init")

            send(ws, "user:register", {"name": "Ada"}, ack="req-1")

            user = expect(ws, "user:registered")
            assert user["name"] == "Ada"
            ack = ws.receive_json()
            assert ack == {"event": "ack", "ack": "req-1", "data": user}
            assert expect(other, "user:registered") == user

    def test_register_without_ack(self, client: TestClient) -> None:
        with client.websocket_connect("/ws") as ws:
            expect(ws, "state:init")
            send(ws, "user:register", {})
            assert expect(ws, "user:registered")["name"] == "Guest"
            send(ws, "round:reset")
            expect(ws, "round:reset")

    def test_remove_user(self, client: TestClient) -> None:
        with client.websocket_connect("/ws") as ws:
            expect(ws, "state:init")
            send(ws, "user:register", {"name": "Bye"})
            user = expect(ws, "user:registered")

            send(ws, "user:remove", user["id"])
            assert expect(ws, "user:removed") == user["id"]
            assert expect(ws, "round:updated") is None


@pytest.mark.integration
class TestMalformedFrames:
    @pytest.mark.parametrize("raw", ["not json", "[1, 2]", '{"data": 1}', '{"event": "nope"}'])
    def test_connection_survives(self, client: TestClient, raw: str) -> None:
        with client.websocket_connect("/ws") as ws:
            expect(ws, "state:init")
            ws.send_text(raw)
            send(ws, "round:reset")
            expect(ws, "round:reset")
