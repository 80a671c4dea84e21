import pytest
from fastapi.testclient import TestClient

from gasworks.dendrite.web import create_app, parse_listen_address


class RecordingAxon:
    def __init__(self):
        self.deltas = []

    async def enqueue(self, delta):
        self.deltas.append(delta)
        return True

    def health_check(self):
        return {"phase": "wait", "queued": len(self.deltas)}


def test_excitation_is_enqueued():
    axon = RecordingAxon()
    client = TestClient(create_app(axon))

    response = client.get("/", params={"e": "0.800000"})

    assert response.status_code == 200
    assert response.json() == {"ok": True}
    assert axon.deltas == [0.8]


def test_startup_signal_is_enqueued():
    axon = RecordingAxon()
    client = TestClient(create_app(axon))

    client.get("/?e=-1.000000")

    assert axon.deltas == [-1.0]


@pytest.mark.parametrize("query", ["", "?e=lots", "?e=nan", "?e=inf", "?e=-inf"])
def test_missing_or_invalid_energy_is_rejected(query):
    axon = RecordingAxon()
    client = TestClient(create_app(axon))

    response = client.get(f"/{query}")

    assert response.status_code == 422
    assert axon.deltas == []


def test_health():
    axon = RecordingAxon()
    client = TestClient(create_app(axon))

    assert client.get("/health").json() == {"phase": "wait", "queued": 0}


@pytest.mark.parametrize(
    "address, expected",
    [
        (":8080", ("0.0.0.0", 8080)),
        ("10.1.1.1:8080", ("10.1.1.1", 8080)),
        ("localhost:9090", ("localhost", 9090)),
    ],
)
def test_parse_listen_address(address, expected):
    assert parse_listen_address(address) == expected


def test_parse_listen_address_without_port():
    with pytest.raises(ValueError):
        parse_listen_address("10.1.1.1")
