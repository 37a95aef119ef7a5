"""HTTPサーバーのテスト"""

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from delivery_distance.features.cache.persistence import NullPersistence
from delivery_distance.features.container import ServiceContainer
from delivery_distance.infrastructure.config.settings import Settings
from delivery_distance.server import app, get_container
from delivery_distance.shared.exceptions.errors import AddressNotFoundError, ProviderError

from .fakes import AVENIDA_PAULISTA, SAO_PAULO_SE, FakeDistanceProvider, FakeGeocoder
from .test_cep import VIACEP_CAMPINAS, FakeHTTPClient

ZONES = [
    {"id": "near", "minDistance": 0, "maxDistance": 3, "fee": "5.00", "estimatedTime": "20-30 min"},
    {"id": "middle", "minDistance": 3, "maxDistance": 6, "fee": "8.50", "estimatedTime": "30-45 min"},
]


@pytest.fixture
def container() -> Iterator[ServiceContainer]:
    geocoder = FakeGeocoder(
        {
            "Praça da Sé": SAO_PAULO_SE,
            "Avenida Paulista, 1000": AVENIDA_PAULISTA,
            "Rua Inexistente": AddressNotFoundError("Rua Inexistente"),
            "Erro": ProviderError("denied", status="REQUEST_DENIED"),
        }
    )
    container = ServiceContainer(
        Settings(_env_file=None, cache_backend="memory"),
        geocoder=geocoder,
        distance_provider=FakeDistanceProvider(2.7),
        persistence=NullPersistence(),
    )
    container.cep_client.http_client = FakeHTTPClient(VIACEP_CAMPINAS)
    yield container
    container.close()


@pytest.fixture
def client(container: ServiceContainer) -> Iterator[TestClient]:
    app.dependency_overrides[get_container] = lambda: container
    yield TestClient(app)
    app.dependency_overrides.clear()


def _body(origin: dict, destination: dict, **extra) -> dict:
    return {"origin": origin, "destination": destination, **extra}


def test_health(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_distance(client: TestClient) -> None:
    response = client.post(
        "/distance",
        json=_body({"address": "Praça da Sé"}, {"latitude": -23.5614, "longitude": -46.6559}),
    )

    assert response.status_code == 200
    assert response.json()["source"] == "local"
    assert 2.0 < response.json()["distance_km"] < 3.0


def test_distance_second_call_is_cached(client: TestClient) -> None:
    body = _body({"address": "Praça da Sé"}, {"address": "Avenida Paulista, 1000"})
    client.post("/distance", json=body)

    response = client.post("/distance", json=body)

    assert response.json()["source"] == "cache"


@pytest.mark.parametrize(
    "origin,status_code",
    [
        ({}, 400),
        ({"latitude": 120.0, "longitude": 0.0}, 400),
        ({"address": "Rua Inexistente"}, 404),
        ({"address": "Erro"}, 502),
    ],
)
def test_distance_errors(client: TestClient, origin: dict, status_code: int) -> None:
    response = client.post("/distance", json=_body(origin, {"address": "Praça da Sé"}))

    assert response.status_code == status_code


def test_provider_error_includes_status(client: TestClient) -> None:
    response = client.post(
        "/distance", json=_body({"address": "Erro"}, {"address": "Praça da Sé"})
    )

    assert response.json()["status"] == "REQUEST_DENIED"


def test_quote(client: TestClient) -> None:
    response = client.post(
        "/quote",
        json=_body({"address": "Praça da Sé"}, {"address": "Avenida Paulista, 1000"}, zones=ZONES),
    )

    assert response.status_code == 200
    assert response.json()["deliverable"] is True
    assert response.json()["zone_id"] == "near"
    assert response.json()["fee"] == "5.00"


def test_quote_not_deliverable_is_success(client: TestClient) -> None:
    response = client.post(
        "/quote",
        json=_body(
            {"address": "Praça da Sé"}, {"address": "Avenida Paulista, 1000"}, zones=ZONES[:0]
        ),
    )

    assert response.status_code == 200
    assert response.json()["deliverable"] is False


def test_quote_invalid_zone(client: TestClient) -> None:
    response = client.post(
        "/quote",
        json=_body(
            {"address": "Praça da Sé"}, {"address": "Avenida Paulista, 1000"}, zones=[{"id": "x"}]
        ),
    )

    assert response.status_code == 400


def test_cep_lookup(client: TestClient) -> None:
    response = client.get("/cep/13053-143", params={"allowed_states": ["SP", "RJ"]})

    assert response.status_code == 200
    assert response.json()["city"] == "Campinas"
    assert response.json()["allowed"] is True


def test_cep_lookup_outside_allowed_states(client: TestClient, container: ServiceContainer) -> None:
    response = client.get("/cep/13053143", params={"allowed_states": ["rj"]})

    assert response.status_code == 200
    assert response.json()["allowed"] is False
    assert len(container.cep_client.http_client.urls) == 1


def test_invalid_cep(client: TestClient) -> None:
    assert client.get("/cep/123").status_code == 400


def test_debug_cache_and_clear(client: TestClient) -> None:
    client.post("/distance", json=_body({"address": "Praça da Sé"}, {"address": "Avenida Paulista, 1000"}))

    stats = client.get("/debug/cache").json()
    assert stats["distance"]["cache_size"] == 1
    assert stats["coordinates"]["cache_size"] == 2

    response = client.delete("/debug/cache/all")
    assert response.json() == {"cleared": ["coordinates", "distance"]}
    assert client.get("/debug/cache").json()["distance"]["cache_size"] == 0


def test_clear_unknown_cache(client: TestClient) -> None:
    assert client.delete("/debug/cache/routes").status_code == 404


def test_debug_config(client: TestClient) -> None:
    assert client.get("/debug/config").json()["max_difference_tolerance_km"] == 0.5

    response = client.put("/debug/config", json={"max_difference_tolerance_km": 2.5})

    assert response.status_code == 200
    assert response.json()["max_difference_tolerance_km"] == 2.5
    assert response.json()["use_local_algorithms"] is True


def test_debug_config_rejects_negative_values(client: TestClient) -> None:
    response = client.put("/debug/config", json={"max_distance_for_local_only_km": -1})

    assert response.status_code == 400


def test_debug_algorithms(client: TestClient) -> None:
    response = client.post(
        "/debug/algorithms",
        json=_body({"address": "Praça da Sé"}, {"latitude": -22.9099, "longitude": -47.0626}),
    )

    results = response.json()["results"]
    assert response.status_code == 200
    assert results["selected_algorithm"] == "haversine"
    assert results["optimal"] == results["haversine"]
