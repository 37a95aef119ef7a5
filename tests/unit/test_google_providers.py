"""Google Maps実装のテスト（googlemapsクライアントはフェイク）"""

from typing import Any, Optional

import googlemaps
import pytest

from delivery_distance.features.distance.providers.google_distance_matrix import (
    GoogleDistanceMatrixProvider,
)
from delivery_distance.features.geocoding.providers.google_maps_geocoder import (
    GoogleMapsGeocoder,
)
from delivery_distance.shared.exceptions.errors import AddressNotFoundError, ProviderError
from delivery_distance.shared.http.rate_limiter import RateLimiter

from .fakes import AVENIDA_PAULISTA, SAO_PAULO_SE


class FakeMapsClient:
    """googlemaps.Clientの代わり"""

    def __init__(self, response: Any = None, error: Optional[Exception] = None) -> None:
        self.response = response
        self.error = error
        self.calls: list[tuple[tuple, dict]] = []

    def _respond(self, *args: Any, **kwargs: Any) -> Any:
        self.calls.append((args, kwargs))
        if self.error is not None:
            raise self.error
        return self.response

    geocode = _respond
    distance_matrix = _respond


def _element(status: str = "OK", meters: Any = 5234) -> dict:
    element: dict[str, Any] = {"status": status}
    if meters is not None:
        element["distance"] = {"value": meters, "text": "5,2 km"}
    return {"rows": [{"elements": [element]}], "status": "OK"}


class TestGoogleMapsGeocoder:
    def test_returns_first_result(self) -> None:
        client = FakeMapsClient(
            [
                {"geometry": {"location": {"lat": -23.5505, "lng": -46.6333}}},
                {"geometry": {"location": {"lat": 0.0, "lng": 0.0}}},
            ]
        )
        geocoder = GoogleMapsGeocoder(client=client)

        assert geocoder.geocode("Praça da Sé") == SAO_PAULO_SE
        args, kwargs = client.calls[0]
        assert args == ("Praça da Sé",)
        assert kwargs == {"region": "br", "language": "pt-BR"}

    @pytest.mark.parametrize(
        "response",
        [[], None, [{"geometry": {"location": {"lat": -23.5}}}], [{}]],
    )
    def test_empty_or_incomplete_results_are_not_found(self, response: Any) -> None:
        geocoder = GoogleMapsGeocoder(client=FakeMapsClient(response))

        with pytest.raises(AddressNotFoundError):
            geocoder.geocode("Rua Inexistente")

    @pytest.mark.parametrize(
        "error,status",
        [
            (googlemaps.exceptions.ApiError("OVER_QUERY_LIMIT"), "OVER_QUERY_LIMIT"),
            (googlemaps.exceptions.ApiError("REQUEST_DENIED", "bad key"), "REQUEST_DENIED"),
            (googlemaps.exceptions.Timeout(), "TIMEOUT"),
            (googlemaps.exceptions.TransportError("connection reset"), "TRANSPORT_ERROR"),
            (RuntimeError("boom"), None),
        ],
    )
    def test_client_errors_become_provider_errors(self, error: Exception, status: Any) -> None:
        geocoder = GoogleMapsGeocoder(client=FakeMapsClient(error=error))

        with pytest.raises(ProviderError) as exc_info:
            geocoder.geocode("Praça da Sé")

        assert exc_info.value.status == status

    def test_rate_limiter_is_used(self) -> None:
        sleeps: list[float] = []
        limiter = RateLimiter(requests_per_second=2, clock=lambda: 0.0, sleep=sleeps.append)
        client = FakeMapsClient([{"geometry": {"location": {"lat": 1.0, "lng": 2.0}}}])
        geocoder = GoogleMapsGeocoder(client=client, rate_limiter=limiter)

        geocoder.geocode("a")
        geocoder.geocode("b")

        assert sleeps == [0.5]


class TestGoogleDistanceMatrixProvider:
    def test_converts_meters_to_kilometers(self) -> None:
        client = FakeMapsClient(_element(meters=5234))
        provider = GoogleDistanceMatrixProvider(client=client)

        assert provider.distance(SAO_PAULO_SE, AVENIDA_PAULISTA) == 5.23

        _, kwargs = client.calls[0]
        assert kwargs["origins"] == [(-23.5505, -46.6333)]
        assert kwargs["destinations"] == [(-23.5614, -46.6559)]
        assert kwargs["mode"] == "driving"

    def test_rounds_to_two_decimals(self) -> None:
        provider = GoogleDistanceMatrixProvider(client=FakeMapsClient(_element(meters=1006)))

        assert provider.distance(SAO_PAULO_SE, AVENIDA_PAULISTA) == 1.01

    @pytest.mark.parametrize("status", ["NOT_FOUND", "ZERO_RESULTS"])
    def test_no_route_is_not_found(self, status: str) -> None:
        provider = GoogleDistanceMatrixProvider(
            client=FakeMapsClient(_element(status=status, meters=None))
        )

        with pytest.raises(AddressNotFoundError):
            provider.distance(SAO_PAULO_SE, AVENIDA_PAULISTA)

    def test_other_element_status_is_provider_error(self) -> None:
        provider = GoogleDistanceMatrixProvider(
            client=FakeMapsClient(_element(status="MAX_ROUTE_LENGTH_EXCEEDED", meters=None))
        )

        with pytest.raises(ProviderError) as exc_info:
            provider.distance(SAO_PAULO_SE, AVENIDA_PAULISTA)

        assert exc_info.value.status == "MAX_ROUTE_LENGTH_EXCEEDED"

    @pytest.mark.parametrize(
        "response",
        [{}, {"rows": []}, {"rows": [{"elements": []}]}, None, _element(meters=None)],
    )
    def test_malformed_response_is_provider_error(self, response: Any) -> None:
        provider = GoogleDistanceMatrixProvider(client=FakeMapsClient(response))

        with pytest.raises(ProviderError) as exc_info:
            provider.distance(SAO_PAULO_SE, AVENIDA_PAULISTA)

        assert exc_info.value.status == "INVALID_RESPONSE"

    def test_api_error_is_provider_error(self) -> None:
        provider = GoogleDistanceMatrixProvider(
            client=FakeMapsClient(error=googlemaps.exceptions.ApiError("OVER_DAILY_LIMIT"))
        )

        with pytest.raises(ProviderError) as exc_info:
            provider.distance(SAO_PAULO_SE, AVENIDA_PAULISTA)

        assert exc_info.value.status == "OVER_DAILY_LIMIT"
