"""Google Maps Geocoding API実装"""
from typing import Any, Optional

import googlemaps

from ..domain.models import Coordinates
from .base import Geocoder
from ....shared.exceptions.errors import AddressNotFoundError, ProviderError
from ....shared.http.rate_limiter import RateLimiter
from ....shared.logging.config import get_logger

logger = get_logger(__name__)


class GoogleMapsGeocoder(Geocoder):
    """Google Maps Geocoding API実装"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        region: str = "br",
        language: str = "pt-BR",
        timeout: float = 10,
        rate_limiter: Optional[RateLimiter] = None,
        client: Optional[Any] = None,
    ) -> None:
        """
        Args:
            api_key: Google Maps API キー
            region: 地域バイアス（デフォルト: "br"）
            language: 結果の言語
            timeout: リクエストタイムアウト（秒）
            rate_limiter: レート制限（Noneの場合は制限なし）
            client: 既存のgooglemapsクライアント（テスト用）
        """
        self.region = region
        self.language = language
        self.rate_limiter = rate_limiter

        if client is not None:
            self.client = client
        else:
            try:
                self.client = googlemaps.Client(key=api_key, timeout=timeout)
            except Exception as e:
                raise ProviderError(f"Failed to initialize Google Maps client: {e}") from e

        logger.info("GoogleMapsGeocoder initialized")

    def geocode(self, address: str) -> Coordinates:
        """
        住所をジオコーディング

        Args:
            address: 住所文字列

        Returns:
            Coordinates: 最初の結果の座標

        Raises:
            AddressNotFoundError: 結果が0件、または座標が欠けている場合
            ProviderError: APIリクエストに失敗した場合
        """
        if self.rate_limiter:
            self.rate_limiter.wait()

        try:
            logger.debug(f"Geocoding address: {address}")
            results = self.client.geocode(address, region=self.region, language=self.language)

        except googlemaps.exceptions.ApiError as e:
            raise ProviderError(f"Google Maps API error: {e}", status=e.status) from e
        except googlemaps.exceptions.Timeout as e:
            raise ProviderError(f"Google Maps request timed out: {e}", status="TIMEOUT") from e
        except googlemaps.exceptions.TransportError as e:
            raise ProviderError(f"Google Maps transport error: {e}", status="TRANSPORT_ERROR") from e
        except Exception as e:
            raise ProviderError(f"Unexpected error during geocoding: {e}") from e

        if not results:
            logger.warning(f"No geocoding results for address: {address}")
            raise AddressNotFoundError(address)

        location = results[0].get("geometry", {}).get("location", {})
        latitude = location.get("lat")
        longitude = location.get("lng")

        if latitude is None or longitude is None:
            logger.warning(f"Invalid geocoding result (missing lat/lng): {address}")
            raise AddressNotFoundError(address)

        coordinates = Coordinates(latitude=latitude, longitude=longitude)
        logger.debug(f"Geocoded: {address} -> ({latitude}, {longitude})")

        return coordinates
