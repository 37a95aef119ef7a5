"""Google Maps Distance Matrix API実装"""
import math
from typing import Any, Optional

import googlemaps

from .base import DistanceProvider
from ...geocoding.domain.models import Coordinates
from ....shared.exceptions.errors import AddressNotFoundError, ProviderError
from ....shared.http.rate_limiter import RateLimiter
from ....shared.logging.config import get_logger

logger = get_logger(__name__)

# 経路が存在しないことを示す要素ステータス
_NOT_FOUND_STATUSES = {"NOT_FOUND", "ZERO_RESULTS"}


class GoogleDistanceMatrixProvider(DistanceProvider):
    """Google Maps Distance Matrix API実装（道路距離）"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        mode: str = "driving",
        region: str = "br",
        language: str = "pt-BR",
        timeout: float = 10,
        rate_limiter: Optional[RateLimiter] = None,
        client: Optional[Any] = None,
    ) -> None:
        """
        Args:
            api_key: Google Maps API キー
            mode: 移動手段（driving, walking, bicycling）
            region: 地域バイアス
            language: 結果の言語
            timeout: リクエストタイムアウト（秒）
            rate_limiter: レート制限（Noneの場合は制限なし）
            client: 既存のgooglemapsクライアント（テスト用）
        """
        self.mode = mode
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

        logger.info(f"GoogleDistanceMatrixProvider initialized: mode={mode}")

    def distance(self, origin: Coordinates, destination: Coordinates) -> float:
        """
        Distance Matrix APIで道路距離を取得

        Raises:
            AddressNotFoundError: 要素ステータスがNOT_FOUND / ZERO_RESULTSの場合
            ProviderError: APIエラー、タイムアウト、不正なレスポンスの場合
        """
        if self.rate_limiter:
            self.rate_limiter.wait()

        try:
            logger.debug(f"Distance Matrix request: {origin} -> {destination}")
            response = self.client.distance_matrix(
                origins=[origin.to_tuple()],
                destinations=[destination.to_tuple()],
                mode=self.mode,
                region=self.region,
                language=self.language,
            )

        except googlemaps.exceptions.ApiError as e:
            raise ProviderError(f"Google Maps API error: {e}", status=e.status) from e
        except googlemaps.exceptions.Timeout as e:
            raise ProviderError(f"Google Maps request timed out: {e}", status="TIMEOUT") from e
        except googlemaps.exceptions.TransportError as e:
            raise ProviderError(f"Google Maps transport error: {e}", status="TRANSPORT_ERROR") from e
        except Exception as e:
            raise ProviderError(f"Unexpected error during distance request: {e}") from e

        return self._parse_distance_km(response, origin, destination)

    def _parse_distance_km(
        self, response: Any, origin: Coordinates, destination: Coordinates
    ) -> float:
        """レスポンスから最初の要素の距離（m）を取り出し、kmに変換"""
        try:
            element = response["rows"][0]["elements"][0]
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderError(
                f"Invalid Distance Matrix response for {origin} -> {destination}",
                status="INVALID_RESPONSE",
            ) from e

        status = element.get("status")
        if status in _NOT_FOUND_STATUSES:
            raise AddressNotFoundError(f"{origin} -> {destination}")
        if status != "OK":
            raise ProviderError(f"Distance Matrix element status: {status}", status=status)

        meters = element.get("distance", {}).get("value")
        if not isinstance(meters, (int, float)):
            raise ProviderError(
                f"Distance Matrix element without distance for {origin} -> {destination}",
                status="INVALID_RESPONSE",
            )

        distance_km = math.floor(meters / 1000 * 100 + 0.5) / 100
        logger.debug(f"Distance Matrix: {origin} -> {destination} = {distance_km} km")

        return distance_km
