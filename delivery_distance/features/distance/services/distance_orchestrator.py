"""距離オーケストレーター（ローカル計算と外部APIの使い分け）"""

import math
import threading
from typing import Any, Callable, Optional

from ..domain.algorithms import calculate_optimal_distance, is_point_within_radius
from ..domain.models import DistanceConfig, DistanceResult, DistanceSource
from ..providers.base import DistanceProvider
from ...cache.geo_cache import GeoCache
from ...geocoding.domain.models import AddressInput, CoordinateAddress, Coordinates, TextAddress
from ...geocoding.providers.base import Geocoder
from ....shared.exceptions.errors import (
    AddressNotFoundError,
    ConfigurationError,
    InvalidParametersError,
    ProviderError,
)
from ....shared.logging.config import get_logger

logger = get_logger(__name__)

LocalAlgorithm = Callable[[Coordinates, Coordinates], float]


class DistanceOrchestrator:
    """
    距離オーケストレーター

    リクエストごとに、高速なローカル計算を信頼するか、
    有料の外部API（DistanceProvider）に問い合わせるかを判断し、
    システムが信頼する1つの距離（km）を返す。

    1. 距離キャッシュにあれば即座に返す（再検証しない）
    2. 座標を解決（座標キャッシュ → ジオコーダー）
    3. ローカル計算が無効なら外部APIの値を使う
    4. ローカル計算し、設定に応じて外部APIで確認・調停する
    5. 最終的な値を距離キャッシュに保存する

    外部APIの失敗はローカル値へのフォールバックで吸収する。
    ジオコーディングの失敗（住所が見つからない等）は呼び出し元に伝播する。
    """

    def __init__(
        self,
        geocoder: Geocoder,
        distance_provider: DistanceProvider,
        coordinates_cache: GeoCache[TextAddress, Coordinates],
        distance_cache: GeoCache[tuple[AddressInput, AddressInput], float],
        config: Optional[DistanceConfig] = None,
        local_algorithm: LocalAlgorithm = calculate_optimal_distance,
    ) -> None:
        """
        Args:
            geocoder: ジオコーダー
            distance_provider: 外部の距離プロバイダー
            coordinates_cache: 座標キャッシュ
            distance_cache: 距離キャッシュ
            config: 距離計算ポリシー（Noneの場合はデフォルト）
            local_algorithm: ローカル距離計算関数
        """
        self.geocoder = geocoder
        self.distance_provider = distance_provider
        self.coordinates_cache = coordinates_cache
        self.distance_cache = distance_cache
        self.local_algorithm = local_algorithm

        self._config = config or DistanceConfig()
        self._config_lock = threading.Lock()

        logger.info(f"DistanceOrchestrator initialized: config={self._config.to_dict()}")

    @property
    def config(self) -> DistanceConfig:
        """現在の設定（一貫したスナップショット）"""
        with self._config_lock:
            return self._config

    def update_config(self, **changes: Any) -> DistanceConfig:
        """
        設定の一部を変更する

        Args:
            **changes: 変更するフィールドと値

        Returns:
            DistanceConfig: 新しい設定

        Raises:
            ConfigurationError: 未知のフィールド、または不正な値の場合
        """
        with self._config_lock:
            self._config = self._config.with_changes(**changes)
            new_config = self._config

        logger.info(f"Distance config updated: {new_config.to_dict()}")
        return new_config

    def resolve_distance(self, origin: AddressInput, destination: AddressInput) -> float:
        """
        出発地から目的地までの距離（km）を解決

        Raises:
            InvalidParametersError: 入力が不正な場合
            AddressNotFoundError: 住所をジオコーディングできない場合
            ProviderError: ジオコーダーが失敗した場合
        """
        return self.resolve_distance_detailed(origin, destination).distance_km

    def resolve_distance_detailed(
        self, origin: AddressInput, destination: AddressInput
    ) -> DistanceResult:
        """resolve_distanceと同じだが、値の出所も返す"""
        self._validate_input(origin, "origin")
        self._validate_input(destination, "destination")

        config = self.config
        pair = (origin, destination)

        cached = self.distance_cache.get(pair)
        if cached is not None:
            logger.debug(f"Using cached distance {origin} -> {destination}: {cached} km")
            return DistanceResult(cached, DistanceSource.CACHE)

        origin_coords = self.get_coordinates(origin)
        destination_coords = self.get_coordinates(destination)

        if config.use_local_algorithms:
            result = self._reconcile(origin_coords, destination_coords, config)
        else:
            result = self._provider_only(origin_coords, destination_coords)

        self.distance_cache.set(pair, result.distance_km)

        logger.info(
            f"Distance resolved {origin} -> {destination}: "
            f"{result.distance_km} km ({result.source.value})"
        )
        return result

    def get_coordinates(self, address: AddressInput) -> Coordinates:
        """
        住所の座標を取得（座標キャッシュ → ジオコーダー）

        座標で指定された地点はそのまま返す。外部エラーのフォールバックはない。

        Raises:
            AddressNotFoundError: 結果が0件の場合
            ProviderError: ジオコーダーが失敗した場合
        """
        self._validate_input(address, "address")

        if isinstance(address, CoordinateAddress):
            return address.coordinates

        cached = self.coordinates_cache.get(address)
        if cached is not None:
            return cached

        logger.debug(f"Geocoding via provider: {address.text}")
        coordinates = self.geocoder.geocode(address.text)
        self.coordinates_cache.set(address, coordinates)

        return coordinates

    def distance_with_provider(self, origin: Coordinates, destination: Coordinates) -> float:
        """
        外部プロバイダーに直接問い合わせる（フォールバックなし、キャッシュなし）

        Raises:
            AddressNotFoundError / ProviderError: プロバイダーの失敗
        """
        return self.distance_provider.distance(origin, destination)

    def is_within_radius(self, center: Coordinates, point: Coordinates, radius_km: float) -> bool:
        """外部APIを使わずに、地点が半径以内かどうかを判定"""
        return is_point_within_radius(center, point, radius_km)

    def _reconcile(
        self, origin: Coordinates, destination: Coordinates, config: DistanceConfig
    ) -> DistanceResult:
        local_km = self.local_algorithm(origin, destination)
        logger.debug(f"Local distance: {local_km} km")

        # 確認が無効ならしきい値の内外を問わずローカル値
        if not config.use_google_for_confirmation:
            if local_km > config.max_distance_for_local_only_km:
                logger.debug(
                    f"Local distance {local_km} km exceeds local-only limit "
                    f"{config.max_distance_for_local_only_km} km, confirmation disabled"
                )
            return DistanceResult(local_km, DistanceSource.LOCAL)

        remote_km = self._fetch_remote(origin, destination)
        if remote_km is None:
            logger.warning(f"Using local distance {local_km} km as fallback")
            return DistanceResult(local_km, DistanceSource.LOCAL_FALLBACK)

        difference = round(abs(local_km - remote_km), 2)
        logger.debug(f"Provider distance: {remote_km} km (difference {difference} km)")

        # 差が許容範囲内ならローカル値（次回のキャッシュミスでも再計算できる）
        if difference <= config.max_difference_tolerance_km:
            return DistanceResult(local_km, DistanceSource.LOCAL)

        return DistanceResult(remote_km, DistanceSource.PROVIDER)

    def _provider_only(self, origin: Coordinates, destination: Coordinates) -> DistanceResult:
        remote_km = self._fetch_remote(origin, destination)
        if remote_km is not None:
            return DistanceResult(remote_km, DistanceSource.PROVIDER)

        local_km = self.local_algorithm(origin, destination)
        logger.warning(f"Using local distance {local_km} km as fallback")
        return DistanceResult(local_km, DistanceSource.LOCAL_FALLBACK)

    def _fetch_remote(self, origin: Coordinates, destination: Coordinates) -> Optional[float]:
        """
        外部APIから距離を取得

        Returns:
            Optional[float]: 距離（km）。失敗・不正な値の場合はNone

        Raises:
            ConfigurationError: 外部APIが構成されていない場合
        """
        try:
            remote_km = self.distance_provider.distance(origin, destination)
        except ConfigurationError:
            raise
        except (ProviderError, AddressNotFoundError) as e:
            logger.warning(f"Distance provider failed: {e}")
            return None
        except Exception as e:
            logger.warning(f"Distance provider raised unexpectedly: {e}", exc_info=True)
            return None

        if (
            isinstance(remote_km, bool)
            or not isinstance(remote_km, (int, float))
            or not math.isfinite(remote_km)
            or remote_km < 0
        ):
            logger.warning(f"Distance provider returned an invalid distance: {remote_km!r}")
            return None

        return float(remote_km)

    @staticmethod
    def _validate_input(value: Any, name: str) -> None:
        if not isinstance(value, (TextAddress, CoordinateAddress)):
            raise InvalidParametersError(
                f"{name} must be a TextAddress or CoordinateAddress, got {type(value).__name__}"
            )
