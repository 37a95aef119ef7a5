"""サービスコンテナ（依存性の組み立て）"""

import threading
from typing import Callable, Optional

from .cache.geo_cache import create_coordinates_cache, create_distance_cache
from .cache.persistence import (
    CachePersistence,
    FileCachePersistence,
    FirestoreCachePersistence,
    NullPersistence,
)
from .delivery.services.delivery_fee_service import DeliveryFeeService
from .delivery.services.zone_resolver import DeliveryZoneResolver
from .distance.providers.base import DistanceProvider
from .distance.providers.google_distance_matrix import GoogleDistanceMatrixProvider
from .distance.services.distance_orchestrator import DistanceOrchestrator
from .geocoding.providers.base import Geocoder
from .geocoding.providers.cep_geocoder import CepAwareGeocoder
from .geocoding.providers.google_maps_geocoder import GoogleMapsGeocoder
from .geocoding.domain.models import Coordinates
from .geocoding.providers.viacep_client import ViaCepClient
from .storage.clients.firestore_client import FirestoreClient
from ..infrastructure.config.settings import Settings
from ..infrastructure.gcp.secret_manager import SecretManagerClient
from ..shared.exceptions.errors import ConfigurationError
from ..shared.http.client import HTTPClient
from ..shared.http.rate_limiter import RateLimiter
from ..shared.logging.config import get_logger

logger = get_logger(__name__)


class _DeferredGeocoder(Geocoder):
    """最初のジオコーディングまで実体の作成を遅らせる"""

    def __init__(self, resolve: Callable[[], Geocoder]) -> None:
        self._resolve = resolve

    def geocode(self, address: str) -> Coordinates:
        return self._resolve().geocode(address)


class _DeferredDistanceProvider(DistanceProvider):
    """最初の距離取得まで実体の作成を遅らせる"""

    def __init__(self, resolve: Callable[[], DistanceProvider]) -> None:
        self._resolve = resolve

    def distance(self, origin: Coordinates, destination: Coordinates) -> float:
        return self._resolve().distance(origin, destination)


class ServiceContainer:
    """
    サービスコンテナ

    各Featureを統合し、依存性注入を行う。
    キャッシュと設定はプロセス全体で共有されるため、1プロセスに1つ作成する。

    Google Mapsのコラボレーターは最初に使われた時点で作成する。
    キャッシュ統計・クリアや設定変更はAPI Keyなしで動作する。
    """

    def __init__(
        self,
        settings: Settings,
        geocoder: Optional[Geocoder] = None,
        distance_provider: Optional[DistanceProvider] = None,
        persistence: Optional[CachePersistence] = None,
    ) -> None:
        """
        Args:
            settings: アプリケーション設定
            geocoder: ジオコーダー（Noneの場合はGoogle Maps + ViaCEP）
            distance_provider: 距離プロバイダー（Noneの場合はDistance Matrix）
            persistence: キャッシュ永続化（Noneの場合は設定から作成）
        """
        self.settings = settings

        self.http_client = HTTPClient(timeout=settings.viacep_timeout)
        self.cep_client = ViaCepClient(
            http_client=self.http_client, base_url=settings.viacep_base_url
        )

        # 外部APIを作る場合のみAPI Keyを解決する
        self._api_key: Optional[str] = None
        self._lock = threading.Lock()
        self.rate_limiter = RateLimiter(requests_per_second=settings.provider_rate_limit)
        self._geocoder = geocoder
        self._distance_provider = distance_provider

        self.persistence = persistence or self._create_persistence()
        self.coordinates_cache = create_coordinates_cache(
            persistence=self.persistence, ttl_days=settings.coordinates_cache_ttl_days
        )
        self.distance_cache = create_distance_cache(
            persistence=self.persistence, ttl_days=settings.distance_cache_ttl_days
        )

        self.orchestrator = DistanceOrchestrator(
            geocoder=geocoder or _DeferredGeocoder(lambda: self.geocoder),
            distance_provider=(
                distance_provider or _DeferredDistanceProvider(lambda: self.distance_provider)
            ),
            coordinates_cache=self.coordinates_cache,
            distance_cache=self.distance_cache,
            config=settings.distance_config(),
        )
        self.zone_resolver = DeliveryZoneResolver()
        self.fee_service = DeliveryFeeService(self.orchestrator, self.zone_resolver)

        logger.info("ServiceContainer initialized")

    @property
    def geocoder(self) -> Geocoder:
        """
        ジオコーダー（未作成ならGoogle Maps + ViaCEPで作成）

        Raises:
            ConfigurationError: API Keyが取得できない場合
        """
        with self._lock:
            if self._geocoder is None:
                self._geocoder = self._create_geocoder()
            return self._geocoder

    @property
    def distance_provider(self) -> DistanceProvider:
        """
        距離プロバイダー（未作成ならDistance Matrixで作成）

        Raises:
            ConfigurationError: API Keyが取得できない場合
        """
        with self._lock:
            if self._distance_provider is None:
                self._distance_provider = self._create_distance_provider()
            return self._distance_provider

    def close(self) -> None:
        """保留中のキャッシュ永続化を待ってリソースを解放"""
        self.coordinates_cache.close()
        self.distance_cache.close()
        self.http_client.close()

    def _get_api_key(self) -> str:
        """
        Google Maps API Keyを取得

        設定になければ、開発環境以外ではSecret Managerから取得する。

        Raises:
            ConfigurationError: API Keyが取得できない場合
        """
        if self._api_key:
            return self._api_key

        api_key = self.settings.google_maps_api_key

        if not api_key and not self.settings.is_development and self.settings.gcp_project_id:
            secret_manager = SecretManagerClient(self.settings.gcp_project_id)
            api_key = secret_manager.get_secret(self.settings.google_maps_api_key_secret_name)

        if not api_key:
            raise ConfigurationError("Google Maps API key is required for geocoding")

        self._api_key = api_key
        return api_key

    def _create_geocoder(self) -> Geocoder:
        google_geocoder = GoogleMapsGeocoder(
            api_key=self._get_api_key(),
            region=self.settings.geocoding_region,
            language=self.settings.geocoding_language,
            timeout=self.settings.provider_timeout,
            rate_limiter=self.rate_limiter,
        )
        return CepAwareGeocoder(google_geocoder, self.cep_client)

    def _create_distance_provider(self) -> DistanceProvider:
        return GoogleDistanceMatrixProvider(
            api_key=self._get_api_key(),
            mode=self.settings.distance_matrix_mode,
            region=self.settings.geocoding_region,
            language=self.settings.geocoding_language,
            timeout=self.settings.provider_timeout,
            rate_limiter=self.rate_limiter,
        )

    def _create_persistence(self) -> CachePersistence:
        backend = self.settings.cache_backend

        if backend == "file":
            return FileCachePersistence(self.settings.cache_directory)

        if backend == "firestore":
            try:
                firestore_client = FirestoreClient(
                    project_id=self.settings.gcp_project_id,
                    database_id=self.settings.firestore_database_id,
                )
            except Exception as e:
                # 永続化はベストエフォート: 使えなければメモリのみで起動する
                logger.warning(f"Firestore cache persistence unavailable, using memory only: {e}")
                return NullPersistence()
            return FirestoreCachePersistence(
                firestore_client, collection=self.settings.firestore_cache_collection
            )

        return NullPersistence()
