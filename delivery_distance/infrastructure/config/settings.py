"""アプリケーション設定（Pydantic Settings）"""
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ...features.distance.domain.models import DistanceConfig


class Settings(BaseSettings):
    """アプリケーション設定"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Project
    project_name: str = Field(
        default="delivery-distance",
        description="プロジェクト名",
    )
    environment: str = Field(
        default="development",
        description="環境 (development, staging, production)",
    )

    # GCP
    gcp_project_id: Optional[str] = Field(
        default=None,
        description="GCPプロジェクトID（Secret Manager / Firestore / Cloud Logging用）",
    )

    # Google Maps
    google_maps_api_key: Optional[str] = Field(
        default=None,
        description="Google Maps API Key（ローカル開発用）",
    )
    google_maps_api_key_secret_name: str = Field(
        default="google-maps-api-key",
        description="Google Maps API KeyのSecret Manager名",
    )
    geocoding_region: str = Field(
        default="br",
        description="ジオコーディングの地域バイアス",
    )
    geocoding_language: str = Field(
        default="pt-BR",
        description="ジオコーディング結果の言語",
    )
    distance_matrix_mode: str = Field(
        default="driving",
        description="Distance Matrixの移動手段",
    )
    provider_timeout: float = Field(
        default=10.0,
        gt=0,
        description="外部APIのタイムアウト（秒）",
    )
    provider_rate_limit: float = Field(
        default=10.0,
        gt=0,
        description="外部APIのレート制限（リクエスト/秒）",
    )

    # Cache
    cache_backend: Literal["memory", "file", "firestore"] = Field(
        default="memory",
        description="キャッシュの永続化先 (memory, file, firestore)",
    )
    cache_directory: str = Field(
        default=".cache/delivery_distance",
        description="cache_backend=file の保存先ディレクトリ",
    )
    coordinates_cache_ttl_days: float = Field(
        default=30,
        gt=0,
        description="座標キャッシュのTTL（日）",
    )
    distance_cache_ttl_days: float = Field(
        default=7,
        gt=0,
        description="距離キャッシュのTTL（日）",
    )
    firestore_database_id: str = Field(
        default="(default)",
        description="FirestoreデータベースID",
    )
    firestore_cache_collection: str = Field(
        default="geo_cache",
        description="キャッシュを保存するFirestoreコレクション名",
    )

    # Distance policy
    distance_use_local_algorithms: bool = Field(
        default=True,
        description="ローカルアルゴリズムで事前計算するか",
    )
    distance_max_local_only_km: float = Field(
        default=5.0,
        ge=0,
        description="ローカル計算のみを信頼する最大距離（km）",
    )
    distance_use_google_for_confirmation: bool = Field(
        default=True,
        description="外部APIでローカル計算を確認するか",
    )
    distance_max_difference_tolerance_km: float = Field(
        default=0.5,
        ge=0,
        description="ローカルと外部の許容差（km）",
    )

    # ViaCEP
    viacep_base_url: str = Field(
        default="https://viacep.com.br/ws",
        description="ViaCEPのベースURL",
    )
    viacep_timeout: float = Field(
        default=5.0,
        gt=0,
        description="ViaCEPのタイムアウト（秒）",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="ログレベル (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    gcp_logging_enabled: bool = Field(
        default=False,
        description="Cloud Loggingを有効にするか",
    )

    # Cloud Run
    port: int = Field(
        default=8080,
        description="HTTPサーバーのポート番号",
    )

    def distance_config(self) -> DistanceConfig:
        """起動時の距離計算ポリシーを作成"""
        return DistanceConfig(
            use_local_algorithms=self.distance_use_local_algorithms,
            max_distance_for_local_only_km=self.distance_max_local_only_km,
            use_google_for_confirmation=self.distance_use_google_for_confirmation,
            max_difference_tolerance_km=self.distance_max_difference_tolerance_km,
        )

    @property
    def is_production(self) -> bool:
        """本番環境かどうか"""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """開発環境かどうか"""
        return self.environment.lower() == "development"
