"""距離計算機能のドメインモデル"""
from dataclasses import asdict, dataclass, fields, replace
from enum import Enum
from typing import Any

from ....shared.exceptions.errors import ConfigurationError


class AlgorithmName(str, Enum):
    """距離アルゴリズム名"""

    APPROXIMATE = "approximate"  # 正距円筒近似
    HAVERSINE = "haversine"  # ハバーサイン
    VINCENTY = "vincenty"  # Vincenty（WGS-84）


class DistanceSource(str, Enum):
    """最終的な距離の出所"""

    CACHE = "cache"  # 距離キャッシュ
    LOCAL = "local"  # ローカルアルゴリズム
    PROVIDER = "provider"  # 外部プロバイダー
    LOCAL_FALLBACK = "local_fallback"  # プロバイダー失敗時のローカル値


@dataclass(frozen=True)
class DistanceConfig:
    """
    距離計算ポリシー

    イミュータブルなスナップショット。実行時の変更は
    DistanceOrchestrator.update_config() で新しいスナップショットに差し替える。
    """

    # ローカルアルゴリズムで事前計算するか
    use_local_algorithms: bool = True
    # この距離（km）以下ならローカル計算のみを信頼する（確認無効時）
    max_distance_for_local_only_km: float = 5.0
    # 外部APIでローカル計算を確認するか
    use_google_for_confirmation: bool = True
    # ローカルと外部の差がこの値（km）以下ならローカル値を採用
    max_difference_tolerance_km: float = 0.5

    def __post_init__(self) -> None:
        if self.max_distance_for_local_only_km < 0:
            raise ConfigurationError(
                f"max_distance_for_local_only_km must be >= 0: {self.max_distance_for_local_only_km}"
            )
        if self.max_difference_tolerance_km < 0:
            raise ConfigurationError(
                f"max_difference_tolerance_km must be >= 0: {self.max_difference_tolerance_km}"
            )

    def with_changes(self, **changes: Any) -> "DistanceConfig":
        """
        一部のフィールドを変更した新しい設定を返す

        Raises:
            ConfigurationError: 未知のフィールド、または不正な値の場合
        """
        known = {f.name for f in fields(self)}
        unknown = set(changes) - known
        if unknown:
            raise ConfigurationError(f"Unknown distance config fields: {sorted(unknown)}")
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class DistanceResult:
    """距離計算の結果（値と出所）"""

    distance_km: float
    source: DistanceSource
