"""配送機能のドメインモデル"""
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from ....shared.exceptions.errors import InvalidParametersError


@dataclass(frozen=True)
class DeliveryZone:
    """
    配送ゾーン（距離帯ごとの配送料と目安時間）

    距離帯は両端を含む [min_distance_km, max_distance_km]。
    レストランの設定が所有し、解決のたびに読み取り専用で渡される。
    """

    id: str
    min_distance_km: float
    max_distance_km: float
    fee_amount: Decimal  # 配送料
    estimated_time_label: str  # 目安時間（例: "30-45 min"）
    active: bool = True

    def __post_init__(self) -> None:
        if self.min_distance_km < 0 or self.max_distance_km < self.min_distance_km:
            raise InvalidParametersError(
                f"Invalid distance band for zone {self.id}: "
                f"[{self.min_distance_km}, {self.max_distance_km}]"
            )

    def contains(self, distance_km: float) -> bool:
        """距離が帯の中（両端を含む）かどうか"""
        return self.min_distance_km <= distance_km <= self.max_distance_km

    def overlaps(self, other: "DeliveryZone") -> bool:
        return self.min_distance_km <= other.max_distance_km and other.min_distance_km <= self.max_distance_km

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DeliveryZone":
        """
        辞書（YAML/JSON）から作成

        キーは min_distance_km / max_distance_km / fee_amount / estimated_time_label の他、
        元のレストラン設定の minDistance / maxDistance / fee / estimatedTime も受け付ける。
        """
        try:
            return cls(
                id=str(data["id"]),
                min_distance_km=float(data.get("min_distance_km", data.get("minDistance"))),
                max_distance_km=float(data.get("max_distance_km", data.get("maxDistance"))),
                fee_amount=Decimal(str(data.get("fee_amount", data.get("fee")))),
                estimated_time_label=str(
                    data.get("estimated_time_label", data.get("estimatedTime", ""))
                ),
                active=bool(data.get("active", True)),
            )
        except (KeyError, TypeError, ValueError, InvalidOperation) as e:
            raise InvalidParametersError(f"Invalid delivery zone: {data}: {e}") from e


@dataclass(frozen=True)
class DeliveryQuote:
    """
    配送見積もり

    deliverable=Falseは通常の結果であり、エラーではない。
    """

    deliverable: bool
    fee: Optional[Decimal] = None
    estimated_time: Optional[str] = None
    zone_id: Optional[str] = None
    distance_km: Optional[float] = None

    @classmethod
    def not_deliverable(cls, distance_km: Optional[float] = None) -> "DeliveryQuote":
        return cls(deliverable=False, distance_km=distance_km)

    def to_dict(self) -> dict[str, Any]:
        return {
            "deliverable": self.deliverable,
            "fee": str(self.fee) if self.fee is not None else None,
            "estimated_time": self.estimated_time,
            "zone_id": self.zone_id,
            "distance_km": self.distance_km,
        }
