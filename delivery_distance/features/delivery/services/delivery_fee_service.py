"""配送料見積もりサービス"""

from typing import Sequence

from .zone_resolver import DeliveryZoneResolver
from ..domain.models import DeliveryQuote, DeliveryZone
from ...distance.services.distance_orchestrator import DistanceOrchestrator
from ...geocoding.domain.models import AddressInput
from ....shared.logging.config import get_logger

logger = get_logger(__name__)


class DeliveryFeeService:
    """距離の解決とゾーンの解決を組み合わせて見積もりを返す"""

    def __init__(
        self,
        orchestrator: DistanceOrchestrator,
        resolver: DeliveryZoneResolver,
    ) -> None:
        """
        Args:
            orchestrator: 距離オーケストレーター
            resolver: 配送ゾーンリゾルバー
        """
        self.orchestrator = orchestrator
        self.resolver = resolver

    def quote(
        self,
        origin: AddressInput,
        destination: AddressInput,
        zones: Sequence[DeliveryZone],
    ) -> DeliveryQuote:
        """
        配送見積もりを作成

        Args:
            origin: 出発地（通常はレストラン）
            destination: 配送先
            zones: 配送ゾーン（優先順）

        Returns:
            DeliveryQuote: 見積もり（範囲外の場合はdeliverable=False）

        Raises:
            InvalidParametersError: 入力が不正な場合
            AddressNotFoundError: 住所をジオコーディングできない場合
            ProviderError: ジオコーダーが失敗した場合
        """
        distance_km = self.orchestrator.resolve_distance(origin, destination)
        quote = self.resolver.resolve(distance_km, zones)

        logger.info(
            f"Delivery quote {origin} -> {destination}: distance={distance_km} km, "
            f"deliverable={quote.deliverable}, fee={quote.fee}"
        )
        return quote
