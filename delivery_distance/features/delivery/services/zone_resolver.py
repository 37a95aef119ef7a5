"""配送ゾーンリゾルバー"""

from typing import Sequence

from ..domain.models import DeliveryQuote, DeliveryZone
from ....shared.logging.config import get_logger

logger = get_logger(__name__)


class DeliveryZoneResolver:
    """
    距離とゾーン一覧から配送可否と配送料を決める

    有効なゾーンのうち、渡された順で最初に距離帯に入るものを採用する。
    最安・最狭のゾーンは探さない（順序で例外・上書きを表現できるようにする）。
    """

    def resolve(self, distance_km: float, zones: Sequence[DeliveryZone]) -> DeliveryQuote:
        """
        Args:
            distance_km: 距離（km）
            zones: 配送ゾーン（優先順）

        Returns:
            DeliveryQuote: 見積もり（一致なしの場合はdeliverable=False）
        """
        for zone in zones:
            if zone.active and zone.contains(distance_km):
                logger.debug(f"Distance {distance_km} km matched zone {zone.id}")
                return DeliveryQuote(
                    deliverable=True,
                    fee=zone.fee_amount,
                    estimated_time=zone.estimated_time_label,
                    zone_id=zone.id,
                    distance_km=distance_km,
                )

        logger.info(f"No active delivery zone covers {distance_km} km")
        return DeliveryQuote.not_deliverable(distance_km)

    def find_matching_zones(
        self, distance_km: float, zones: Sequence[DeliveryZone]
    ) -> list[DeliveryZone]:
        """距離を含む有効なゾーンをすべて返す（渡された順、診断用）"""
        return [zone for zone in zones if zone.active and zone.contains(distance_km)]

    def find_zone_overlaps(
        self, zones: Sequence[DeliveryZone]
    ) -> list[tuple[DeliveryZone, DeliveryZone]]:
        """
        距離帯が重なる有効なゾーンの組を返す

        重なる区間では先に並んだゾーンが採用される。
        """
        active = [zone for zone in zones if zone.active]
        return [
            (first, second)
            for i, first in enumerate(active)
            for second in active[i + 1:]
            if first.overlaps(second)
        ]
