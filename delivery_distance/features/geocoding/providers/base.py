"""ジオコーダーの基底クラス"""

from abc import ABC, abstractmethod

from ..domain.models import Coordinates


class Geocoder(ABC):
    """住所文字列を座標に変換するコラボレーターの抽象基底クラス"""

    @abstractmethod
    def geocode(self, address: str) -> Coordinates:
        """
        住所をジオコーディング

        Args:
            address: 住所文字列

        Returns:
            Coordinates: 座標

        Raises:
            AddressNotFoundError: 結果が0件の場合
            ProviderError: 通信失敗・クォータ超過・認証エラーの場合
        """
        pass
