"""距離プロバイダーの基底クラス"""

from abc import ABC, abstractmethod

from ...geocoding.domain.models import Coordinates


class DistanceProvider(ABC):
    """外部の距離API（有料・レート制限あり・失敗し得る）の抽象基底クラス"""

    @abstractmethod
    def distance(self, origin: Coordinates, destination: Coordinates) -> float:
        """
        2点間の距離を取得

        Args:
            origin: 出発地の座標
            destination: 目的地の座標

        Returns:
            float: 距離（km、小数点以下2桁）

        Raises:
            AddressNotFoundError: 経路が見つからない場合
            ProviderError: 通信失敗・クォータ超過・不正なレスポンスの場合
        """
        pass
