"""カスタム例外定義"""
from typing import Optional


class DeliveryDistanceError(Exception):
    """配送距離エンジン基底例外"""

    pass


class InvalidParametersError(DeliveryDistanceError):
    """入力パラメータ不正（呼び出し側のバグ、リトライしない）"""

    pass


class InvalidCepError(InvalidParametersError):
    """CEP（郵便番号）形式エラー"""

    def __init__(self, cep: str) -> None:
        super().__init__(f"Invalid CEP: {cep}")
        self.cep = cep


class AddressNotFoundError(DeliveryDistanceError):
    """住所が見つからない（ジオコーディング結果が0件）"""

    def __init__(self, address: str) -> None:
        super().__init__(f"Address not found: {address}")
        self.address = address


class ProviderError(DeliveryDistanceError):
    """
    外部プロバイダーのエラー

    通信失敗、クォータ超過、不正なレスポンスなど。
    上流のステータス（例: "OVER_QUERY_LIMIT"）を保持する。
    """

    def __init__(self, message: str, status: Optional[str] = None) -> None:
        super().__init__(message)
        self.status = status


class DistanceCalculationUnavailableError(DeliveryDistanceError):
    """距離アルゴリズムがこの座標ペアで利用できない（Vincentyの非収束）"""

    pass


class HTTPError(DeliveryDistanceError):
    """HTTP関連のエラー"""

    pass


class StorageError(DeliveryDistanceError):
    """ストレージ関連のエラー"""

    pass


class ConfigurationError(DeliveryDistanceError):
    """設定エラー"""

    pass
