"""CEP対応ジオコーダー"""

from ..domain.models import Coordinates
from .base import Geocoder
from .viacep_client import ViaCepClient
from ....shared.logging.config import get_logger
from ....shared.utils.text import looks_like_bare_cep

logger = get_logger(__name__)


class CepAwareGeocoder(Geocoder):
    """
    CEP対応ジオコーダー

    入力がCEPのみの場合はViaCEPで完全な住所に展開してから
    ベースのジオコーダーに渡す。それ以外はそのまま委譲する。
    """

    def __init__(self, geocoder: Geocoder, cep_client: ViaCepClient) -> None:
        """
        Args:
            geocoder: ベースとなるジオコーダー
            cep_client: ViaCEPクライアント
        """
        self.geocoder = geocoder
        self.cep_client = cep_client

        logger.info("CepAwareGeocoder initialized")

    def geocode(self, address: str) -> Coordinates:
        if not looks_like_bare_cep(address):
            return self.geocoder.geocode(address)

        cep_address = self.cep_client.fetch_address(address)
        query = cep_address.to_geocoding_query()
        logger.debug(f"Expanded CEP {address.strip()} -> {query}")

        return self.geocoder.geocode(query)
