"""ViaCEP（ブラジル郵便番号API）クライアント"""

from typing import Optional

from ..domain.models import CepAddress
from ....shared.exceptions.errors import (
    AddressNotFoundError,
    HTTPError,
    InvalidCepError,
    ProviderError,
)
from ....shared.http.client import HTTPClient
from ....shared.logging.config import get_logger
from ....shared.utils.text import clean_cep, format_cep, is_valid_cep_format

logger = get_logger(__name__)


class ViaCepClient:
    """ViaCEP APIでCEPから住所を取得するクライアント"""

    def __init__(
        self,
        http_client: Optional[HTTPClient] = None,
        base_url: str = "https://viacep.com.br/ws",
    ) -> None:
        """
        Args:
            http_client: HTTPクライアント（Noneの場合は新規作成）
            base_url: ViaCEPのベースURL
        """
        self.http_client = http_client or HTTPClient()
        self.base_url = base_url.rstrip("/")

        logger.info("ViaCepClient initialized")

    def fetch_address(self, cep: str) -> CepAddress:
        """
        CEPから住所を取得

        Args:
            cep: CEP（ハイフンの有無は問わない）

        Returns:
            CepAddress: 住所

        Raises:
            InvalidCepError: 8桁の数字でない場合
            AddressNotFoundError: ViaCEPに存在しないCEPの場合
            ProviderError: 通信失敗、または不正なレスポンスの場合
        """
        cleaned = clean_cep(cep)
        if not is_valid_cep_format(cleaned):
            raise InvalidCepError(cep)

        url = f"{self.base_url}/{cleaned}/json/"

        try:
            data = self.http_client.get_json(url)
        except HTTPError as e:
            raise ProviderError(f"ViaCEP request failed for {cleaned}: {e}", status="HTTP_ERROR") from e

        if not isinstance(data, dict):
            raise ProviderError(f"Unexpected ViaCEP response for {cleaned}", status="INVALID_RESPONSE")

        # ViaCEPは存在しないCEPに {"erro": true} を返す
        if data.get("erro"):
            logger.warning(f"CEP not found: {cleaned}")
            raise AddressNotFoundError(cep)

        address = CepAddress(
            cep=format_cep(data.get("cep") or cleaned),
            street=data.get("logradouro") or "",
            neighborhood=data.get("bairro") or "",
            city=data.get("localidade") or "",
            state=data.get("uf") or "",
            ibge_code=data.get("ibge"),
            ddd=data.get("ddd"),
        )

        logger.debug(f"CEP {cleaned} -> {address.city}/{address.state}")
        return address

    def validate_cep_region(self, cep: str, allowed_states: list[str]) -> bool:
        """
        CEPが許可された州（UF）内にあるかを確認

        Args:
            cep: CEP
            allowed_states: 許可する州コードのリスト（例: ["SP", "RJ"]）

        Returns:
            bool: 許可された州内ならTrue

        Raises:
            InvalidCepError / AddressNotFoundError / ProviderError: fetch_addressと同じ
        """
        address = self.fetch_address(cep)
        return self.is_address_allowed(address, allowed_states)

    @staticmethod
    def is_address_allowed(address: CepAddress, allowed_states: list[str]) -> bool:
        """取得済みの住所が許可された州（UF）内にあるかを確認"""
        allowed = {state.upper() for state in allowed_states}
        is_allowed = address.state.upper() in allowed

        if not is_allowed:
            logger.info(f"CEP {address.cep} outside allowed states {sorted(allowed)}: {address.state}")

        return is_allowed
