"""ジオコーディング機能のドメインモデル"""
import math
from dataclasses import dataclass
from typing import Optional, Union

from ....shared.exceptions.errors import InvalidParametersError
from ....shared.utils.text import normalize_address_key


@dataclass(frozen=True)
class Coordinates:
    """地理座標（WGS-84、度）"""

    latitude: float  # 緯度
    longitude: float  # 経度

    def __post_init__(self) -> None:
        for name, value, limit in (
            ("latitude", self.latitude, 90.0),
            ("longitude", self.longitude, 180.0),
        ):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise InvalidParametersError(f"{name} must be a number, got {value!r}")
            if not math.isfinite(value) or abs(value) > limit:
                raise InvalidParametersError(f"{name} out of range: {value}")

    def __repr__(self) -> str:
        return f"Coordinates(lat={self.latitude}, lng={self.longitude})"

    def to_tuple(self) -> tuple[float, float]:
        """(緯度, 経度)のタプルとして返す"""
        return (self.latitude, self.longitude)

    def to_dict(self) -> dict[str, float]:
        return {"lat": self.latitude, "lng": self.longitude}

    @classmethod
    def from_dict(cls, data: dict) -> "Coordinates":
        return cls(latitude=data["lat"], longitude=data["lng"])


@dataclass(frozen=True)
class TextAddress:
    """自由記述の住所（またはCEP）"""

    text: str

    def __post_init__(self) -> None:
        if not isinstance(self.text, str) or not self.text.strip():
            raise InvalidParametersError("Address text is required")

    def cache_key(self) -> str:
        return normalize_address_key(self.text)

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class CoordinateAddress:
    """座標で指定された地点（ジオコーディング不要）"""

    coordinates: Coordinates

    def cache_key(self) -> str:
        return f"{self.coordinates.latitude},{self.coordinates.longitude}"

    def __str__(self) -> str:
        return self.cache_key()


# 住所入力: テキストか座標のどちらか
AddressInput = Union[TextAddress, CoordinateAddress]


def address_from_text(text: str) -> TextAddress:
    return TextAddress(text)


def address_from_coordinates(latitude: float, longitude: float) -> CoordinateAddress:
    return CoordinateAddress(Coordinates(latitude, longitude))


@dataclass
class CepAddress:
    """ViaCEPから取得した住所"""

    cep: str  # CEP（ハイフン付き）
    street: str  # 通り（logradouro）
    neighborhood: str  # 地区（bairro）
    city: str  # 市（localidade）
    state: str  # 州（UF）
    ibge_code: Optional[str] = None
    ddd: Optional[str] = None

    def to_geocoding_query(self) -> str:
        """ジオコーディング用の住所文字列を組み立てる"""
        parts = [self.street, self.neighborhood, f"{self.city} - {self.state}", self.cep, "Brasil"]
        return ", ".join(part for part in parts if part)
