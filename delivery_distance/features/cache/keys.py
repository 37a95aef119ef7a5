"""キャッシュキーの生成"""

from ..geocoding.domain.models import AddressInput, TextAddress

# 正規化では生成されない区切り文字
PAIR_SEPARATOR = "|"


def address_key(address: TextAddress) -> str:
    """座標キャッシュのキー（正規化された住所）"""
    return address.cache_key()


def distance_pair_key(pair: tuple[AddressInput, AddressInput]) -> str:
    """
    距離キャッシュのキー（出発地|目的地）

    方向を区別する: A→BとB→Aは別のキーになる。
    """
    origin, destination = pair
    return f"{origin.cache_key()}{PAIR_SEPARATOR}{destination.cache_key()}"
