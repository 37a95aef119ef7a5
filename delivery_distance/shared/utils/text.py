"""テキスト処理ユーティリティ（住所キー・CEP）"""

import re

# 文字・数字・アンダースコア・空白・カンマ・ハイフン以外を除去
_ADDRESS_KEY_STRIP = re.compile(r"[^\w\s,-]")
_WHITESPACE = re.compile(r"\s+")
_NON_DIGITS = re.compile(r"\D")
_CEP_PATTERN = re.compile(r"^\d{8}$")
_BARE_CEP = re.compile(r"^\s*\d{5}-?\d{3}\s*$")


def normalize_address_key(address: str) -> str:
    """
    住所文字列をキャッシュキーに正規化

    - 小文字化
    - 記号を除去（文字・数字・カンマ・ハイフンは残す）
    - 連続する空白を1つに、前後の空白を除去

    大文字小文字・空白・記号だけが異なる住所は同じキーになる。
    記号の除去を空白の圧縮より先に行うため、冪等になる。
    """
    normalized = address.lower()
    normalized = _ADDRESS_KEY_STRIP.sub("", normalized)
    normalized = _WHITESPACE.sub(" ", normalized)
    return normalized.strip()


def clean_cep(cep: str) -> str:
    """CEPから数字以外を除去"""
    return _NON_DIGITS.sub("", cep)


def is_valid_cep_format(cep: str) -> bool:
    """CEPが8桁の数字かどうか"""
    return bool(_CEP_PATTERN.match(clean_cep(cep)))


def looks_like_bare_cep(text: str) -> bool:
    """
    テキストがCEPのみ（例: "13053-143" / "13053143"）かどうか

    住所の一部にCEPが含まれるだけの場合はFalse。
    """
    return bool(_BARE_CEP.match(text))


def format_cep(cep: str) -> str:
    """
    CEPをハイフン付きに整形（例: 12345-678）

    8桁でない場合は入力をそのまま返す。
    """
    cleaned = clean_cep(cep)
    if len(cleaned) != 8:
        return cep
    return f"{cleaned[:5]}-{cleaned[5:]}"
