"""日時関連ユーティリティ"""

from datetime import datetime, timezone
from typing import Optional

import pytz

# ブラジル時間（サンパウロ）のタイムゾーン
BRT = pytz.timezone("America/Sao_Paulo")


def now_utc() -> datetime:
    """現在のUTC時間を取得"""
    return datetime.now(timezone.utc)


def epoch_to_brt(epoch_seconds: Optional[float]) -> Optional[datetime]:
    """
    UNIXエポック秒をブラジル時間のdatetimeに変換

    Args:
        epoch_seconds: エポック秒（Noneの場合はNoneを返す）

    Returns:
        ブラジル時間のdatetime
    """
    if epoch_seconds is None:
        return None
    return datetime.fromtimestamp(epoch_seconds, tz=timezone.utc).astimezone(BRT)


def format_duration(seconds: float) -> str:
    """
    秒数を読みやすい形式に変換

    Args:
        seconds: 秒数

    Returns:
        "7d 3h 20m" のような文字列
    """
    days = int(seconds // 86400)
    hours = int((seconds % 86400) // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)

    parts = []
    if days > 0:
        parts.append(f"{days}d")
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")
    if secs > 0 or not parts:
        parts.append(f"{secs}s")

    return " ".join(parts)
