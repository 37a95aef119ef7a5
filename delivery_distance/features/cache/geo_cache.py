"""TTL付きキャッシュ（座標・距離）"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar

from .keys import address_key, distance_pair_key
from .persistence import CachePersistence, NullPersistence, Snapshot
from ..geocoding.domain.models import AddressInput, Coordinates, TextAddress
from ...shared.exceptions.errors import InvalidParametersError
from ...shared.logging.config import get_logger
from ...shared.utils.datetime_utils import epoch_to_brt, format_duration

logger = get_logger(__name__)

K = TypeVar("K")
V = TypeVar("V")

DAY_SECONDS = 24 * 60 * 60
COORDINATES_TTL_DAYS = 30
DISTANCE_TTL_DAYS = 7


def _identity(value: Any) -> Any:
    return value


@dataclass
class CacheEntry(Generic[V]):
    """キャッシュエントリ（作成したキャッシュだけが所有する）"""

    value: V
    stored_at: float  # 保存時刻（エポック秒）
    expires_at: float  # 有効期限（エポック秒）

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class GeoCache(Generic[K, V]):
    """
    TTL付きキャッシュ

    外部API呼び出しを減らすため、ジオコーディング結果や距離を保持する。

    - キーの導出はkey_funcで差し替え可能
    - 期限切れのエントリはget時に遅延削除する
    - 永続化はバックグラウンドスレッドでベストエフォートに行い、
      失敗してもget/setの呼び出し元には伝播しない
    - 同じキーへの同時書き込みは後勝ち
    """

    def __init__(
        self,
        name: str,
        default_ttl_seconds: float,
        key_func: Callable[[K], str],
        encode: Callable[[V], Any] = _identity,
        decode: Callable[[Any], V] = _identity,
        persistence: Optional[CachePersistence] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Args:
            name: キャッシュ名（ログと永続化先の識別に使用）
            default_ttl_seconds: デフォルトのTTL（秒）
            key_func: 対象からキー文字列を導出する関数
            encode: 値を永続化用の形式に変換する関数
            decode: 永続化された値を復元する関数
            persistence: 永続化バックエンド（Noneの場合はメモリのみ）
            clock: 現在時刻（エポック秒）を返す関数
        """
        if default_ttl_seconds <= 0:
            raise InvalidParametersError(f"default_ttl_seconds must be > 0: {default_ttl_seconds}")

        self.name = name
        self.default_ttl_seconds = default_ttl_seconds
        self.key_func = key_func
        self.encode = encode
        self.decode = decode
        self.persistence = persistence or NullPersistence()
        self.clock = clock

        self._entries: dict[str, CacheEntry[V]] = {}
        self._lock = threading.Lock()
        self._executor: Optional[ThreadPoolExecutor] = None
        if self.persistence.enabled:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"{name}-cache-flush")

        self.hit_count = 0
        self.miss_count = 0

        self._load()

        logger.info(
            f"GeoCache '{name}' initialized: ttl={format_duration(default_ttl_seconds)}, "
            f"entries={len(self._entries)}, persistence={type(self.persistence).__name__}"
        )

    def get(self, subject: K) -> Optional[V]:
        """
        有効なエントリの値を取得

        Returns:
            Optional[V]: 値（存在しない・期限切れの場合はNone）
        """
        key = self.key_func(subject)
        now = self.clock()

        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry.is_expired(now):
                del self._entries[key]
                entry = None

            if entry is None:
                self.miss_count += 1
            else:
                self.hit_count += 1

        if entry is None:
            logger.debug(f"Cache MISS [{self.name}]: {key}")
            return None

        logger.debug(f"Cache HIT [{self.name}]: {key}")
        return entry.value

    def set(self, subject: K, value: V, ttl_seconds: Optional[float] = None) -> None:
        """
        値を保存（上書き、有効期限は現在時刻から再計算）

        Args:
            subject: キャッシュ対象
            value: 値
            ttl_seconds: TTL（秒、Noneの場合はデフォルト）
        """
        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds
        if ttl <= 0:
            raise InvalidParametersError(f"ttl_seconds must be > 0: {ttl}")

        key = self.key_func(subject)
        now = self.clock()

        with self._lock:
            # 書き込みのたびに期限切れを掃除する（永続化されるスナップショットにも残さない）
            purged = self._remove_expired(now)
            self._entries[key] = CacheEntry(value=value, stored_at=now, expires_at=now + ttl)

        if purged:
            logger.debug(f"Cache '{self.name}' purged {purged} expired entries")
        logger.debug(f"Cache SET [{self.name}]: {key}")
        self._schedule_flush()

    def clear(self) -> None:
        """キャッシュを空にする"""
        with self._lock:
            cache_size = len(self._entries)
            self._entries.clear()
            self.hit_count = 0
            self.miss_count = 0

        logger.info(f"Cache '{self.name}' cleared: {cache_size} entries removed")
        self._schedule_flush()

    def size(self) -> int:
        """エントリ数（未削除の期限切れエントリを含む場合がある）"""
        with self._lock:
            return len(self._entries)

    def purge_expired(self) -> int:
        """
        期限切れのエントリを削除

        Returns:
            int: 削除したエントリ数
        """
        now = self.clock()
        with self._lock:
            purged = self._remove_expired(now)

        if purged:
            logger.debug(f"Cache '{self.name}' purged {purged} expired entries")
            self._schedule_flush()

        return purged

    def get_cache_stats(self) -> dict[str, Any]:
        """
        キャッシュ統計を取得

        Returns:
            dict[str, Any]: サイズ、ヒット数、ミス数、ヒット率、TTLなど
        """
        with self._lock:
            size = len(self._entries)
            hit_count = self.hit_count
            miss_count = self.miss_count
            oldest = min((entry.stored_at for entry in self._entries.values()), default=None)

        total_requests = hit_count + miss_count
        hit_rate = (hit_count / total_requests * 100) if total_requests > 0 else 0.0
        oldest_at = epoch_to_brt(oldest)

        return {
            "name": self.name,
            "cache_size": size,
            "hit_count": hit_count,
            "miss_count": miss_count,
            "total_requests": total_requests,
            "hit_rate_percent": round(hit_rate, 2),
            "ttl": format_duration(self.default_ttl_seconds),
            "oldest_entry_at": oldest_at.isoformat() if oldest_at else None,
        }

    def close(self) -> None:
        """保留中の永続化を待ってからスレッドを停止"""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def _remove_expired(self, now: float) -> int:
        # ロック取得済みで呼ぶこと
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def _snapshot(self) -> Snapshot:
        with self._lock:
            return {
                key: {
                    "value": self.encode(entry.value),
                    "stored_at": entry.stored_at,
                    "expires_at": entry.expires_at,
                }
                for key, entry in self._entries.items()
            }

    def _schedule_flush(self) -> None:
        if self._executor is None:
            return

        snapshot = self._snapshot()
        try:
            self._executor.submit(self._flush, snapshot)
        except RuntimeError as e:
            # close()後のset
            logger.warning(f"Cache '{self.name}' flush skipped: {e}")

    def _flush(self, snapshot: Snapshot) -> None:
        try:
            self.persistence.save(self.name, snapshot)
            logger.debug(f"Cache '{self.name}' persisted: {len(snapshot)} entries")
        except Exception as e:
            logger.warning(f"Failed to persist cache '{self.name}': {e}")

    def _load(self) -> None:
        """永続化されたエントリを読み込む（失敗時は空のキャッシュとして扱う）"""
        try:
            snapshot = self.persistence.load(self.name)
            now = self.clock()
            entries: dict[str, CacheEntry[V]] = {}

            for key, raw in snapshot.items():
                entry = CacheEntry(
                    value=self.decode(raw["value"]),
                    stored_at=float(raw["stored_at"]),
                    expires_at=float(raw["expires_at"]),
                )
                if not entry.is_expired(now):
                    entries[key] = entry

        except Exception as e:
            logger.warning(f"Failed to load cache '{self.name}', starting empty: {e}")
            return

        with self._lock:
            self._entries = entries

        dropped = len(snapshot) - len(entries)
        if dropped:
            logger.info(f"Cache '{self.name}' dropped {dropped} expired entries on load")


def create_coordinates_cache(
    persistence: Optional[CachePersistence] = None,
    ttl_days: float = COORDINATES_TTL_DAYS,
    clock: Callable[[], float] = time.time,
) -> GeoCache[TextAddress, Coordinates]:
    """座標キャッシュ（正規化住所 → 座標、デフォルト30日）を作成"""
    return GeoCache(
        name="coordinates",
        default_ttl_seconds=ttl_days * DAY_SECONDS,
        key_func=address_key,
        encode=Coordinates.to_dict,
        decode=Coordinates.from_dict,
        persistence=persistence,
        clock=clock,
    )


def create_distance_cache(
    persistence: Optional[CachePersistence] = None,
    ttl_days: float = DISTANCE_TTL_DAYS,
    clock: Callable[[], float] = time.time,
) -> GeoCache[tuple[AddressInput, AddressInput], float]:
    """距離キャッシュ（出発地|目的地 → km、デフォルト7日）を作成"""
    return GeoCache(
        name="distance",
        default_ttl_seconds=ttl_days * DAY_SECONDS,
        key_func=distance_pair_key,
        decode=float,
        persistence=persistence,
        clock=clock,
    )
