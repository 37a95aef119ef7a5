"""レート制限ユーティリティ（有料APIの呼び出し間隔を制御）"""

import threading
import time
from typing import Callable, Optional

from ..logging.config import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """
    レート制限を実装するクラス

    外部API（Geocoding / Distance Matrix）のクォータを守るため、
    呼び出し間に最小間隔を設ける。複数スレッドから共有できる。
    """

    def __init__(
        self,
        requests_per_second: Optional[float] = None,
        min_interval: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Args:
            requests_per_second: 秒あたりの最大リクエスト数（設定時はmin_intervalを上書き）
            min_interval: リクエスト間の最小間隔（秒）
            clock: 現在時刻を返す関数（テスト用に差し替え可能）
            sleep: スリープ関数（テスト用に差し替え可能）
        """
        if requests_per_second:
            self.min_interval = 1.0 / requests_per_second
        else:
            self.min_interval = min_interval

        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self.last_request_time: Optional[float] = None

        logger.debug(f"RateLimiter initialized: min_interval={self.min_interval:.3f}s")

    def wait(self) -> None:
        """
        必要な時間だけスリープ

        前回のリクエストからの経過時間がmin_interval未満の場合のみ待機する
        """
        with self._lock:
            current_time = self._clock()

            if self.last_request_time is not None:
                elapsed = current_time - self.last_request_time
                if elapsed < self.min_interval:
                    sleep_duration = self.min_interval - elapsed
                    logger.debug(f"Rate limiting: sleeping for {sleep_duration:.3f}s")
                    self._sleep(sleep_duration)

            self.last_request_time = self._clock()

    def reset(self) -> None:
        """レート制限をリセット"""
        with self._lock:
            self.last_request_time = None
        logger.debug("RateLimiter reset")
