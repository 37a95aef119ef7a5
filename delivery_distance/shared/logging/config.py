"""ロギング設定"""
import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Cloud Loggingのログ名
CLOUD_LOG_NAME = "delivery-distance"

# 外部APIクライアントのログはWARNING以上のみ
QUIET_LOGGERS = ("urllib3", "google", "googlemaps")

# ロガー設定済みフラグ
_logger_configured = False


def setup_logging(
    level: str = "INFO",
    enable_cloud_logging: bool = False,
    project_id: Optional[str] = None,
) -> None:
    """
    ロギングを設定

    CLIは結果のJSONを標準出力に書くため、ログは標準エラー出力に出す。
    2回目以降の呼び出しは何もしない。

    Args:
        level: ログレベル (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        enable_cloud_logging: Cloud Loggingを有効にするか
        project_id: GCPプロジェクトID (Cloud Logging有効時に必要)
    """
    global _logger_configured

    if _logger_configured:
        return

    log_level = getattr(logging, level.upper(), logging.INFO)

    # ルートロガーの設定（既存のハンドラーは置き換える）
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    root_logger.addHandler(console_handler)

    # Cloud Loggingの設定（本番環境用）
    if enable_cloud_logging:
        try:
            from google.cloud import logging as cloud_logging

            client = cloud_logging.Client(project=project_id)
            cloud_handler = cloud_logging.handlers.CloudLoggingHandler(client, name=CLOUD_LOG_NAME)
            cloud_handler.setLevel(log_level)
            root_logger.addHandler(cloud_handler)

            logging.info(f"Cloud Logging enabled: {CLOUD_LOG_NAME}")
        except Exception as e:
            logging.warning(f"Failed to enable Cloud Logging, console only: {e}")

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _logger_configured = True
    logging.info(f"Logging configured with level: {level}")


def get_logger(name: str) -> logging.Logger:
    """
    指定名のロガーを取得

    Args:
        name: ロガー名（通常は__name__を指定）

    Returns:
        ロガーインスタンス
    """
    return logging.getLogger(name)
