"""
キャッシュの永続化バックエンド

キャッシュ全体のスナップショットを保存・読み込みする。
保存はキャッシュ側でベストエフォートに実行され、失敗は呼び出し元に伝播しない。
"""

import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

from ..storage.clients.firestore_client import FirestoreClient
from ...shared.exceptions.errors import StorageError
from ...shared.logging.config import get_logger

logger = get_logger(__name__)

# {キー: {"value": ..., "stored_at": float, "expires_at": float}}
Snapshot = dict[str, dict[str, Any]]


class CachePersistence(ABC):
    """キャッシュ永続化の抽象基底クラス"""

    @property
    def enabled(self) -> bool:
        """保存処理を行うかどうか（Falseの場合、キャッシュは保存をスケジュールしない）"""
        return True

    @abstractmethod
    def load(self, cache_name: str) -> Snapshot:
        """
        スナップショットを読み込む

        Raises:
            StorageError: 読み込みに失敗した場合
        """
        pass

    @abstractmethod
    def save(self, cache_name: str, snapshot: Snapshot) -> None:
        """
        スナップショットを保存する

        Raises:
            StorageError: 保存に失敗した場合
        """
        pass


class NullPersistence(CachePersistence):
    """永続化しない（メモリのみ、デフォルト）"""

    @property
    def enabled(self) -> bool:
        return False

    def load(self, cache_name: str) -> Snapshot:
        return {}

    def save(self, cache_name: str, snapshot: Snapshot) -> None:
        pass


class FileCachePersistence(CachePersistence):
    """キャッシュごとにJSONファイルへ保存する"""

    def __init__(self, directory: str) -> None:
        """
        Args:
            directory: 保存先ディレクトリ（存在しない場合は作成）
        """
        self.directory = Path(directory)
        logger.info(f"FileCachePersistence initialized: {self.directory}")

    def _path(self, cache_name: str) -> Path:
        return self.directory / f"{cache_name}_cache.json"

    def load(self, cache_name: str) -> Snapshot:
        path = self._path(cache_name)
        if not path.exists():
            return {}

        try:
            with path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise StorageError(f"Failed to load cache file {path}: {e}") from e

        if not isinstance(data, dict):
            raise StorageError(f"Cache file {path} does not contain an object")
        return data

    def save(self, cache_name: str, snapshot: Snapshot) -> None:
        path = self._path(cache_name)
        tmp_name: Optional[str] = None

        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            # 一時ファイルに書いてから置き換える
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{cache_name}_", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(snapshot, f, ensure_ascii=False)
            os.replace(tmp_name, path)
            tmp_name = None
        except (OSError, TypeError, ValueError) as e:
            raise StorageError(f"Failed to save cache file {path}: {e}") from e
        finally:
            if tmp_name and os.path.exists(tmp_name):
                os.remove(tmp_name)


class FirestoreCachePersistence(CachePersistence):
    """キャッシュごとに1つのFirestoreドキュメントへ保存する"""

    def __init__(self, firestore_client: FirestoreClient, collection: str = "geo_cache") -> None:
        """
        Args:
            firestore_client: Firestoreクライアント
            collection: コレクション名
        """
        self.client = firestore_client
        self.collection = collection
        logger.info(f"FirestoreCachePersistence initialized: collection={collection}")

    def load(self, cache_name: str) -> Snapshot:
        document = self.client.get_document(self.collection, cache_name)
        if not document:
            return {}

        entries = document.get("entries", [])
        if not isinstance(entries, list):
            raise StorageError(f"Firestore cache document {cache_name} has invalid entries")

        snapshot: Snapshot = {}
        for entry in entries:
            entry = dict(entry)
            key = entry.pop("key", None)
            if key is not None:
                snapshot[key] = entry
        return snapshot

    def save(self, cache_name: str, snapshot: Snapshot) -> None:
        # キーに"."や"/"が含まれるため、マップではなく配列で保存する
        entries = [{"key": key, **entry} for key, entry in snapshot.items()]
        self.client.set_document(self.collection, cache_name, {"entries": entries})
