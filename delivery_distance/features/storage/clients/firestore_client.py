"""Firestoreクライアント"""
import os
from typing import Any, Optional

from google.cloud import firestore

from ....shared.exceptions.errors import StorageError
from ....shared.logging.config import get_logger

logger = get_logger(__name__)


class FirestoreClient:
    """Firestore操作クライアント（キャッシュの永続化に使用）"""

    def __init__(
        self,
        project_id: Optional[str] = None,
        database_id: str = "(default)",
        client: Optional[Any] = None,
    ) -> None:
        """
        Firestoreクライアントを初期化

        Args:
            project_id: GCPプロジェクトID
            database_id: データベースID（デフォルトは"(default)"）
            client: 既存のfirestore.Client（テスト用）
        """
        self.project_id = project_id
        self.database_id = database_id

        if client is not None:
            self.client = client
            return

        # エミュレータモードの検出
        emulator_host = os.environ.get("FIRESTORE_EMULATOR_HOST")

        try:
            self.client = firestore.Client(project=project_id, database=database_id)

            if emulator_host:
                logger.info(
                    f"Firestore client initialized (EMULATOR MODE): "
                    f"host={emulator_host}, project={project_id}, database={database_id}"
                )
            else:
                logger.info(
                    f"Firestore client initialized: project={project_id}, database={database_id}"
                )
        except Exception as e:
            raise StorageError(f"Failed to initialize Firestore client: {e}") from e

    def get_document(self, collection_path: str, document_id: str) -> Optional[dict[str, Any]]:
        """
        ドキュメントを取得

        Args:
            collection_path: コレクションパス
            document_id: ドキュメントID

        Returns:
            Optional[dict[str, Any]]: ドキュメントデータ（存在しない場合はNone）
        """
        try:
            doc = self.client.collection(collection_path).document(document_id).get()

            if doc.exists:
                return doc.to_dict()
            return None

        except Exception as e:
            raise StorageError(
                f"Failed to get document {document_id} from {collection_path}: {e}"
            ) from e

    def set_document(self, collection_path: str, document_id: str, data: dict[str, Any]) -> None:
        """
        ドキュメントを上書き保存

        Args:
            collection_path: コレクションパス
            document_id: ドキュメントID
            data: 保存するデータ
        """
        try:
            self.client.collection(collection_path).document(document_id).set(data)
            logger.debug(f"Document {document_id} written to {collection_path}")

        except Exception as e:
            raise StorageError(
                f"Failed to write document {document_id} to {collection_path}: {e}"
            ) from e
