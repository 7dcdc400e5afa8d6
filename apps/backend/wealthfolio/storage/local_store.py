"""
本機 JSON 檔文件儲存

每位用戶一個 JSON 檔，先寫入暫存檔再取代，避免寫到一半的檔案。
檔案讀寫在預設 executor 中執行。
"""

import asyncio
import json
import logging
import os
import re
from pathlib import Path

from pydantic import ValidationError

from wealthfolio.schemas.wealth import WealthDocument
from wealthfolio.storage.base import DocumentStore, StorageError

logger = logging.getLogger(__name__)

_SAFE_NAME = re.compile(r"[^A-Za-z0-9_-]")


class LocalDocumentStore(DocumentStore):

    def __init__(self, data_dir: str | Path):
        self._dir = Path(data_dir)

    def path_for(self, user_id: str) -> Path:
        return self._dir / f"{_SAFE_NAME.sub('_', user_id)}.json"

    async def load(self, user_id: str) -> WealthDocument | None:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._read, user_id)

    async def save(self, user_id: str, document: WealthDocument) -> None:
        payload = document.model_dump(mode="json", by_alias=True)
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._write, user_id, payload)

    def _read(self, user_id: str) -> WealthDocument | None:
        path = self.path_for(user_id)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return WealthDocument.model_validate(data)
        except (OSError, ValueError, ValidationError) as e:
            raise StorageError(f"讀取 {path.name} 失敗: {e}") from e

    def _write(self, user_id: str, payload: dict) -> None:
        path = self.path_for(user_id)
        tmp = path.with_suffix(".json.tmp")
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
            os.replace(tmp, path)
        except OSError as e:
            raise StorageError(f"寫入 {path.name} 失敗: {e}") from e
        logger.debug("文件已寫入本機: %s", path)
