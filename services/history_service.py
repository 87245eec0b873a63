"""生成历史服务

历史按时间倒序保存在内存中，每次变更后把整个列表写入持久化存储。
存储格式: {"state": {"items": [...]}, "version": 1}
"""
import json
import math
import threading
from typing import List, Optional

from pydantic import ValidationError

from models.history import HistoryItem
from utils.exceptions import StorageQuotaExceeded
from utils.logger import logger
from utils.storage import KeyValueStorage

HISTORY_KEY = "seedream.history.v1"
HISTORY_VERSION = 1
HISTORY_LIMIT = 100

# 写入尝试次数: 完整列表一次，减半后一次
MAX_PERSIST_ATTEMPTS = 2


class HistoryStore:
    """有上限的生成历史，最新的记录在最前"""

    def __init__(self,
                 storage: KeyValueStorage,
                 key: str = HISTORY_KEY,
                 version: int = HISTORY_VERSION,
                 limit: int = HISTORY_LIMIT):
        self.storage = storage
        self.key = key
        self.version = version
        self.limit = limit
        self._lock = threading.RLock()
        self._items: List[HistoryItem] = self._load()

    @property
    def items(self) -> List[HistoryItem]:
        with self._lock:
            return list(self._items)

    def get(self, item_id: str) -> Optional[HistoryItem]:
        with self._lock:
            return next((item for item in self._items if item.id == item_id), None)

    def add_item(self, item: HistoryItem):
        """
        新增记录
        同 id 的旧记录被移除，新记录插入到最前，超出上限的旧记录被淘汰
        """
        with self._lock:
            rest = [existing for existing in self._items if existing.id != item.id]
            self._items = [item, *rest][:self.limit]
            self._persist()

    def remove_item(self, item_id: str):
        with self._lock:
            remaining = [item for item in self._items if item.id != item_id]
            if len(remaining) == len(self._items):
                return
            self._items = remaining
            self._persist()

    def clear(self):
        with self._lock:
            self._items = []
            self._persist()

    def _load(self) -> List[HistoryItem]:
        """从存储恢复历史，数据损坏或版本不符时从空历史开始"""
        raw = self.storage.get(self.key)
        if raw is None:
            return []

        try:
            envelope = json.loads(raw)
        except ValueError as e:
            logger.warning(f"历史记录解析失败，已重置: {e}")
            return []

        if not isinstance(envelope, dict) or envelope.get("version") != self.version:
            logger.warning(f"历史记录版本不匹配，已重置: key={self.key}")
            return []

        entries = (envelope.get("state") or {}).get("items") or []
        items: List[HistoryItem] = []
        for entry in entries:
            try:
                items.append(HistoryItem.model_validate(entry))
            except ValidationError as e:
                logger.warning(f"跳过无效的历史记录: {e.error_count()} 个字段错误")

        logger.info(f"已加载 {len(items)} 条历史记录")
        return items[:self.limit]

    def _serialize(self, items: List[HistoryItem]) -> str:
        envelope = {
            "state": {"items": [item.to_storage() for item in items]},
            "version": self.version,
        }
        return json.dumps(envelope, ensure_ascii=False)

    def _persist(self):
        """
        写入存储
        空间不足时只保留较新的一半再试一次，仍失败则删除该键。
        内存中的历史不受影响。
        """
        items = list(self._items)
        for attempt in range(MAX_PERSIST_ATTEMPTS):
            try:
                self.storage.set(self.key, self._serialize(items))
                return
            except StorageQuotaExceeded as e:
                if attempt + 1 < MAX_PERSIST_ATTEMPTS:
                    keep = math.ceil(len(items) / 2)
                    logger.warning(f"历史存储空间不足，保留最新 {keep}/{len(items)} 条后重试: {e}")
                    items = items[:keep]

        logger.warning(f"历史存储空间不足，已清空持久化历史: key={self.key}")
        self.storage.delete(self.key)
