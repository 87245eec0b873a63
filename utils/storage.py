"""键值持久化存储

HistoryStore 与 PreferenceService 通过 get/set/delete 约定访问存储，
配额超限时抛出 StorageQuotaExceeded，降级策略由调用方决定。
"""

import json
import os
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

from utils.exceptions import StorageQuotaExceeded
from utils.logger import logger


class KeyValueStorage(ABC):
    """键值存储接口"""

    def __init__(self, quota_bytes: Optional[int] = None):
        self.quota_bytes = quota_bytes
        self.lock = threading.RLock()

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """获取值，不存在返回 None"""

    @abstractmethod
    def set(self, key: str, value: str):
        """写入值，超出配额时抛出 StorageQuotaExceeded"""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """删除键"""

    def _check_quota(self, entries: Dict[str, str], key: str, value: str):
        if self.quota_bytes is None:
            return
        used = sum(len(k) + len(v) for k, v in entries.items() if k != key)
        needed = used + len(key) + len(value)
        if needed > self.quota_bytes:
            raise StorageQuotaExceeded(
                f"写入 {key} 需要 {needed} 字节，超出配额 {self.quota_bytes}"
            )


class MemoryStorage(KeyValueStorage):
    """内存存储"""

    def __init__(self, quota_bytes: Optional[int] = None):
        super().__init__(quota_bytes)
        self.data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        with self.lock:
            return self.data.get(key)

    def set(self, key: str, value: str):
        with self.lock:
            self._check_quota(self.data, key, value)
            self.data[key] = value

    def delete(self, key: str) -> bool:
        with self.lock:
            if key in self.data:
                del self.data[key]
                return True
            return False


class FileStorage(KeyValueStorage):
    """JSON 文件存储，整体写入临时文件后原子替换"""

    def __init__(self, path: str, quota_bytes: Optional[int] = None):
        super().__init__(quota_bytes)
        self.path = Path(path)

    def _read_all(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"存储文件读取失败，按空存储处理: {self.path} - {e}")
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _write_all(self, data: Dict[str, str]):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False)
        os.replace(tmp_path, self.path)

    def get(self, key: str) -> Optional[str]:
        with self.lock:
            return self._read_all().get(key)

    def set(self, key: str, value: str):
        with self.lock:
            data = self._read_all()
            self._check_quota(data, key, value)
            data[key] = value
            self._write_all(data)

    def delete(self, key: str) -> bool:
        with self.lock:
            data = self._read_all()
            if key not in data:
                return False
            del data[key]
            self._write_all(data)
            return True
