"""Shared fixtures for all tests."""

import os

# 测试期间不写日志文件，也不读取开发者本地的 .env 密钥
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

import time

import pytest

from config.settings import Settings
from models.history import HistoryItem, HistoryParams
from models.images import EditorMode, ResolutionTier
from utils.storage import MemoryStorage


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """带假密钥的配置，上游地址由各测试覆盖"""
    return Settings(
        _env_file=None,
        log_to_file=False,
        ark_api_key="Bearer test-ark-key",
        nano_api_key="test-nano-key",
        chatgpt_api_key="test-chat-key",
        app_password="open-sesame",
        upload_dir=str(tmp_path / "uploads"),
        history_file_path=str(tmp_path / "history.json"),
        retry_delay_ms=1,
    )


@pytest.fixture
def memory_storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def make_history_item():
    """按 id 构造历史记录"""

    def _make(item_id: str, prompt: str = "a lighthouse at dusk", **overrides) -> HistoryItem:
        fields = {
            "id": item_id,
            "created_at": int(time.time() * 1000),
            "source": EditorMode.T2I,
            "prompt_raw": prompt,
            "params": HistoryParams(
                aspect_ratio="16:9",
                resolution=ResolutionTier.P720,
                width=1280,
                height=720,
            ),
            "url": f"https://cdn.example.com/{item_id}.png",
        }
        fields.update(overrides)
        return HistoryItem(**fields)

    return _make
