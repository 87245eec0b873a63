"""界面偏好服务"""
from utils.logger import logger
from utils.storage import KeyValueStorage

THEME_KEY = "seedream.theme"
THEMES = ("light", "dark")
DEFAULT_THEME = "light"


class PreferenceService:
    """主题偏好，读写失败只记录警告"""

    def __init__(self, storage: KeyValueStorage):
        self.storage = storage

    def get_theme(self) -> str:
        try:
            value = self.storage.get(THEME_KEY)
        except OSError as e:
            logger.warning(f"读取主题失败: {e}")
            return DEFAULT_THEME
        return value if value in THEMES else DEFAULT_THEME

    def set_theme(self, theme: str) -> str:
        if theme not in THEMES:
            logger.warning(f"未知主题 {theme}，使用默认主题")
            theme = DEFAULT_THEME
        try:
            self.storage.set(THEME_KEY, theme)
        except Exception as e:
            logger.warning(f"保存主题失败: {e}")
        return theme

    def toggle_theme(self) -> str:
        return self.set_theme("dark" if self.get_theme() == "light" else "light")
