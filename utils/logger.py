"""日志工具"""
import sys
from pathlib import Path
from loguru import logger as loguru_logger
from config.settings import settings, Settings


class LoggingManager:
    """日志管理器"""

    def __init__(self, config: Settings = settings):
        self.config = config
        # 移除默认的处理器
        loguru_logger.remove()

        # 根据配置设置日志
        self._setup_logging()

    def _setup_logging(self):
        """设置日志配置"""
        # 控制台输出配置
        if self.config.log_to_console:
            console_format = (
                "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
                "<level>{message}</level>"
            )

            loguru_logger.add(
                sys.stdout,
                format=console_format,
                level=self.config.log_level,
                colorize=True
            )

        # 文件输出配置
        if self.config.log_to_file:
            # 创建日志目录
            log_file_path = Path(self.config.log_file_path)
            log_file_path.parent.mkdir(parents=True, exist_ok=True)

            file_format = (
                "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
                "{level: <8} | "
                "{name}:{function}:{line} | "
                "{message}"
            )

            loguru_logger.add(
                self.config.log_file_path,
                format=file_format,
                level=self.config.log_level,
                rotation=self.config.log_file_rotation,
                retention=self.config.log_file_retention,
                compression="zip",
                encoding="utf-8"
            )

    def get_logger(self, name: str = None):
        """获取logger实例"""
        if name:
            return loguru_logger.bind(name=name)
        return loguru_logger


# 创建全局日志管理器实例
logging_manager = LoggingManager()

# 导出logger实例
logger = logging_manager.get_logger()
