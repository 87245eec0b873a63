from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """应用配置"""

    # 应用配置
    app_name: str = "SeedreamStudio"
    app_description: str = "图片生成请求管线服务"  # 应用描述
    app_port: int = 8000
    app_debug: bool = False
    app_auto_reload: bool = False

    # 日志配置
    log_level: str = "INFO"  # 日志级别: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_to_file: bool = True  # 是否写入文件
    log_to_console: bool = True  # 是否输出到控制台
    log_file_path: str = "logs/app.log"  # 日志文件路径
    log_file_rotation: str = "1 day"  # 日志轮转: 1 day, 1 week, 1 month
    log_file_retention: str = "30 days"  # 日志保留时间

    # Ark (Seedream) 配置
    ark_base_url: Optional[str] = "https://ark.ap-southeast.bytepluses.com"
    ark_api_key: Optional[str] = None
    ark_model: str = "seedream-4-0-250828"

    # Nano (Gemini) 配置
    nano_base_url: Optional[str] = "https://generativelanguage.googleapis.com/v1beta"
    nano_api_key: Optional[str] = None
    nano_model: str = "gemini-2.5-flash-image-preview"

    # 提示词优化 (chat completions)
    chatgpt_base_url: Optional[str] = "https://api.openai.com/v1"
    chatgpt_api_key: Optional[str] = None
    enhance_model: str = "gpt-4o-mini"
    enhance_max_tokens: int = 400

    # 访问口令
    app_password: Optional[str] = None

    # 上传配置
    upload_dir: str = "uploads"
    upload_max_bytes: int = 10 * 1024 * 1024

    # 历史记录配置
    history_file_path: str = "data/history.json"
    history_quota_bytes: int = 5 * 1024 * 1024  # 与浏览器 localStorage 配额一致

    # 请求重试配置
    generation_retries: int = 0
    enhance_retries: int = 0
    retry_delay_ms: int = 500
    backoff_factor: float = 2
    request_timeout: int = 600  # 秒，图片生成耗时较长

    # 同源代理地址，为空时直连服务商
    generation_proxy_url: Optional[str] = None

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        frozen = True  # 进程生命周期内不可变


# 创建全局配置实例
settings = Settings()

