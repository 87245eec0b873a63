"""自定义异常类"""
from typing import Optional
from api.schema.base import ErrorCode


class BusinessException(Exception):
    """业务异常基类"""
    def __init__(self, message: str, code: int = ErrorCode.INTERNAL_ERROR, details: Optional[dict] = None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)


class ValidationException(BusinessException):
    """请求发出前即可检测到的参数错误，不重试"""
    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message, ErrorCode.VALIDATION_ERROR, details)


class InvalidAspectRatio(ValidationException):
    """长宽比格式错误"""
    def __init__(self, aspect_ratio):
        super().__init__(f"无效的长宽比: {aspect_ratio}", {"aspect_ratio": str(aspect_ratio)})


class ImageValidationError(ValidationException):
    """上传图片校验失败

    kind 取值: format / size / ratio / count
    """
    def __init__(self, kind: str, message: str):
        self.kind = kind
        super().__init__(message, {"code": kind})
        self.code = ErrorCode.IMAGE_VALIDATION_FAILED


class ConfigurationError(BusinessException):
    """缺少必需配置（API Key、Base URL 等）"""
    def __init__(self, message: str):
        super().__init__(message, ErrorCode.CONFIG_MISSING)


class UpstreamError(BusinessException):
    """服务商返回非 2xx 响应"""
    def __init__(self, message: str, status: Optional[int] = None, details: Optional[dict] = None):
        self.status = status
        super().__init__(message, ErrorCode.UPSTREAM_ERROR, details)


class TransportError(UpstreamError):
    """重试用尽后仍无法连接服务商（网络错误、超时）"""
    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message, details={"reason": reason} if reason else None)


class RequestCancelled(Exception):
    """请求被取消（被新请求取代或调用方主动取消），不视为失败"""
    def __init__(self, reason: str = "cancelled"):
        self.reason = reason
        super().__init__(reason)


class StorageQuotaExceeded(Exception):
    """持久化存储空间不足"""
