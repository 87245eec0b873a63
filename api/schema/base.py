"""API基础响应模型"""
from pydantic import BaseModel
from typing import Any, Optional


class ErrorCode:
    """业务错误码"""
    SUCCESS = 0
    BAD_REQUEST = 400
    NOT_FOUND = 404
    VALIDATION_ERROR = 422
    INTERNAL_ERROR = 500
    CONFIG_MISSING = 501
    UPSTREAM_ERROR = 502
    # 图片校验错误
    IMAGE_VALIDATION_FAILED = 600


class ErrorMessage:
    """错误信息"""
    SUCCESS = "success"
    NOT_FOUND = "资源不存在"
    VALIDATION_ERROR = "参数验证失败"
    INTERNAL_ERROR = "服务器内部错误"
    PLEASE_SELECT_IMAGE = "请选择图片"
    PROMPT_REQUIRED = "Prompt is required."
    METHOD_NOT_ALLOWED = "Method Not Allowed"


class BaseResponse(BaseModel):
    """基础响应"""
    code: int = 0
    message: str = "success"
    data: Optional[Any] = None
