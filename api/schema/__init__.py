"""API模型"""
from .base import BaseResponse, ErrorCode, ErrorMessage
from .auth import LoginRequest
from .image import NanoGenerateRequest, UploadResponse

__all__ = [
    "BaseResponse",
    "ErrorCode",
    "ErrorMessage",
    "LoginRequest",
    "NanoGenerateRequest",
    "UploadResponse",
]
