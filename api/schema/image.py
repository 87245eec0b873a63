"""图片接口请求/响应模型"""
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class NanoGenerateRequest(BaseModel):
    """Nano 生成请求，宽高等尺寸字段会被忽略"""
    model_config = ConfigDict(extra="allow")

    prompt: Optional[str] = Field(None, description="提示词")
    image: Optional[Union[str, List[str]]] = Field(None, description="data URI 或 base64 图片")
    references: Optional[List[str]] = Field(None, description="参考图片")


class UploadResponse(BaseModel):
    """上传结果"""
    model_config = ConfigDict(populate_by_name=True)

    url: str
    pathname: str
    content_type: str = Field(..., alias="contentType")
    size: int
