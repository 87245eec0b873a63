"""历史记录数据结构

持久化字段名沿用 camelCase（createdAt、promptRaw ...），以便与已存储的历史兼容。
"""
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from models.images import EditorMode, ResolutionTier, SequentialMode


class HistoryParams(BaseModel):
    """生成参数快照"""
    model_config = ConfigDict(populate_by_name=True)

    aspect_ratio: str = Field(..., alias="aspectRatio")
    resolution: ResolutionTier
    width: int
    height: int
    seed: Optional[int] = None
    steps: Optional[int] = None
    guidance: Optional[float] = None
    watermark: bool = True
    stream: bool = False
    sequential_image_generation: SequentialMode = Field(
        SequentialMode.DISABLED, alias="sequentialImageGeneration"
    )


class HistoryItem(BaseModel):
    """一次成功生成的记录，创建后只可删除不可修改"""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    created_at: int = Field(..., alias="createdAt", description="毫秒时间戳")
    source: EditorMode
    prompt_raw: str = Field(..., alias="promptRaw")
    prompt_enhanced: Optional[str] = Field(None, alias="promptEnhanced")
    params: HistoryParams
    thumb: Optional[str] = None
    url: Optional[str] = None

    def to_storage(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
