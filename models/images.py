"""图片模型相关的Pydantic数据结构"""
from enum import Enum
from typing import Optional, List, Dict, Any, Union
from pydantic import BaseModel, ConfigDict, Field


class ProviderEnum(str, Enum):
    """图片服务提供商枚举"""
    ARK = "Ark"
    NANO = "Nano"


class AspectRatio(str, Enum):
    """可选长宽比"""
    SQUARE = "1:1"
    WIDE = "16:9"
    TALL = "9:16"
    PORTRAIT_2_3 = "2:3"
    PORTRAIT_3_4 = "3:4"
    PORTRAIT_1_2 = "1:2"
    LANDSCAPE_2_1 = "2:1"
    PORTRAIT_4_5 = "4:5"
    LANDSCAPE_3_2 = "3:2"
    LANDSCAPE_4_3 = "4:3"


class ResolutionTier(str, Enum):
    """分辨率档位"""
    P480 = "480p"
    P720 = "720p"


class SequentialMode(str, Enum):
    """组图生成模式"""
    DISABLED = "disabled"
    ENABLED = "enabled"
    AUTO = "auto"


class EditorMode(str, Enum):
    """编辑模式: 文生图 / 图生图"""
    T2I = "t2i"
    I2I = "i2i"


class ImageModel(BaseModel):
    """图片模型定义"""
    id: str = Field(..., description="模型ID")
    name: str = Field(..., description="模型名称")
    description: str = Field(..., description="模型描述")
    provider: ProviderEnum = Field(..., description="服务提供商")
    supported_aspect_ratio: Optional[List[str]] = Field(None, description="支持的长宽比")
    supported_resolution: Optional[List[str]] = Field(None, description="支持的分辨率")
    supports_seed: bool = Field(False, description="是否支持 seed")
    supports_guidance: bool = Field(False, description="是否支持 guidance_scale")
    supports_resolution_control: bool = Field(True, description="是否可控制输出尺寸")


NANO_MODEL_ID = "nano-banana"

# 模型注册表
IMAGE_MODELS: Dict[str, ImageModel] = {
    "seedream-4-0-250828": ImageModel(
        id="seedream-4-0-250828",
        name="Seedream 4.0",
        description="BytePlus ModelArk 多分辨率图片生成模型，支持多张参考图",
        provider=ProviderEnum.ARK,
        supported_aspect_ratio=[ratio.value for ratio in AspectRatio],
        supported_resolution=[tier.value for tier in ResolutionTier],
    ),
    NANO_MODEL_ID: ImageModel(
        id=NANO_MODEL_ID,
        name="Nano Banana",
        description="Gemini 多模态图片生成模型，不支持分辨率控制",
        provider=ProviderEnum.NANO,
        supported_aspect_ratio=[ratio.value for ratio in AspectRatio],
        supports_resolution_control=False,
    ),
}


def get_model_info(model_id: str) -> Optional[ImageModel]:
    """获取模型信息"""
    return IMAGE_MODELS.get(model_id)


def get_all_models() -> List[ImageModel]:
    """获取所有模型列表"""
    return list(IMAGE_MODELS.values())


def is_nano_model(model_id: Optional[str]) -> bool:
    return bool(model_id) and model_id.startswith(NANO_MODEL_ID)


class Dimensions(BaseModel):
    """像素尺寸"""
    model_config = ConfigDict(frozen=True)

    width: int
    height: int

    @property
    def size(self) -> str:
        return f"{self.width}x{self.height}"


class GeneratedImage(BaseModel):
    """生成结果图片"""
    url: str = Field(..., description="远程URL或 data URI")
    size: str = Field("unknown", description="尺寸")


class GenerationResponse(BaseModel):
    """统一的生成响应"""
    model: str
    created: int
    data: List[GeneratedImage] = Field(default_factory=list)


class GenerationRequest(BaseModel):
    """生成请求（归一化之前的超集）"""
    model_config = ConfigDict(extra="allow")

    prompt: str = Field(..., description="提示词")
    model: Optional[str] = Field(None, description="模型ID")
    response_format: Optional[str] = Field(None, description="url 或 b64_json")
    size: Optional[str] = Field(None, description="WxH 或 1K/2K/4K")
    width: Optional[int] = Field(None, description="宽度")
    height: Optional[int] = Field(None, description="高度")
    aspect_ratio: Optional[str] = Field(None, description="长宽比")
    image: Optional[Union[str, List[str]]] = Field(None, description="源图片")
    references: Optional[List[str]] = Field(None, description="参考图片")
    watermark: Optional[bool] = None
    stream: Optional[bool] = None
    sequential_image_generation: Optional[SequentialMode] = None
    sequential_image_generation_options: Optional[Dict[str, Any]] = None
    seed: Optional[int] = None
    steps: Optional[int] = None
    guidance_scale: Optional[float] = None


class GenerationDraft(BaseModel):
    """编辑面板当前的输入状态"""
    prompt_raw: str = ""
    prompt_enhanced: Optional[str] = None
    aspect_ratio: str = AspectRatio.SQUARE.value
    resolution: ResolutionTier = ResolutionTier.P720
    model: Optional[str] = None
    source_image: Optional[str] = None
    references: List[str] = Field(default_factory=list)
    seed: Optional[int] = None
    steps: Optional[int] = None
    guidance: Optional[float] = None
    watermark: Optional[bool] = None
    stream: bool = False
    sequential: SequentialMode = SequentialMode.DISABLED


class ImageAsset(BaseModel):
    """校验通过的本地图片"""
    id: str
    data_url: str
    name: str
    size: int
    width: Optional[int] = None
    height: Optional[int] = None


class PromptEnhanceRequest(BaseModel):
    """提示词优化请求"""
    prompt: str = Field(..., min_length=1)
    mode: EditorMode = EditorMode.T2I
    max_tokens: Optional[int] = Field(None, alias="maxTokens")

    model_config = ConfigDict(populate_by_name=True)


class PromptEnhanceResponse(BaseModel):
    """提示词优化结果"""
    enhanced: str
    rationale: Optional[str] = None
