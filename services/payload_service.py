"""请求归一化服务

把用户输入的超集请求转换为各服务商接受的请求体:
  - Ark (Seedream): 只接受 size（WxH 或 1K/2K/4K），图片统一放入 image 数组
  - Nano (Gemini): 只接受文本 + inline 图片分片，尺寸参数被忽略
这里是唯一同时了解两种请求格式的地方，所有函数均为纯函数。
"""
import re
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from models.images import (
    GeneratedImage, GenerationRequest, GenerationResponse, ImageModel,
    NANO_MODEL_ID, ProviderEnum, SequentialMode, is_nano_model,
)
from utils.exceptions import UpstreamError
from utils.helpers import round_half_up
from utils.logger import logger

MAX_IMAGE_INPUTS = 10
DEFAULT_MIME_TYPE = "image/png"
DEFAULT_RESPONSE_FORMAT = "url"
NO_IMAGE_DETAIL = "No inline image data was returned by the model."

# 仅供客户端记录，Ark 与 size 同时出现时会拒绝
CLIENT_ONLY_FIELDS = ("width", "height", "aspect_ratio", "references")

_SIZE_PATTERN = re.compile(r"^\d{2,5}x\d{2,5}$", re.IGNORECASE)
_PRESET_PATTERN = re.compile(r"^[1-4]K$", re.IGNORECASE)
_DATA_URL_HEADER = re.compile(r"^data:(.*?)(;base64)?$", re.IGNORECASE)
_HANGUL_PATTERN = re.compile(r"[\uac00-\ud7af]")


@dataclass(frozen=True)
class ArkPayload:
    """Ark 请求体"""
    body: Dict[str, Any]
    provider: ProviderEnum = field(default=ProviderEnum.ARK, init=False)


@dataclass(frozen=True)
class InlineImagePart:
    """Gemini inline 图片分片"""
    mime_type: str
    data: str

    def to_dict(self) -> Dict[str, Any]:
        return {"inlineData": {"mimeType": self.mime_type, "data": self.data}}


@dataclass(frozen=True)
class NanoPayload:
    """Nano 请求体: 文本 + 图片分片"""
    prompt: str
    images: List[InlineImagePart] = field(default_factory=list)
    provider: ProviderEnum = field(default=ProviderEnum.NANO, init=False)

    @property
    def parts(self) -> List[Dict[str, Any]]:
        return [{"text": self.prompt}] + [image.to_dict() for image in self.images]

    def to_body(self) -> Dict[str, Any]:
        return {"contents": [{"role": "user", "parts": self.parts}]}


ProviderPayload = Union[ArkPayload, NanoPayload]


def normalize_size_string(size: Optional[str]) -> Optional[str]:
    """校验 size，合法时返回规范值，否则返回 None"""
    if not size or not isinstance(size, str):
        return None
    fixed = size.replace("×", "x").strip()
    if _PRESET_PATTERN.match(fixed):
        return fixed.upper()
    if _SIZE_PATTERN.match(fixed):
        return fixed
    return None


def to_size_string(width: Any, height: Any) -> Optional[str]:
    """由宽高生成 "WxH"，任一缺失时返回 None"""
    if not width or not height:
        return None
    try:
        return f"{round_half_up(float(width))}x{round_half_up(float(height))}"
    except (TypeError, ValueError):
        return None


def normalize_data_url(url: str) -> str:
    """data URI 的 MIME 段转小写，远程 URL 原样返回"""
    if not isinstance(url, str) or url[:5].lower() != "data:":
        return url
    comma = url.find(",")
    if comma < 0:
        return url
    return url[:comma].lower() + url[comma:]


def merge_image_inputs(image: Union[str, List[str], None],
                       references: Optional[List[str]] = None) -> List[str]:
    """
    合并 image 与 references，最多 10 张
    image 为数组时优先使用（忽略 references）；单张时合并为 [image, *references]
    """
    if isinstance(image, (list, tuple)):
        return [normalize_data_url(item) for item in image if item][:MAX_IMAGE_INPUTS]

    refs = [normalize_data_url(item) for item in (references or []) if item]
    if image:
        return [normalize_data_url(image), *refs][:MAX_IMAGE_INPUTS]
    return refs[:MAX_IMAGE_INPUTS]


def build_generation_body(request: GenerationRequest, model_info: ImageModel) -> Dict[str, Any]:
    """
    客户端阶段: 由生成请求组装请求体
    宽高与 size 只发送其一，两者都有时优先宽高
    """
    sequential = request.sequential_image_generation or SequentialMode.DISABLED
    body: Dict[str, Any] = {
        "model": request.model or model_info.id,
        "prompt": request.prompt,
        "response_format": request.response_format or DEFAULT_RESPONSE_FORMAT,
        "aspect_ratio": request.aspect_ratio,
        "stream": request.stream if request.stream is not None else False,
        "watermark": request.watermark if request.watermark is not None else True,
        "sequential_image_generation": sequential.value,
        "sequential_image_generation_options": request.sequential_image_generation_options,
        "steps": request.steps,
    }

    # 不支持的参数不发送
    if model_info.supports_seed:
        body["seed"] = request.seed
    if model_info.supports_guidance:
        body["guidance_scale"] = request.guidance_scale

    if request.width and request.height:
        body["width"] = request.width
        body["height"] = request.height
    elif request.size:
        body["size"] = request.size

    images = merge_image_inputs(request.image, request.references)
    if images:
        body["image"] = images

    return {key: value for key, value in body.items() if value is not None}


def normalize_ark_payload(body: Dict[str, Any]) -> ArkPayload:
    """
    服务商阶段: 转换为 Ark 请求体
    size 合法时直接使用，否则由宽高生成；宽高、长宽比等客户端字段一律移除
    """
    payload = dict(body)

    size = normalize_size_string(payload.get("size"))
    if not size:
        size = to_size_string(payload.get("width"), payload.get("height"))

    images = merge_image_inputs(payload.get("image"), payload.get("references"))

    for client_field in CLIENT_ONLY_FIELDS:
        payload.pop(client_field, None)
    payload.pop("size", None)
    payload.pop("image", None)

    if size:
        payload["size"] = size
    if images:
        payload["image"] = images

    return ArkPayload(body=payload)


def parse_data_url(value: str) -> Optional[InlineImagePart]:
    """data URI 或裸 base64 转为 inline 分片，无法内联时返回 None"""
    if not value or not isinstance(value, str):
        return None
    if value.startswith(("http://", "https://")):
        logger.warning(f"[Nano] 远程图片无法内联，已跳过: {value[:80]}")
        return None

    head, sep, data = value.partition(",")
    if not sep:
        return InlineImagePart(mime_type=DEFAULT_MIME_TYPE, data=value.strip())
    if not data:
        return None

    match = _DATA_URL_HEADER.match(head.strip())
    mime_type = match.group(1) if match and match.group(1) else DEFAULT_MIME_TYPE
    return InlineImagePart(mime_type=mime_type, data=data)


def build_nano_payload(body: Dict[str, Any]) -> NanoPayload:
    """转换为 Nano 请求体，分片顺序为 [文本, 图片...]"""
    ignored = [name for name in ("size", "width", "height", "aspect_ratio") if body.get(name)]
    if ignored:
        logger.debug(f"[Nano] 不支持分辨率控制，忽略参数: {ignored}")

    image = body.get("image")
    inputs = list(image) if isinstance(image, (list, tuple)) else ([image] if image else [])
    inputs.extend(body.get("references") or [])

    parts = [part for part in (parse_data_url(item) for item in inputs) if part]
    return NanoPayload(prompt=body.get("prompt") or "", images=parts)


_PAYLOAD_BUILDERS = {
    ProviderEnum.ARK: normalize_ark_payload,
    ProviderEnum.NANO: build_nano_payload,
}


def build_provider_payload(body: Dict[str, Any], provider: ProviderEnum) -> ProviderPayload:
    """按服务商构建请求体"""
    return _PAYLOAD_BUILDERS[ProviderEnum(provider)](body)


def translate_nano_response(raw: Dict[str, Any], model_name: str) -> GenerationResponse:
    """
    Gemini 响应转换为统一格式
    没有图片分片时（安全策略拦截等）抛出 UpstreamError，detail 为模型给出的说明
    """
    candidates = raw.get("candidates") or []
    content = (candidates[0].get("content") or {}) if candidates else {}

    images: List[GeneratedImage] = []
    texts: List[str] = []
    for part in content.get("parts") or []:
        if not isinstance(part, dict):
            continue
        inline = part.get("inlineData") or part.get("inline_data")
        if isinstance(inline, dict) and isinstance(inline.get("data"), str):
            mime_type = inline.get("mimeType") or inline.get("mime_type") or DEFAULT_MIME_TYPE
            images.append(GeneratedImage(url=f"data:{mime_type};base64,{inline['data']}", size="unknown"))
        elif isinstance(part.get("text"), str) and part["text"].strip():
            texts.append(part["text"].strip())

    if not images:
        block_reason = (raw.get("promptFeedback") or {}).get("blockReason")
        detail = texts[0] if texts else (block_reason or NO_IMAGE_DETAIL)
        raise UpstreamError("Image generation failed.", status=500, details={"detail": detail})

    return GenerationResponse(
        model=f"{NANO_MODEL_ID} ({model_name})",
        created=int(time.time() * 1000),
        data=images,
    )


def inject_aspect_ratio_into_prompt(model: Optional[str], prompt: str, aspect_ratio) -> str:
    """Nano 无法控制尺寸，把长宽比写进提示词"""
    if not is_nano_model(model):
        return prompt

    trimmed = prompt.strip()
    if not trimmed:
        return prompt

    ratio = aspect_ratio.value if isinstance(aspect_ratio, Enum) else (aspect_ratio or "")
    ratio = ratio.strip()
    if not ratio or ratio in trimmed:
        return trimmed

    if _HANGUL_PATTERN.search(trimmed):
        return f"{trimmed}, {ratio} 비율"
    return f"{trimmed} with an aspect ratio of {ratio}"
