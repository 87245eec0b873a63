"""图片生成路由

/api/generate-image 与 /api/generate-nano 是浏览器端使用的同源代理，
错误响应沿用代理的格式（{"error": ...}），其余接口使用 BaseResponse。
"""
import asyncio

import aiohttp
from pydantic import ValidationError
from sanic import Blueprint, Request
from sanic.response import json, raw

from api.schema.base import BaseResponse, ErrorCode, ErrorMessage
from api.schema.image import NanoGenerateRequest, UploadResponse
from models.images import PromptEnhanceRequest, is_nano_model
from utils.exceptions import ConfigurationError, UpstreamError
from utils.logger import logger

# 创建蓝图
bp = Blueprint("image", url_prefix="/api")


@bp.post("/generate-image")
async def generate_image(request: Request):
    """Ark 代理: 归一化请求体后转发，上游状态码与响应体原样返回"""
    image_service = request.app.ctx.image_service
    body = request.json if isinstance(request.json, dict) else {}

    if is_nano_model(body.get("model")):
        return await _generate_nano(request, body)

    try:
        upstream = await image_service.forward_to_ark(body)
    except ConfigurationError as e:
        return json({"error": {"message": e.message}}, status=500)
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        logger.error(f"代理请求失败: {e}")
        return json({"error": "Proxy failed", "detail": str(e) or e.__class__.__name__}, status=500)

    logger.info(f"Ark 代理完成 | 状态: {upstream.status}")
    return raw(
        upstream.body,
        status=upstream.status,
        content_type=upstream.content_type or "application/json",
    )


@bp.post("/generate-nano")
async def generate_nano(request: Request):
    """Nano 代理: 返回与 Ark 相同格式的生成结果"""
    body = request.json if isinstance(request.json, dict) else {}
    return await _generate_nano(request, body)


async def _generate_nano(request: Request, body: dict):
    image_service = request.app.ctx.image_service
    if not image_service.nano.configured:
        return json(
            {"error": {"message": "The app is not configured correctly. NANO_API_KEY is missing."}},
            status=500,
        )

    try:
        data = NanoGenerateRequest(**body)
    except ValidationError as e:
        return json({"error": "Request failed", "detail": str(e)}, status=400)

    if not data.prompt or not data.prompt.strip():
        return json({"error": ErrorMessage.PROMPT_REQUIRED}, status=400)

    try:
        result = await image_service.generate_nano(data.model_dump(exclude_none=True))
    except UpstreamError as e:
        if "detail" in e.details:
            return json({"error": e.message, "detail": e.details["detail"]}, status=500)
        return json({"error": "Request failed", "detail": e.message}, status=500)
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        logger.error(f"Nano 请求失败: {e}")
        return json({"error": "Request failed", "detail": str(e) or e.__class__.__name__}, status=500)

    return json(result.model_dump())


@bp.post("/enhance-prompt")
async def enhance_prompt(request: Request):
    """提示词优化"""
    data = PromptEnhanceRequest(**(request.json or {}))
    logger.info(f"收到提示词优化请求: {data.prompt[:50]}")

    result = await request.app.ctx.enhance_service.enhance(data)
    return json(result.model_dump())


@bp.get("/models")
async def list_models(request: Request):
    """获取支持的模型列表"""
    models = request.app.ctx.image_service.get_models()

    return json(BaseResponse(
        code=ErrorCode.SUCCESS,
        message=ErrorMessage.SUCCESS,
        data={
            "models": models
        }
    ).model_dump())


@bp.post("/blob/upload")
async def upload_image(request: Request):
    """上传图片，表单字段为 file"""
    upload = request.files.get("file") if request.files else None
    if not upload:
        return json(BaseResponse(
            code=ErrorCode.BAD_REQUEST,
            message=ErrorMessage.PLEASE_SELECT_IMAGE
        ).model_dump(), status=400)

    result = await request.app.ctx.image_service.upload_image(
        image_data=upload.body,
        filename=upload.name,
        content_type=upload.type,
    )
    return json(
        UploadResponse(**result).model_dump(by_alias=True),
        headers={"Cache-Control": "no-store"},
    )
