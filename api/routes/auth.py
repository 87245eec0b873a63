"""访问口令路由"""
import secrets

from pydantic import ValidationError
from sanic import Blueprint, Request
from sanic.response import json

from api.schema.auth import LoginRequest
from utils.logger import logger

# 创建蓝图
bp = Blueprint("auth", url_prefix="/api")


@bp.post("/login")
async def login(request: Request):
    """校验访问口令"""
    expected = (request.app.ctx.settings.app_password or "").strip()
    if not expected:
        logger.error("APP_PASSWORD 未配置")
        return json({"error": "APP_PASSWORD not set"}, status=500)

    try:
        data = LoginRequest(**(request.json if isinstance(request.json, dict) else {}))
    except ValidationError:
        return json({"error": "password required"}, status=400)

    if secrets.compare_digest(data.password.encode("utf-8"), expected.encode("utf-8")):
        return json({"ok": True})

    logger.warning(f"口令校验失败 | IP: {getattr(request.ctx, 'user_ip', 'unknown')}")
    return json({"error": "invalid password"}, status=401)
