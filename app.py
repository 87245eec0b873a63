# -*- coding: utf-8 -*-
"""
Sanic应用配置
"""
from pathlib import Path
from sanic import Sanic
from sanic.config import Config
from types import SimpleNamespace
import time
import traceback
from pydantic import ValidationError
from sanic.request import Request
from sanic.response import HTTPResponse, BaseHTTPResponse, json
from sanic.exceptions import MethodNotAllowed, NotFound, SanicException
from sanic_ext import Extend
import uuid
from config.settings import settings, Settings
from utils.logger import logger


def create_app(config: Settings = settings, name: str = "SeedreamStudio") -> Sanic:
    """创建Sanic应用实例"""
    app: Sanic[Config, SimpleNamespace] = Sanic(name)

    # 配置
    app.config.REQUEST_MAX_SIZE = config.upload_max_bytes + 1024 * 1024
    app.config.CORS_ORIGINS = "*"
    app.ctx.settings = config

    # 扩展（含 CORS）
    Extend(app)

    # 上传文件静态服务
    upload_dir = Path(config.upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)
    app.static("/uploads", upload_dir, name="uploads")

    # 业务服务
    setup_services(app, config)

    # 中间件
    setup_middleware(app)

    # 异常处理
    setup_exception_handlers(app)

    # 注册路由
    register_routes(app)

    return app


def setup_services(app: Sanic, config: Settings):
    """创建业务服务实例"""
    from services.enhance_service import PromptEnhanceService
    from services.image_service import ImageService

    app.ctx.image_service = ImageService(config)
    app.ctx.enhance_service = PromptEnhanceService(config)


def setup_middleware(app: Sanic):
    """设置中间件"""

    @app.middleware("request")
    async def request_context_middleware(request: Request) -> None:
        """请求上下文中间件"""
        user_ip = request.headers.get("X-Real-IP", "0.0.0.0")

        # 生成请求ID
        request_id = str(uuid.uuid4())
        request.ctx.request_id = request_id
        request.ctx.start_time = time.time()
        request.ctx.user_ip = user_ip

        # 记录请求
        logger.info(f"[{request_id}] {request.method} {request.path} - IP: {user_ip}")

    @app.middleware("response")
    async def response_middleware(request: Request, response: BaseHTTPResponse) -> None:
        """响应中间件"""
        try:
            if not hasattr(request.ctx, 'start_time'):
                return

            cost = time.time() - request.ctx.start_time
            request_id = getattr(request.ctx, 'request_id', 'unknown')

            logger.info(
                f"[{request_id}] 完成 | 耗时: {cost:.3f}s | 状态: {response.status}"
            )
        except Exception as ex:
            logger.error(f"响应日志记录异常: {ex}")


def setup_exception_handlers(app: Sanic):
    """设置异常处理"""

    @app.exception(NotFound)
    async def not_found_handler(request: Request, exc: NotFound) -> HTTPResponse:
        """404处理"""
        from api.schema.base import BaseResponse, ErrorCode, ErrorMessage
        return json(
            BaseResponse(
                code=ErrorCode.NOT_FOUND,
                message=ErrorMessage.NOT_FOUND
            ).model_dump(),
            status=404
        )

    @app.exception(MethodNotAllowed)
    async def method_not_allowed_handler(request: Request, exc: MethodNotAllowed) -> HTTPResponse:
        """405处理，与代理接口的错误格式一致"""
        from api.schema.base import ErrorMessage
        return json(
            {"error": {"message": ErrorMessage.METHOD_NOT_ALLOWED}},
            status=405,
            headers=getattr(exc, "headers", None) or {"Allow": "POST"}
        )

    @app.exception(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """全局异常处理"""
        from api.schema.base import BaseResponse, ErrorCode, ErrorMessage
        from utils.exceptions import BusinessException

        # 业务异常处理
        if isinstance(exc, BusinessException):
            logger.warning(f"业务异常: {exc.message} - {exc.details}")
            # 根据错误码确定HTTP状态码
            status = 400
            if exc.code == ErrorCode.UPSTREAM_ERROR:
                status = 502
            elif exc.code >= 500 and exc.code < 600:
                status = 500
            elif exc.code == 404:
                status = 404

            return json(
                BaseResponse(
                    code=exc.code,
                    message=exc.message,
                    data=exc.details if exc.details else None
                ).model_dump(),
                status=status
            )

        # 参数错误
        if isinstance(exc, (ValidationError, ValueError)):
            logger.debug(f"参数验证失败: {exc}")
            return json(
                BaseResponse(
                    code=ErrorCode.VALIDATION_ERROR,
                    message=ErrorMessage.VALIDATION_ERROR,
                    data={"detail": str(exc)}
                ).model_dump(),
                status=400
            )

        # Sanic 自身的 HTTP 异常（请求体格式错误等）
        if isinstance(exc, SanicException):
            return json(
                BaseResponse(
                    code=exc.status_code,
                    message=str(exc)
                ).model_dump(),
                status=exc.status_code
            )

        # 系统异常处理
        logger.error(f"系统异常: {exc}\n{traceback.format_exc()}")
        return json(
            BaseResponse(
                code=ErrorCode.INTERNAL_ERROR,
                message=ErrorMessage.INTERNAL_ERROR
            ).model_dump(),
            status=500
        )


def register_routes(app: Sanic):
    """注册路由"""

    # 健康检查
    @app.route("/health")
    async def health_check(request: Request):
        """健康检查"""
        return json({"status": "ok", "service": app.ctx.settings.app_name})

    # 注册业务路由
    from api.routes.auth import bp as auth_bp
    from api.routes.image import bp as image_bp
    app.blueprint(auth_bp)
    app.blueprint(image_bp)
