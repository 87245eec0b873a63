from pydantic import BaseModel, StrictStr


class LoginRequest(BaseModel):
    """访问口令校验请求"""
    password: StrictStr
