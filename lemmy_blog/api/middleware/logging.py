from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
import time
import json
from typing import Any, Callable, List, Optional
from loguru import logger
import uuid

SENSITIVE_FIELDS = ("password", "token", "secret", "auth", "key")


class RequestResponseLoggingMiddleware(BaseHTTPMiddleware):
    """
    请求响应记录中间件

    为每个请求生成 X-Request-ID，记录方法、路径、状态码和处理时间；
    写请求的 JSON 请求体在过滤敏感字段后记录
    """
    def __init__(
        self,
        app: ASGIApp,
        log_request_body: bool = True,
        max_body_length: int = 1024,
        exclude_paths: Optional[List[str]] = None,
    ):
        super().__init__(app)
        self.log_request_body = log_request_body
        self.max_body_length = max_body_length
        self.exclude_paths = exclude_paths or ["/docs", "/redoc", "/openapi.json"]

    async def dispatch(
        self,
        request: Request,
        call_next: Callable
    ) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        if self._should_skip_logging(request):
            return await call_next(request)

        # 请求处理期间的所有日志都带上 request_id
        with logger.contextualize(request_id=request_id):
            start_time = time.time()
            body = await self._read_body(request)

            try:
                response = await call_next(request)
            except Exception as e:
                duration = round(time.time() - start_time, 3)
                logger.error(
                    f"{request.method} {request.url.path} -> 500 ({duration}s) "
                    f"{type(e).__name__}: {e}"
                )
                raise

            duration = round(time.time() - start_time, 3)
            response.headers["X-Process-Time"] = str(duration)
            response.headers["X-Request-ID"] = request_id

            message = f"{request.method} {request.url.path} -> {response.status_code} ({duration}s)"
            if request.query_params:
                message += f" query={dict(request.query_params)}"
            if body:
                message += f" body={body}"

            # 根据响应状态选择日志级别
            if response.status_code >= 500:
                logger.error(message)
            elif response.status_code >= 400:
                logger.warning(message)
            else:
                logger.info(message)
            return response

    def _should_skip_logging(self, request: Request) -> bool:
        """判断是否应该跳过日志记录"""
        path = request.url.path
        for excluded_path in self.exclude_paths:
            if excluded_path.endswith('*'):
                if path.startswith(excluded_path[:-1]):
                    return True
            elif path == excluded_path:
                return True
        return False

    async def _read_body(self, request: Request) -> Optional[str]:
        """读取写请求的 JSON 请求体并过滤敏感字段"""
        if not self.log_request_body or request.method not in ("POST", "PUT", "PATCH"):
            return None
        if not request.headers.get("content-type", "").startswith("application/json"):
            return None
        raw = await request.body()
        if not raw:
            return None
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError):
            return f"[Invalid JSON data, length: {len(raw)} bytes]"
        self._filter_sensitive_data(data)
        return self._truncate_body(json.dumps(data, ensure_ascii=False))

    def _truncate_body(self, body: str) -> str:
        """截断过长的请求体"""
        if len(body) > self.max_body_length:
            return body[:self.max_body_length] + f"... [truncated, total length: {len(body)} chars]"
        return body

    def _filter_sensitive_data(self, data: Any) -> None:
        """过滤敏感数据"""
        if isinstance(data, dict):
            for key in list(data.keys()):
                if any(sensitive in key.lower() for sensitive in SENSITIVE_FIELDS):
                    data[key] = "[FILTERED]"
                elif isinstance(data[key], (dict, list)):
                    self._filter_sensitive_data(data[key])
        elif isinstance(data, list):
            for item in data:
                self._filter_sensitive_data(item)
