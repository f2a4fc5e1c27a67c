from contextlib import asynccontextmanager
import logging
from fastapi import FastAPI, Request
from lemmy_blog.api import router
from lemmy_blog.core.config import settings
from lemmy_blog.api.middleware.logging import RequestResponseLoggingMiddleware
from lemmy_blog.core.logging import setup_logging
from lemmy_blog.infrastructure.storage import build_mirror, build_post_store
from lemmy_blog.infrastructure.utils.common import create_exception_handlers, get_current_time
from lemmy_blog.modules.auth.service import AuthService
from lemmy_blog.modules.posts.schemas import StorageInfo
from lemmy_blog.modules.posts.service import PostService

# 配置日志系统
setup_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    应用生命周期管理

    存储后端连接失败时直接抛出异常终止启动
    """
    store = build_post_store(settings)
    await store.startup()
    mirror = build_mirror(settings)

    post_service = PostService(store, mirror=mirror)
    app.state.post_service = post_service
    app.state.auth_service = AuthService()

    if settings.posts.SEED_WELCOME_POST:
        try:
            await post_service.ensure_welcome_post()
        except Exception as e:
            logger.warning(f"欢迎帖初始化失败: {e}")

    logger.info(f"应用启动成功 (storage={store.storage_type}, mirror={'on' if mirror else 'off'})")

    yield

    try:
        if mirror is not None:
            await mirror.aclose()
        await store.shutdown()
        logger.info("应用关闭成功")
    except Exception as e:
        logger.error(f"关闭失败: {e}")


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Blog API with Lemmy account login and pluggable post storage",
    version=settings.VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    exception_handlers=create_exception_handlers(),
    lifespan=lifespan
)

app.add_middleware(
    RequestResponseLoggingMiddleware,
    log_request_body=True,
    max_body_length=4096,
    exclude_paths=[
        "/docs",
        "/redoc",
        "/openapi.json",
        "/health",
    ],
)


@app.get("/health")
async def health_check(request: Request):
    """
    健康检查端点

    - 无需认证
    - 返回当前使用的存储后端
    """
    service = getattr(request.app.state, "post_service", None)
    storage = None
    if service is not None:
        storage = StorageInfo(
            storage_type=service.store.storage_type,
            persistent=service.store.persistent,
            details={"backend": settings.storage.BACKEND},
        )
    return {
        "status": "ok",
        "service": "lemmy-blog",
        "storage": storage.model_dump() if storage else None,
        "timestamp": get_current_time().isoformat()
    }

# 包含API路由
app.include_router(router, prefix="/api")
