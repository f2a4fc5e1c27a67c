import os
from typing import Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_env_file() -> str:
    """动态选择环境文件"""
    environment = os.getenv("ENVIRONMENT", "development").lower()
    if environment == "production":
        return ".env.prod"
    else:
        return ".env.dev"


ENV_FILE = get_env_file()

STORAGE_BACKENDS = ("memory", "redis", "github")


class SecuritySettings(BaseSettings):
    """会话令牌配置"""
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_HOURS: int = 24
    REFRESH_TOKEN_EXPIRE_DAYS: int = 30

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=[ENV_FILE],
        env_file_encoding="utf-8",
        extra="allow"
    )


class LoggingSettings(BaseSettings):
    """日志配置"""
    LEVEL: str = "INFO"
    JSON: bool = False
    FILE: Optional[str] = None

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=[ENV_FILE],
        env_file_encoding="utf-8",
        extra="allow"
    )


class StorageSettings(BaseSettings):
    """
    帖子存储配置

    BACKEND 在进程启动时决定使用哪个存储后端：
    - memory: 进程内字典，重启后数据丢失，仅适合开发和临时部署
    - redis: Redis 持久化存储
    - github: 以 Markdown 文件形式存放在 GitHub 仓库中
    """
    BACKEND: str = "memory"
    KEY_PREFIX: str = "posts:"

    @field_validator("BACKEND", mode="before")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        value = str(v).strip().lower()
        if value not in STORAGE_BACKENDS:
            raise ValueError(
                f"Unknown storage backend '{v}', expected one of {', '.join(STORAGE_BACKENDS)}"
            )
        return value

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        env_file=[ENV_FILE],
        env_file_encoding="utf-8",
        extra="allow"
    )


class RedisSettings(BaseSettings):
    """Redis 配置"""
    HOST: str = "redis"
    PORT: int = 6379
    PASSWORD: Optional[str] = None
    DB: int = 0
    URL: Optional[str] = None
    MAX_CONNECTIONS: int = 20
    SOCKET_TIMEOUT: int = 5

    @property
    def CONNECTION_URL(self) -> str:
        """获取 Redis 连接 URL"""
        if self.URL:
            return self.URL

        if self.PASSWORD:
            return f"redis://:{self.PASSWORD}@{self.HOST}:{self.PORT}/{self.DB}"
        else:
            return f"redis://{self.HOST}:{self.PORT}/{self.DB}"

    model_config = SettingsConfigDict(
        env_prefix="REDIS_",
        env_file=[ENV_FILE],
        env_file_encoding="utf-8",
        extra="allow"
    )


class GitHubSettings(BaseSettings):
    """GitHub 仓库配置（github 存储后端和新帖子镜像共用）"""
    TOKEN: str = ""
    REPO: str = ""
    BRANCH: Optional[str] = None
    POSTS_PATH: str = "posts"
    API_URL: str = "https://api.github.com"
    MIRROR_ENABLED: bool = True
    TIMEOUT: float = 10.0

    @property
    def configured(self) -> bool:
        return bool(self.TOKEN and self.REPO and "/" in self.REPO)

    model_config = SettingsConfigDict(
        env_prefix="GITHUB_",
        env_file=[ENV_FILE],
        env_file_encoding="utf-8",
        extra="allow"
    )


class LemmySettings(BaseSettings):
    """Lemmy 实例访问配置"""
    SCHEME: str = "https"
    TIMEOUT: float = 10.0

    model_config = SettingsConfigDict(
        env_prefix="LEMMY_",
        env_file=[ENV_FILE],
        env_file_encoding="utf-8",
        extra="allow"
    )


class PostSettings(BaseSettings):
    """帖子列表与初始化配置"""
    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 50
    SEED_WELCOME_POST: bool = False

    model_config = SettingsConfigDict(
        env_prefix="POSTS_",
        env_file=[ENV_FILE],
        env_file_encoding="utf-8",
        extra="allow"
    )


class Settings(BaseSettings):
    """主配置类"""
    # 基本配置
    PROJECT_NAME: str = "Lemmy Blog API"
    VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"

    # 对外地址，用于生成帖子链接
    SITE_URL: str = Field(default="http://localhost:3000")

    # 子配置
    security: SecuritySettings = SecuritySettings()
    logging: LoggingSettings = LoggingSettings()
    storage: StorageSettings = StorageSettings()
    redis: RedisSettings = RedisSettings()
    github: GitHubSettings = GitHubSettings()
    lemmy: LemmySettings = LemmySettings()
    posts: PostSettings = PostSettings()

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=[ENV_FILE],
        env_file_encoding="utf-8",
        extra="allow"
    )


settings = Settings()
