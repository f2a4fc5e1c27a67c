import logging
import sys
from pathlib import Path
from typing import Any, Dict, List

from loguru import logger

from lemmy_blog.core.config import settings

# 请求日志由中间件统一输出；httpx 会为每次 Lemmy / GitHub 调用打一行 INFO
QUIET_LOGGERS = {
    "uvicorn.access": logging.WARNING,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
}

# 标准 LogRecord 自带的属性，其余的视为调用方通过 extra= 传入的字段
_RECORD_ATTRS = set(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {"message", "asctime"}

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "{extra[request_id]: <36} | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "{message}\n"
)


class InterceptHandler(logging.Handler):
    """
    把标准 logging 的记录转交给 loguru

    在 logger.contextualize(request_id=...) 中产生的标准日志同样带上 request_id，
    调用方用 extra= 传入的字段会绑定到 loguru 的 extra 上
    """

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        fields = {key: value for key, value in record.__dict__.items() if key not in _RECORD_ATTRS}
        logger.bind(**fields).opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _format_record(record: Dict[str, Any]) -> str:
    record["extra"].setdefault("request_id", "-")
    return LOG_FORMAT


def _build_handlers(log_level: str, json_logs: bool, log_file: str | None) -> List[Dict[str, Any]]:
    handlers: List[Dict[str, Any]] = [
        {"sink": sys.stdout, "serialize": json_logs, "level": log_level, "format": _format_record},
    ]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append({
            "sink": str(log_path),
            "serialize": json_logs,
            "level": log_level,
            "format": _format_record,
            "rotation": "00:00",
            "retention": "30 days",
            "compression": "zip",
        })
    return handlers


def setup_logging(
    log_level: str | None = None,
    json_logs: bool | None = None,
    log_file: str | None = None,
) -> None:
    """
    设置日志系统，未传入的参数从 settings.logging 读取

    Args:
        log_level: 日志级别
        json_logs: 是否输出 JSON
        log_file: 日志文件路径，为空时只输出到 stdout
    """
    log_level = log_level or settings.logging.LEVEL
    json_logs = settings.logging.JSON if json_logs is None else json_logs
    log_file = log_file or settings.logging.FILE

    logging.root.handlers = [InterceptHandler()]
    logging.root.setLevel(log_level)

    for name in list(logging.root.manager.loggerDict.keys()):
        logging_logger = logging.getLogger(name)
        logging_logger.handlers = []
        logging_logger.propagate = True

    for name, level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(level)

    logger.configure(
        handlers=_build_handlers(log_level, json_logs, log_file),
        extra={"request_id": "-"},
    )

    logger.info(f"日志系统已初始化: level={log_level}, json={json_logs}, file={log_file or 'None'}")
