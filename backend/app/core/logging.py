"""
日志配置：控制台 + 按大小滚动的文件日志
"""
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from app.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# 第三方库日志较多，默认只保留 WARNING 以上
_NOISY_LOGGERS = ("httpx", "httpcore", "openai", "urllib3", "asyncio")


def setup_logging(level: Optional[str] = None, log_file: Optional[Path] = None) -> None:
    """初始化根 logger；重复调用时会替换已有 handler。"""
    level_name = (level or settings.LOG_LEVEL or "INFO").upper()
    root = logging.getLogger()
    root.setLevel(getattr(logging, level_name, logging.INFO))
    for h in list(root.handlers):
        root.removeHandler(h)

    formatter = logging.Formatter(LOG_FORMAT)
    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    root.addHandler(console)

    path = log_file if log_file is not None else settings.LOG_FILE
    if path:
        try:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                path, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8"
            )
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)
        except OSError as e:
            root.warning("日志文件不可写，仅输出到控制台: %s", e)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
