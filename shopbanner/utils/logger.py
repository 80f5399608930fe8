"""日志工具模块.

控制台输出到 stderr（stdout 留给命令行的汇总和规则说明），同时写入轮转日志文件，
错误级别另写 error.log。项目内的日志记录器统一挂在 "shopbanner" 之下，
set_log_level 一次调整全部。
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler

from shopbanner.utils.constants import LOG_DIR

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024  # 10MB
LOG_FILE_BACKUP_COUNT = 5

# 项目日志记录器的公共前缀
ROOT_LOGGER_NAME = "shopbanner"

_log_level: int = logging.INFO
_configured: bool = False


class ColoredFormatter(logging.Formatter):
    """终端彩色级别名."""

    COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        # 在副本上着色，文件日志里不出现颜色码
        record = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelno, "")
        record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


def _file_handler(filename: str, level: int) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        LOG_DIR / filename,
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    return handler


def _configure() -> logging.Logger:
    """首次调用时给项目根日志记录器挂上处理器."""
    global _configured
    project_logger = logging.getLogger(ROOT_LOGGER_NAME)
    if _configured:
        return project_logger

    LOG_DIR.mkdir(parents=True, exist_ok=True)
    project_logger.setLevel(_log_level)

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(ColoredFormatter(LOG_FORMAT, DATE_FORMAT))
    project_logger.addHandler(console)
    project_logger.addHandler(_file_handler("app.log", logging.NOTSET))
    project_logger.addHandler(_file_handler("error.log", logging.ERROR))

    _configured = True
    return project_logger


def setup_logger(name: str) -> logging.Logger:
    """返回模块日志记录器.

    Args:
        name: 通常为 __name__，应位于 shopbanner 包下

    Returns:
        日志记录器，级别继承自项目根日志记录器
    """
    _configure()
    return logging.getLogger(name)


def set_log_level(level: int | str) -> None:
    """设置项目日志级别（error.log 始终只记录 ERROR 及以上）."""
    global _log_level
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    _log_level = level
    _configure().setLevel(level)
