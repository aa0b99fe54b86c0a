"""
日志配置
"""
import logging
import logging.config
from pathlib import Path
from typing import Any, Dict, Optional

from app.core.config import settings


def get_logging_config(level: Optional[str] = None, log_dir: Optional[str] = None) -> Dict[str, Any]:
    """
    生成 dictConfig 配置

    控制台输出 + 按大小滚动的 <LOG_DIR>/app.log
    """
    level = (level or settings.LOG_LEVEL).upper()
    log_dir = Path(log_dir or settings.LOG_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "simple": {"format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "simple",
                "stream": "ext://sys.stdout",
            },
            "file": {
                "class": "logging.handlers.RotatingFileHandler",
                "level": level,
                "formatter": "simple",
                "filename": str(log_dir / "app.log"),
                "maxBytes": 10 * 1024 * 1024,
                "backupCount": 5,
                "encoding": "utf-8",
            },
        },
        "loggers": {
            "app": {"level": level, "handlers": ["console", "file"], "propagate": False},
            "main": {"level": level, "handlers": ["console", "file"], "propagate": False},
            "uvicorn": {"level": "INFO", "handlers": ["console", "file"], "propagate": False},
            # SQL 语句只在 DEBUG 时输出
            "sqlalchemy.engine": {"level": "WARNING", "handlers": ["console"], "propagate": False},
        },
        "root": {"level": "WARNING", "handlers": ["console"]},
    }


def setup_logging(level: Optional[str] = None, log_dir: Optional[str] = None) -> None:
    """初始化日志，进程启动时调用一次"""
    logging.config.dictConfig(get_logging_config(level, log_dir))
