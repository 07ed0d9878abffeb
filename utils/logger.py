"""
测试运行日志配置

- 控制台输出（TTY 下按级别着色）
- 主日志按天轮转，错误日志按大小轮转
- 延迟初始化，避免重复注册处理器
- 步骤/耗时跟踪、Playwright 控制台转发、Allure 附件
"""

import atexit
import logging
import sys
import threading
import traceback
from contextlib import contextmanager
from datetime import datetime, timezone
from functools import wraps
from pathlib import Path
from typing import Callable, Dict, List, Optional

import allure

from config import settings


# ==================== 配置集中管理 ====================

class LogDefaults:
    """日志配置集中管理"""
    LOG_DIR = Path(settings.log.log_dir)
    LOG_LEVEL = settings.log.log_level.upper()
    MAIN_LOG_FILE = settings.log.log_file
    BACKUP_COUNT = 7
    MAX_BYTES = 10 * 1024 * 1024  # 10MB
    ENABLE_COLORS = sys.stdout.isatty()
    CONSOLE_FORMAT = "%(asctime)s %(levelname)s [%(name)s:%(lineno)d] %(message)s"
    FILE_FORMAT = "%(asctime)s %(levelname)s [%(name)s:%(module)s:%(funcName)s:%(lineno)d] %(message)s"
    # 工具模块使用 logging.getLogger(__name__)，与主日志共用处理器
    COMPONENT_LOGGERS = ("utils",)


# ==================== 彩色格式化器 ====================

class ColorCodes:
    RESET = "\x1b[0m"
    CYAN = "\x1b[36m"
    GREEN = "\x1b[32m"
    YELLOW = "\x1b[33m"
    RED = "\x1b[31m"
    BG_RED = "\x1b[41m"
    WHITE = "\x1b[37m"
    BOLD = "\x1b[1m"
    CRITICAL = BOLD + BG_RED + WHITE


class ColoredFormatter(logging.Formatter):
    LEVEL_COLORS = {
        logging.DEBUG: ColorCodes.CYAN,
        logging.INFO: ColorCodes.GREEN,
        logging.WARNING: ColorCodes.YELLOW,
        logging.ERROR: ColorCodes.RED,
        logging.CRITICAL: ColorCodes.CRITICAL,
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, "")
        if color and LogDefaults.ENABLE_COLORS:
            original = record.levelname
            try:
                record.levelname = f"{color}{record.levelname}{ColorCodes.RESET}"
                return super().format(record)
            finally:
                record.levelname = original  # 确保恢复
        return super().format(record)


# ==================== 处理器工厂 ====================

class HandlerFactory:
    """日志处理器工厂 - 统一管理资源"""
    _handlers: List[logging.Handler] = []
    _lock = threading.Lock()

    @classmethod
    def _ensure_log_dir(cls) -> Path:
        try:
            LogDefaults.LOG_DIR.mkdir(parents=True, exist_ok=True)
            return LogDefaults.LOG_DIR
        except OSError as e:
            sys.stderr.write(f"Failed to create log directory: {e}\n")
            return Path.cwd()  # 降级到当前目录

    @classmethod
    def create_timed_handler(cls, filename: str, level: int, when: str = "midnight") -> logging.Handler:
        from logging.handlers import TimedRotatingFileHandler
        handler = TimedRotatingFileHandler(
            filename=cls._ensure_log_dir() / filename,
            when=when,
            interval=1,
            backupCount=LogDefaults.BACKUP_COUNT,
            encoding="utf-8",
            delay=True  # 延迟打开文件直到首次写入
        )
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(LogDefaults.FILE_FORMAT, "%Y-%m-%d %H:%M:%S"))
        cls._register(handler)
        return handler

    @classmethod
    def create_rotating_handler(cls, filename: str, level: int, max_bytes: int) -> logging.Handler:
        from logging.handlers import RotatingFileHandler
        handler = RotatingFileHandler(
            filename=cls._ensure_log_dir() / filename,
            maxBytes=max_bytes,
            backupCount=5,
            encoding="utf-8",
            delay=True
        )
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(LogDefaults.FILE_FORMAT, "%Y-%m-%d %H:%M:%S"))
        cls._register(handler)
        return handler

    @classmethod
    def create_console_handler(cls, level: int, enable_colors: bool) -> logging.Handler:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(level)
        if enable_colors and LogDefaults.ENABLE_COLORS:
            handler.setFormatter(ColoredFormatter(LogDefaults.CONSOLE_FORMAT, "%H:%M:%S"))
        else:
            handler.setFormatter(logging.Formatter(LogDefaults.CONSOLE_FORMAT, "%Y-%m-%d %H:%M:%S"))
        cls._register(handler)
        return handler

    @classmethod
    def _register(cls, handler: logging.Handler) -> None:
        with cls._lock:
            cls._handlers.append(handler)

    @classmethod
    def cleanup(cls) -> None:
        """进程退出时关闭所有处理器"""
        with cls._lock:
            for handler in cls._handlers:
                try:
                    handler.close()
                except OSError:
                    pass
            cls._handlers.clear()


atexit.register(HandlerFactory.cleanup)


# ==================== 主日志配置 ====================

_setup_lock = threading.Lock()


def setup_logger(
    name: str = "automation",
    log_level: Optional[str] = None,
    log_to_console: bool = True,
    log_to_file: bool = True,
    enable_colors: bool = True,
) -> logging.Logger:
    """
    创建并配置日志器（重复调用直接返回已配置的实例）

    Args:
        name: 日志器名称
        log_level: 日志级别，默认取配置 log.log_level
        log_to_console: 是否输出到控制台
        log_to_file: 是否写入日志文件
        enable_colors: 控制台是否着色（仅 TTY 生效）
    """
    logger = logging.getLogger(name)

    with _setup_lock:
        if logger.handlers:
            return logger

        level = getattr(logging, (log_level or LogDefaults.LOG_LEVEL).upper(), logging.INFO)
        logger.setLevel(level)
        # 交给 pytest 的 caplog / log_cli 也能收到
        logger.propagate = True

        if log_to_console:
            logger.addHandler(HandlerFactory.create_console_handler(logging.DEBUG, enable_colors))

        if log_to_file:
            # 主日志（按天轮转）
            logger.addHandler(HandlerFactory.create_timed_handler(LogDefaults.MAIN_LOG_FILE, logging.DEBUG))
            # 错误日志（按大小轮转）
            logger.addHandler(HandlerFactory.create_rotating_handler(
                f"error_{datetime.now().strftime('%Y%m%d')}.log",
                logging.ERROR,
                LogDefaults.MAX_BYTES
            ))

        if name == "automation":
            _share_handlers(logger, level)
            logger.debug("=" * 70)
            logger.debug("Logger initialized: %s | Level: %s", name, logging.getLevelName(level))
            logger.debug("Log directory: %s", LogDefaults.LOG_DIR.resolve())
            logger.debug("Environment: %s | Base URL: %s", settings.env, settings.base_url)
            logger.debug("UTC Time: %s", datetime.now(timezone.utc).isoformat())
            logger.debug("=" * 70)

        return logger


def _share_handlers(main: logging.Logger, level: int) -> None:
    """把主日志处理器挂到组件日志器上，使其日志进入主日志文件"""
    for name in LogDefaults.COMPONENT_LOGGERS:
        component = logging.getLogger(name)
        component.setLevel(level)
        for handler in main.handlers:
            if handler not in component.handlers:
                component.addHandler(handler)


class LazyLogger:
    """延迟初始化日志记录器，避免模块加载时副作用"""
    _instances: Dict[str, logging.Logger] = {}
    _lock = threading.Lock()

    @classmethod
    def get(cls, name: str, **kwargs) -> logging.Logger:
        if name not in cls._instances:
            with cls._lock:
                if name not in cls._instances:
                    cls._instances[name] = setup_logger(name, **kwargs)
        return cls._instances[name]


# 公共API
logger = LazyLogger.get("automation")


# ==================== 辅助工具 ====================

def log_exception(
    exc: Optional[BaseException] = None,
    context: str = "",
    log: logging.Logger = logger,
) -> None:
    """记录异常及其堆栈"""
    if exc is None:
        exc = sys.exc_info()[1]
        if exc is None:
            return

    tb = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    msg = f"Exception in {context}: {exc}" if context else str(exc)
    log.error("%s\nTraceback:\n%s", msg, tb)


def log_step(step_name: str, log: logging.Logger = logger) -> Callable:
    """步骤跟踪装饰器（同时生成 Allure step）"""
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            log.info("▶️ Step: %s", step_name)
            with allure.step(step_name):
                try:
                    result = func(*args, **kwargs)
                except Exception as e:
                    log.error("❌ Step failed: %s | Error: %s", step_name, e)
                    raise
            log.info("✅ Step completed: %s", step_name)
            return result
        return wrapper
    return decorator


@contextmanager
def log_duration(step_name: str, log: logging.Logger = logger):
    """执行时间跟踪上下文管理器"""
    start = datetime.now()
    log.debug("⏱️ Starting: %s", step_name)
    try:
        yield
    finally:
        duration_ms = (datetime.now() - start).total_seconds() * 1000
        log.debug("✅ Completed: %s (%.2fms)", step_name, duration_ms)


def setup_playwright_logging(page, log: logging.Logger = logger) -> None:
    """把浏览器控制台和页面异常转发到日志"""
    if not hasattr(page, "on"):
        log.warning("Invalid Playwright page object")
        return

    level_map = {
        "error": log.error,
        "warning": log.warning,
        "info": log.info,
        "log": log.debug,
    }

    def console_handler(msg):
        handler = level_map.get(getattr(msg, "type", "log"), log.debug)
        handler("[Browser] %s", getattr(msg, "text", "") or str(msg))

    page.on("console", console_handler)
    page.on("pageerror", lambda err: log.error("[Page Error] %s", err))


def attach_logs_to_allure(max_chars: int = 100_000) -> None:
    """把主日志附加到 Allure 报告"""
    log_file = LogDefaults.LOG_DIR / LogDefaults.MAIN_LOG_FILE
    if not log_file.exists() or log_file.stat().st_size == 0:
        return

    with open(log_file, "r", encoding="utf-8", errors="replace") as f:
        content = f.read()[-max_chars:]  # 限制附件大小，只保留末尾
    if content:
        allure.attach(content, name="test_run_logs", attachment_type=allure.attachment_type.TEXT)


__all__ = [
    "logger", "setup_logger", "LazyLogger", "LogDefaults", "HandlerFactory",
    "log_exception", "log_step", "log_duration",
    "setup_playwright_logging", "attach_logs_to_allure",
]
