"""Logging configuration for the servercraft MCP server.

Provides configurable logging with:
- File-based logging with rotation
- Console output for real-time debugging
- Performance timing decorators for round-trip analysis
- Structured context (server_id, operation type)

Environment Variables:
    SERVERCRAFT_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
    SERVERCRAFT_LOG_FILE: Path to log file (default: ~/.servercraft/servercraft.log)
    SERVERCRAFT_LOG_MAX_SIZE: Max log file size in MB (default: 10)
    SERVERCRAFT_LOG_BACKUPS: Number of backup files to keep (default: 5)

Usage:
    from mcp_app_server.utils.logging_config import setup_logging, timed

    setup_logging()  # Call once at startup

    @timed("execute")
    async def execute(self, operation):
        ...

    # Or use context manager for sections:
    async with timed_section("command:AddQueue", server_id="wildfly-dev"):
        ...
"""
import asyncio
import functools
import logging
import os
import time
from contextlib import contextmanager, asynccontextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Callable, Any

# Performance logger - separate from main logger for easy filtering
perf_logger = logging.getLogger("servercraft.perf")


def get_log_level() -> int:
    """Get log level from environment."""
    level_str = os.environ.get("SERVERCRAFT_LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_str, logging.INFO)


def get_log_file() -> Path:
    """Get log file path from environment."""
    default_path = Path.home() / ".servercraft" / "servercraft.log"
    path_str = os.environ.get("SERVERCRAFT_LOG_FILE", str(default_path))
    return Path(path_str)


def setup_logging() -> None:
    """Configure logging for the application.

    Sets up:
    - Console handler (INFO+ by default, respects SERVERCRAFT_LOG_LEVEL)
    - File handler with rotation (DEBUG level - captures everything)
    - Performance logger for timing metrics
    """
    log_level = get_log_level()
    log_file = get_log_file()
    max_size_mb = int(os.environ.get("SERVERCRAFT_LOG_MAX_SIZE", "10"))
    backup_count = int(os.environ.get("SERVERCRAFT_LOG_BACKUPS", "5"))

    log_file.parent.mkdir(parents=True, exist_ok=True)

    main_format = logging.Formatter(
        "%(asctime)s.%(msecs)03d | %(name)-30s | %(levelname)-7s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    perf_format = logging.Formatter(
        "%(asctime)s.%(msecs)03d | PERF | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    # stdout belongs to the MCP stdio transport; StreamHandler writes to stderr
    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(main_format)

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=max_size_mb * 1024 * 1024,
        backupCount=backup_count,
        encoding="utf-8"
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(main_format)

    perf_log_file = log_file.parent / "servercraft-perf.log"
    perf_handler = RotatingFileHandler(
        perf_log_file,
        maxBytes=max_size_mb * 1024 * 1024,
        backupCount=backup_count,
        encoding="utf-8"
    )
    perf_handler.setLevel(logging.DEBUG)
    perf_handler.setFormatter(perf_format)

    root_logger = logging.getLogger("servercraft")
    root_logger.setLevel(logging.DEBUG)  # Capture all, handlers filter
    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)

    package_logger = logging.getLogger("mcp_app_server")
    package_logger.setLevel(logging.DEBUG)
    package_logger.addHandler(console_handler)
    package_logger.addHandler(file_handler)

    # perf records also reach the console through the servercraft logger
    perf_logger.setLevel(logging.DEBUG)
    perf_logger.addHandler(perf_handler)

    root_logger.info(f"Logging initialized: level={logging.getLevelName(log_level)}, file={log_file}")
    perf_logger.info(f"Performance logging to: {perf_log_file}")


def _format_perf(operation: str, server_id: Optional[str], elapsed: float, status: str, extra_str: str = "") -> str:
    msg = f"{operation:24s} | {server_id or 'N/A':15s} | {elapsed:8.2f}ms | {status}"
    if extra_str:
        msg += f" | {extra_str}"
    return msg


def timed(operation: str, server_id: Optional[str] = None):
    """Decorator to log execution time of sync/async functions.

    Args:
        operation: Name of the operation (e.g., "connect", "execute")
        server_id: Optional server identifier (can also be inferred from self.server_id)
    """
    def resolve_server(args) -> Optional[str]:
        if server_id is None and args and hasattr(args[0], "server_id"):
            return args[0].server_id
        return server_id

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs) -> Any:
            srv = resolve_server(args)
            start = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                elapsed = (time.perf_counter() - start) * 1000
                perf_logger.warning(_format_perf(operation, srv, elapsed, f"FAIL: {e}"))
                raise
            elapsed = (time.perf_counter() - start) * 1000
            perf_logger.info(_format_perf(operation, srv, elapsed, "OK"))
            return result

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs) -> Any:
            srv = resolve_server(args)
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                elapsed = (time.perf_counter() - start) * 1000
                perf_logger.warning(_format_perf(operation, srv, elapsed, f"FAIL: {e}"))
                raise
            elapsed = (time.perf_counter() - start) * 1000
            perf_logger.info(_format_perf(operation, srv, elapsed, "OK"))
            return result

        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator


@asynccontextmanager
async def timed_section(operation: str, server_id: Optional[str] = None, **extra):
    """Async context manager for timing code sections.

    Usage:
        async with timed_section("command:AddQueue", server_id="wildfly-dev", queue="Q1"):
            await apply_command(command, ctx)
    """
    start = time.perf_counter()
    extra_str = " | ".join(f"{k}={v}" for k, v in extra.items()) if extra else ""

    try:
        yield
    except Exception as e:
        elapsed = (time.perf_counter() - start) * 1000
        perf_logger.warning(_format_perf(operation, server_id, elapsed, f"FAIL: {e}", extra_str))
        raise
    elapsed = (time.perf_counter() - start) * 1000
    perf_logger.info(_format_perf(operation, server_id, elapsed, "OK", extra_str))


@contextmanager
def timed_section_sync(operation: str, server_id: Optional[str] = None, **extra):
    """Sync context manager for timing code sections."""
    start = time.perf_counter()
    extra_str = " | ".join(f"{k}={v}" for k, v in extra.items()) if extra else ""

    try:
        yield
    except Exception as e:
        elapsed = (time.perf_counter() - start) * 1000
        perf_logger.warning(_format_perf(operation, server_id, elapsed, f"FAIL: {e}", extra_str))
        raise
    elapsed = (time.perf_counter() - start) * 1000
    perf_logger.info(_format_perf(operation, server_id, elapsed, "OK", extra_str))
