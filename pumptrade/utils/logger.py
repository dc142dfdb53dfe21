import os
import sys

from loguru import logger


def setup_logger(
    *,
    json_logs: bool = False,
    level: str = "INFO",
    log_dir: str | None = "logs",
) -> None:
    """Configure loguru for the trade engine.

    Console level comes from LOG_LEVEL env, falling back to `level`.
    The file sink (skipped when log_dir is None) records DEBUG: every
    sub-order signature and failure reason lands there.
    """
    console_level = os.getenv("LOG_LEVEL", level).upper()
    logger.remove()

    # Tracebacks never render frame locals: signing frames hold the keypair
    if json_logs:
        logger.add(sys.stdout, serialize=True, level=console_level, diagnose=False)
    else:
        logger.add(
            sys.stdout,
            format=(
                "<green>{time:HH:mm:ss.SSS}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{name}</cyan>:<cyan>{line}</cyan> - "
                "<level>{message}</level>"
            ),
            level=console_level,
            colorize=True,
            diagnose=False,
        )

    if log_dir is None:
        return
    logger.add(
        os.path.join(log_dir, "pumptrade_{time:YYYY-MM-DD}.log"),
        rotation="20 MB",
        retention="7 days",
        compression="gz",
        level="DEBUG",
        serialize=json_logs,
        diagnose=False,
    )
