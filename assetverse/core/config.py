# assetverse/core/config.py
import os
import sys
import logging
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger

# --- Load .env (project root) if present ---
project_root = Path(__file__).resolve().parent.parent.parent
dotenv_path = project_root / ".env"
if dotenv_path.is_file():
    logger.debug(f"Loading environment variables from: {dotenv_path}")
    load_dotenv(dotenv_path=dotenv_path)
else:
    logger.debug(f".env file not found at {dotenv_path}. Relying on system environment variables.")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Invalid {name}={raw!r}. Using default: {default}.")
        return default


# --- Intercept Handler (stdlib logging -> Loguru) ---
class InterceptHandler(logging.Handler):
    """Routes records from the standard logging module into Loguru."""
    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1
        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging():
    """Configure Loguru sinks and intercept standard logging."""
    log_level_name = os.getenv("LOG_LEVEL", "INFO").upper()

    log_format = (
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
    )
    log_file_path = Path(os.getenv("LOG_FILE_PATH", "logs/assetverse_{time:YYYY-MM-DD}.log"))
    log_rotation = os.getenv("LOG_ROTATION", "1 day")
    log_retention = os.getenv("LOG_RETENTION", "7 days")
    log_serialize = _env_bool("LOG_SERIALIZE", "false")

    logger.remove()
    logger.add(sys.stderr, level=log_level_name, format=log_format, colorize=True)

    if _env_bool("LOG_TO_FILE", "true"):
        try:
            log_file_path.parent.mkdir(parents=True, exist_ok=True)
            logger.add(
                log_file_path,
                level=log_level_name,
                format=log_format,
                rotation=log_rotation,
                retention=log_retention,
                serialize=log_serialize,
                enqueue=True,
                backtrace=True,
                diagnose=False,
                encoding="utf-8",
            )
            logger.info(f"File logging enabled at: {log_file_path}")
        except OSError as e:
            logger.error(f"Failed to setup file logging at {log_file_path}: {e}")

    # Route stdlib loggers (uvicorn, motor, our logging.getLogger modules) through Loguru
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in list(logging.root.manager.loggerDict):
        if name.startswith(("uvicorn", "fastapi", "starlette")):
            existing_logger = logging.getLogger(name)
            existing_logger.handlers = [InterceptHandler()]
            existing_logger.propagate = False

    logger.info(f"Loguru logging setup complete. Level: {log_level_name}")


# --- Identity provider (bearer token verification) ---
SECRET_KEY: str = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    logger.critical("FATAL: SECRET_KEY environment variable is not set.")
    raise ValueError("SECRET_KEY environment variable is not set.")

ALGORITHM: str = os.getenv("ALGORITHM", "HS256")
IDENTITY_AUDIENCE: str = os.getenv("IDENTITY_AUDIENCE", "")

# --- Database ---
MONGODB_URL: str = os.getenv("MONGODB_URL")
if not MONGODB_URL:
    logger.critical("FATAL: MONGODB_URL environment variable is not set.")
    raise ValueError("MONGODB_URL environment variable is not set.")

DATABASE_NAME: str = os.getenv("DATABASE_NAME", "AssetVerseDB")
TRANSACTION_MAX_ATTEMPTS: int = max(1, _env_int("TRANSACTION_MAX_ATTEMPTS", 3))

# --- Rate limiting ---
RATE_LIMIT_ENABLED: bool = _env_bool("RATE_LIMIT_ENABLED", "true")

# --- Payments ---
STRIPE_SECRET_KEY: str = os.getenv("STRIPE_SECRET_KEY", "")
STRIPE_API_BASE: str = os.getenv("STRIPE_API_BASE", "https://api.stripe.com")
CLIENT_DOMAIN: str = os.getenv("CLIENT_DOMAIN", "http://localhost:5173").rstrip("/")
PAYMENT_CURRENCY: str = os.getenv("PAYMENT_CURRENCY", "usd")

# --- Directory ---
BIRTHDAY_WINDOW_DAYS: int = _env_int("BIRTHDAY_WINDOW_DAYS", 30)

logger.info(f"Token algorithm: {ALGORITHM}")
logger.info(f"Database Name: {DATABASE_NAME}")
