import logging
import os
import sys
from logging.handlers import RotatingFileHandler

ENV_LOG_DIR = "VEG_LEDGER_LOG_DIR"
LOG_FILE_NAME = "app.log"


def get_logger(name):
    logger = logging.getLogger(name)
    logger.setLevel(logging.INFO)

    # Check if handlers are already added to avoid duplicates
    if not logger.handlers:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

        log_dir = os.getenv(ENV_LOG_DIR, "logs")
        os.makedirs(log_dir, exist_ok=True)

        # File Handler (Rotating)
        file_handler = RotatingFileHandler(
            os.path.join(log_dir, LOG_FILE_NAME),
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

        # Console Handler
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger
