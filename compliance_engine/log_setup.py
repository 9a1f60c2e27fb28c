# compliance_engine/log_setup.py
import logging
import os

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logger(name: str, log_dir: str = 'logs', level: str = 'INFO') -> logging.Logger:
    """Sets up a logger that writes to <log_dir>/<name>.log."""
    if not os.path.exists(log_dir):
        os.makedirs(log_dir)
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    if not logger.handlers:
        handler = logging.FileHandler(os.path.join(log_dir, f"{name}.log"))
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    return logger
