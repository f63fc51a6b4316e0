import logging

NOISY_LOGGERS = ["spotipy",
                 "urllib3.connectionpool",
                 "httpx",
                 "httpcore",
                 "hpack"]

class WarningAndAboveNoisyFilter(logging.Filter):
    def filter(self, record):
        if not any(logger in record.name for logger in NOISY_LOGGERS): return True
        return record.levelno >= logging.WARNING

def setup_logging(console_level=logging.INFO):
    """
    Set up console logging for the service.
    Call this ONCE when the app is created; repeated calls replace the handler.
    """
    if isinstance(console_level, str):
        console_level = logging.getLevelName(console_level.upper())
        if not isinstance(console_level, int):
            console_level = logging.INFO

    console_handler = logging.StreamHandler()
    console_handler.setLevel(console_level)

    formatter = logging.Formatter(
        "[%(asctime)s] %(levelname)s [%(name)s-%(funcName)s:%(lineno)d] %(message)s",
        datefmt='%H:%M:%S'
    )
    console_handler.setFormatter(formatter)
    console_handler.addFilter(WarningAndAboveNoisyFilter())

    root_logger = logging.getLogger()
    root_logger.setLevel(console_level)
    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)

    logging.info(f"Logging initialized (console level: {logging.getLevelName(console_level).lower()})")
