import logging

LOG_FORMAT = (
    "%(asctime)s | %(levelname)s | %(name)s | %(funcName)s:%(lineno)d | %(message)s"
)
HANDLER_NAME = "sailo"


def setup_logging(level: str = "INFO") -> None:
    """根 logger 設定 (reload 時不重複加 handler)"""
    root = logging.getLogger()
    root.setLevel(level.upper())

    if any(h.get_name() == HANDLER_NAME for h in root.handlers):
        return

    handler = logging.StreamHandler()
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
