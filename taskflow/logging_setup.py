from __future__ import annotations

import logging
import sys

_HANDLER_NAME = "taskflow-console"


class _ThirdPartyNoiseFilter(logging.Filter):
    """
    Keep taskflow logs, but only let WARNING+ through from everything else
    (google-auth, urllib3, grpc are chatty at INFO).
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name == "taskflow" or record.name.startswith("taskflow."):
            return True
        return record.levelno >= logging.WARNING


def setup_logging(level: str | int = "INFO") -> None:
    """
    Attach a console handler to the root logger.

    Streamlit reruns the script on every interaction, so this is idempotent:
    a second call only adjusts the level.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()
    for h in root.handlers:
        if h.get_name() == _HANDLER_NAME:
            h.setLevel(level)
            logging.getLogger("taskflow").setLevel(level)
            return

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    ch = logging.StreamHandler(sys.stderr)
    ch.set_name(_HANDLER_NAME)
    ch.setLevel(level)
    ch.setFormatter(fmt)
    ch.addFilter(_ThirdPartyNoiseFilter())
    root.addHandler(ch)

    logging.getLogger("taskflow").setLevel(level)
    logging.captureWarnings(True)
