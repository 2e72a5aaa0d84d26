import logging
import sys
from typing import Optional

logger = logging.getLogger("gitclient")

_handler: Optional[logging.Handler] = None


def configure_logging(debug: bool):
    """
    Send gitclient log records to the current stdout.

    Debug output names the emitting module, normal output is the bare message.
    Calling it again replaces the handler installed by the previous call.
    """
    global _handler
    if _handler is not None:
        logger.removeHandler(_handler)

    _handler = logging.StreamHandler(sys.stdout)
    if debug:
        _handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    else:
        _handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(_handler)
    logger.setLevel(logging.DEBUG if debug else logging.INFO)
