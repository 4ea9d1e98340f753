"""
Console logging with colour-coded levels.
Shared by the pipelines, the engine and the CLI.
"""

import logging
import sys

from colorama import init, Fore, Style

init(autoreset=True)


class ColoredFormatter(logging.Formatter):

    LEVEL_COLORS = {
        logging.DEBUG: Fore.CYAN,
        logging.INFO: Fore.GREEN,
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Fore.RED + Style.BRIGHT,
    }

    LEVEL_TAGS = {
        logging.DEBUG: "[*]",
        logging.INFO: "[+]",
        logging.WARNING: "[!]",
        logging.ERROR: "[-]",
        logging.CRITICAL: "[-]",
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, "")
        tag = self.LEVEL_TAGS.get(record.levelno, "[?]")
        message = super().format(record)
        return f"{color}{tag}{Style.RESET_ALL} {message}"


def _build_logger() -> logging.Logger:
    log = logging.getLogger("surfacehunter")
    if not log.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(ColoredFormatter("%(message)s"))
        log.addHandler(handler)
    log.setLevel(logging.INFO)
    log.propagate = False
    return log


logger = _build_logger()


def set_verbose(enabled: bool = True):
    logger.setLevel(logging.DEBUG if enabled else logging.INFO)


def set_silent(enabled: bool = True):
    logger.setLevel(logging.ERROR if enabled else logging.INFO)
