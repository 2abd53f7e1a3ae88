"""Terminal formatting for the admin CLI."""

import os
import sys


class CLIFormatter:
    """ANSI-coloured status messages; plain text when stdout is not a terminal."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    CYAN = "\033[36m"

    @staticmethod
    def enabled() -> bool:
        return sys.stdout.isatty() and "NO_COLOR" not in os.environ

    @classmethod
    def colorize(cls, text: str, color: str) -> str:
        if not cls.enabled():
            return text
        return f"{color}{text}{cls.RESET}"

    @classmethod
    def success(cls, text: str) -> str:
        return cls.colorize(f"✓ {text}", cls.GREEN)

    @classmethod
    def warning(cls, text: str) -> str:
        return cls.colorize(f"! {text}", cls.YELLOW)

    @classmethod
    def error(cls, text: str) -> str:
        return cls.colorize(f"✗ {text}", cls.RED)

    @classmethod
    def info(cls, text: str) -> str:
        return cls.colorize(f"· {text}", cls.CYAN)

    @classmethod
    def header(cls, text: str) -> str:
        return "\n" + cls.colorize(text, cls.BOLD)

    @classmethod
    def field(cls, label: str, value: str, width: int = 12) -> str:
        return f"  {label + ':':<{width}} {value}"
