# -*- coding: utf-8 -*-
"""
CLI Output - sfdeploy
=====================

Formatted and colored output for the deploy report.
"""

import sys
from enum import Enum
from typing import Optional


class Color(str, Enum):
    """ANSI color codes."""
    RESET = "\033[0m"
    RED = "\033[91m"
    GREEN = "\033[92m"
    CYAN = "\033[96m"
    GRAY = "\033[90m"


class Output:
    """Formatted output handler."""

    def __init__(self, stream=None):
        self.stream = stream or sys.stdout
        self._color_enabled = True

    def disable_color(self):
        """Disable colored output."""
        self._color_enabled = False

    def _colorize(self, text: str, color: Optional[Color] = None) -> str:
        """Apply color to text."""
        if not self._color_enabled or color is None:
            return text
        return f"{color.value}{text}{Color.RESET.value}"

    def print(self, text: str, color: Optional[Color] = None):
        """Print text with optional color."""
        print(self._colorize(text, color), file=self.stream)

    def success(self, text: str):
        """Print success message."""
        self.print(f"[OK] {text}", color=Color.GREEN)

    def error(self, text: str):
        """Print error message."""
        self.print(f"[ERROR] {text}", color=Color.RED)

    # Component outcomes

    def create(self, text: str):
        self.print(f"  [+] {text}", color=Color.GREEN)

    def update(self, text: str):
        self.print(f"  [~] {text}", color=Color.CYAN)

    def destroy(self, text: str):
        self.print(f"  [-] {text}", color=Color.RED)

    def no_change(self, text: str):
        self.print(f"  [=] {text}", color=Color.GRAY)

    def list(self, text: str, bullet: str = "-", indent: int = 2):
        """Print a list item."""
        self.print(f"{' ' * indent}{bullet} {text}")

    def list_error(self, text: str, indent: int = 2):
        """Print a list item flagged as error."""
        self.print(f"{' ' * indent}x {text}", color=Color.RED)
