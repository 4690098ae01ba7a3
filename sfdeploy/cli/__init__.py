# -*- coding: utf-8 -*-
"""
CLI - sfdeploy
==============

Command-line interface.
"""

from .main import CLI, main, run_cli
from .output import Color, Output

__all__ = ['CLI', 'main', 'run_cli', 'Color', 'Output']
