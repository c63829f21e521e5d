"""
EONTA CLI - command line tools for listener sessions.

Usage:
    eonta-cli start comp-7
    eonta-cli stop
    eonta-cli probe config/eonta_session/session_config.yaml 40.4165,-3.7038
"""

from .cli import main

__all__ = ["main"]
