# -*- coding: utf-8 -*-
"""
Minimal logger; replace with structlog/loguru if desired.
"""
import sys, time

_VERBOSE = False


def set_verbose(flag: bool) -> None:
    global _VERBOSE
    _VERBOSE = bool(flag)


def is_verbose() -> bool:
    return _VERBOSE


def debug(msg: str):
    if _VERBOSE:
        print(f"[{time.strftime('%H:%M:%S')}] {msg}", file=sys.stdout)

def info(msg: str):  print(f"[{time.strftime('%H:%M:%S')}] {msg}", file=sys.stdout)
def warn(msg: str):  print(f"[{time.strftime('%H:%M:%S')}] WARNING: {msg}", file=sys.stderr)
def error(msg: str): print(f"[{time.strftime('%H:%M:%S')}] ERROR: {msg}", file=sys.stderr)
