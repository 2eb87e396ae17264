# fieldheat/__init__.py
"""
fieldheat: coupled current conduction and transient heating of a
field-emitting conductor (Q1 finite elements, lagged coupling).
"""
from __future__ import annotations

__version__ = "0.1.0"
