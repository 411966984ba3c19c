"""Document-store operator compilers for descriptor predicates."""

from __future__ import annotations

from .null import compile_null
from .standard import compile_standard
from .string import compile_string
from .text import compile_text

__all__ = [
    "compile_standard",
    "compile_string",
    "compile_null",
    "compile_text",
]
