"""Compiler configuration."""
from .settings import CompilerSettings

__all__ = ["CompilerSettings"]
