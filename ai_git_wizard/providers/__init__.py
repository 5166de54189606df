"""Language-model provider drivers."""

from .base import BaseDriver
from .openrouter_driver import OpenRouterDriver

__all__ = ["BaseDriver", "OpenRouterDriver"]
