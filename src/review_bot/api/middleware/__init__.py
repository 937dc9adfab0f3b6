"""API middleware package."""

from src.review_bot.api.middleware.logging import LoggingMiddleware

__all__ = ["LoggingMiddleware"]
