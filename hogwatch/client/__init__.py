"""Client package public exports."""

from .dispatcher import RequestDispatcher, parse_request

__all__ = ["RequestDispatcher", "parse_request"]
