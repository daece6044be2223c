"""
Exception handlers for the Loopwell server.

Maps domain errors to their HTTP status and logs unhandled exceptions.
"""

from .global_handler import domain_exception_handler, global_exception_handler, setup_exception_handlers

__all__ = ["domain_exception_handler", "global_exception_handler", "setup_exception_handlers"]
