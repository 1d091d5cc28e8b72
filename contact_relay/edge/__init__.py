"""
Edge Host
=========
AWS Lambda entry point.
"""

from contact_relay.edge.lambda_handler import get_pipeline, handle_event, handler, reset_pipeline

__all__ = [
    "get_pipeline",
    "handle_event",
    "handler",
    "reset_pipeline",
]
