"""
Dependency Injection Setup
==========================
FastAPI dependency functions for the server host.
"""

from typing import Annotated

from fastapi import Depends, Request

from contact_relay.app.api.pipeline import RelayPipeline


# =============================================================================
# PIPELINE
# =============================================================================

def get_relay_pipeline(request: Request) -> RelayPipeline:
    """
    Pipeline dependency for the relay route.

    The application factory stores one pipeline on `app.state`, so the
    rate-limit counters are shared by every request the process serves.
    """
    return request.app.state.pipeline


PipelineDep = Annotated[RelayPipeline, Depends(get_relay_pipeline)]


__all__ = [
    "get_relay_pipeline",
    "PipelineDep",
]
