"""Data model for declared interactions and captured live requests."""

from __future__ import annotations

from pactmock.models.interaction import HttpMethod, Interaction, RequestSpec, ResponseSpec
from pactmock.models.live_request import LiveRequest

__all__ = ["HttpMethod", "Interaction", "RequestSpec", "ResponseSpec", "LiveRequest"]
