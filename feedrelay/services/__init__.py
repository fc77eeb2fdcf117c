"""Services that own resources and drive the delivery engine."""

from feedrelay.services.relay_service import RelayService

__all__ = ["RelayService"]
