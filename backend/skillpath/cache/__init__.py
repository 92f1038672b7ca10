"""In-process coordination shared across planning services."""

from .single_flight import SingleFlight

__all__ = ["SingleFlight"]
