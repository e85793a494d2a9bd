"""
Driver matching service.

This module handles:
    - Listing open requests for a driver (minus the ones they rejected)
    - Accepting a request, which converts it into a ride
    - Rejecting a request
"""

from .engine import list_open_requests, accept_ride_request, reject_ride_request

__all__ = [
    "list_open_requests",
    "accept_ride_request",
    "reject_ride_request",
]
