from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class RideResult:
    """Result object for ride operations."""
    success: bool
    ride: Optional[Any] = None
    ride_request: Optional[Any] = None
    payment: Optional[Any] = None
    message: str = ""
    extra: Optional[Dict[str, Any]] = None
