"""Storefront Foundation Application -- acting principal and time source."""

from storefront.foundation.application.clock import SystemClock
from storefront.foundation.application.context import acting_as, current_principal

__all__ = ["SystemClock", "acting_as", "current_principal"]
