from __future__ import annotations

from .models import CanaryStrategy, DestinationReference

# Matching is by service name only: the destination namespace and kind are not checked.


def matches_stable(destination: DestinationReference, canary: CanaryStrategy) -> bool:
    return destination.name.casefold() == canary.stable_service.casefold()


def matches_canary(destination: DestinationReference, canary: CanaryStrategy) -> bool:
    return destination.name.casefold() == canary.canary_service.casefold()
