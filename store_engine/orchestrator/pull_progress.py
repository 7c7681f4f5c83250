#store_engine\orchestrator\pull_progress.py

"""Aggregates per-image pull progress into one phase percent."""

from typing import Dict, Iterable

from store_engine.core.models import PullEvent

PULL_PHASE_START = 15
PULL_PHASE_SPAN = 0.65


def operation_percent(pull_percent: float) -> float:
    """Map the pull phase (0-100) onto the operation range 15-80."""
    return PULL_PHASE_START + pull_percent * PULL_PHASE_SPAN


class PullProgressAggregator:

    def __init__(self, images: Iterable[str]):
        self._per_image: Dict[str, float] = {image: 0.0 for image in images}

    def update(self, image: str, event: PullEvent) -> float:
        current = self._per_image.get(image, 0.0)
        detail = event.progress_detail

        if detail is not None and detail.percent is not None:
            current = max(current, float(detail.percent))
        elif "download complete" in (event.status or "").lower():
            current = 100.0

        self._per_image[image] = min(current, 100.0)
        return self.percent()

    def complete(self, image: str) -> float:
        self._per_image[image] = 100.0
        return self.percent()

    def percent(self) -> float:
        if not self._per_image:
            return 100.0
        return sum(self._per_image.values()) / len(self._per_image)

    def image_percent(self, image: str) -> float:
        return self._per_image.get(image, 0.0)
