#tests\test_pull_progress.py

"""Test pull progress aggregation."""

import pytest

from store_engine.core.models import PullEvent
from store_engine.orchestrator.pull_progress import PullProgressAggregator, operation_percent

from conftest import pull_event


class TestPullProgressAggregator:

    def test_mean_over_images(self):
        aggregator = PullProgressAggregator(["a", "b"])

        assert aggregator.update("a", pull_event("Downloading", 50, 100)) == 25

    def test_percent_never_decreases_per_image(self):
        aggregator = PullProgressAggregator(["a"])
        aggregator.update("a", pull_event("Downloading", 80, 100, layer="l1"))

        # A second layer starting over reports a lower percent
        assert aggregator.update("a", pull_event("Downloading", 10, 100, layer="l2")) == 80

    def test_download_complete_status_counts_as_done(self):
        aggregator = PullProgressAggregator(["a"])

        assert aggregator.update("a", PullEvent(status="Download complete")) == 100

    def test_other_statuses_leave_progress(self):
        aggregator = PullProgressAggregator(["a"])

        assert aggregator.update("a", PullEvent(status="Pulling fs layer")) == 0

    def test_complete_forces_full(self):
        aggregator = PullProgressAggregator(["a", "b"])
        aggregator.complete("a")

        assert aggregator.percent() == 50
        assert aggregator.image_percent("a") == 100

    def test_no_images_is_done(self):
        assert PullProgressAggregator([]).percent() == 100


class TestOperationPercent:

    @pytest.mark.parametrize("pull,expected", [(0, 15), (50, 47.5), (100, 80)])
    def test_mapping(self, pull, expected):
        assert operation_percent(pull) == pytest.approx(expected)
