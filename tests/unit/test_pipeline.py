"""Unit tests for the sequential batch pipeline."""

import asyncio

import pytest

from chronolens.core.errors import (
    BatchPartialFailure,
    BatchTotalFailure,
    GenerationError,
    NoImageGeneratedError,
    ValidationError,
)
from chronolens.core.pipeline import BatchPipeline, TransformationResult
from chronolens.core.request_builder import TransformationRequest


def make_requests(*labels):
    return [TransformationRequest(label=label, prompt=f"Turn into {label}") for label in labels]


class TestBatchPipeline:
    """Tests for BatchPipeline.run."""

    def test_all_succeed_in_order(self, client, source_image):
        pipeline = BatchPipeline(client)
        outcome = asyncio.run(pipeline.run(source_image, make_requests("A", "B", "C")))

        assert outcome.succeeded
        assert not outcome.partial
        assert [r.label for r in outcome.results] == ["A", "B", "C"]
        assert [call[1] for call in client.transform_calls] == [
            "Turn into A",
            "Turn into B",
            "Turn into C",
        ]
        assert all(call[0] is source_image for call in client.transform_calls)

    def test_empty_requests_rejected(self, client, source_image):
        with pytest.raises(ValidationError):
            asyncio.run(BatchPipeline(client).run(source_image, []))
        assert client.transform_calls == []

    def test_result_delivered_before_next_request(self, client, source_image):
        seen = []

        def on_result(result):
            seen.append((result.label, len(client.transform_calls)))

        asyncio.run(BatchPipeline(client).run(source_image, make_requests("A", "B"), on_result=on_result))
        assert seen == [("A", 1), ("B", 2)]

    def test_progress_reported_per_item(self, client, source_image):
        progress = []
        asyncio.run(
            BatchPipeline(client).run(
                source_image, make_requests("A", "B", "C"), on_progress=lambda i, n: progress.append((i, n))
            )
        )
        assert progress == [(0, 3), (1, 3), (2, 3)]

    def test_partial_failure_keeps_earlier_results(self, client_factory, source_image, image_factory):
        first = image_factory(color=(1, 2, 3))
        client = client_factory(transform_script=[first, NoImageGeneratedError()])
        outcome = asyncio.run(BatchPipeline(client).run(source_image, make_requests("Viking Age", "Cyberpunk Future", "Wild West")))

        assert outcome.results == [TransformationResult("Viking Age", first)]
        assert isinstance(outcome.error, BatchPartialFailure)
        assert outcome.partial
        assert outcome.error.completed == 1
        assert outcome.error.total == 3
        assert outcome.error.label == "Cyberpunk Future"
        assert "1 of 3" in str(outcome.error)
        # No retry and no request after the failure
        assert len(client.transform_calls) == 2

    def test_first_failure_is_total(self, client_factory, source_image):
        client = client_factory(transform_script=[GenerationError("Failed to generate image. Please try again.")])
        outcome = asyncio.run(BatchPipeline(client).run(source_image, make_requests("A", "B")))

        assert outcome.results == []
        assert isinstance(outcome.error, BatchTotalFailure)
        assert str(outcome.error) == "Failed to generate image. Please try again."
        assert not outcome.has_results
        assert len(client.transform_calls) == 1

    @pytest.mark.parametrize("fail_at", [0, 1, 2, 3])
    def test_k_successes_before_failure(self, client_factory, source_image, image_factory, fail_at):
        script = [image_factory() for _ in range(fail_at)] + [NoImageGeneratedError()]
        client = client_factory(transform_script=script)
        outcome = asyncio.run(BatchPipeline(client).run(source_image, make_requests("A", "B", "C", "D")))

        assert len(outcome.results) == fail_at
        assert [r.label for r in outcome.results] == ["A", "B", "C", "D"][:fail_at]
        assert outcome.error is not None
        assert outcome.partial == (fail_at > 0)

    def test_unexpected_error_after_success_is_partial(self, client_factory, source_image, image_factory):
        first = image_factory()
        client = client_factory(transform_script=[first, RuntimeError("boom")])
        outcome = asyncio.run(BatchPipeline(client).run(source_image, make_requests("A", "B")))

        assert outcome.results == [TransformationResult("A", first)]
        assert isinstance(outcome.error, BatchPartialFailure)
        assert isinstance(outcome.error.cause, RuntimeError)
        assert "boom" not in str(outcome.error)
        assert not outcome.stale

    def test_unexpected_error_on_first_item_is_total(self, client_factory, source_image):
        client = client_factory(transform_script=[RuntimeError("boom")])
        outcome = asyncio.run(BatchPipeline(client).run(source_image, make_requests("A")))

        assert outcome.results == []
        assert isinstance(outcome.error, BatchTotalFailure)
        assert str(outcome.error) == "Failed to generate A."


class TestStaleRuns:
    """Tests for superseded runs."""

    def test_superseded_before_start_requests_nothing(self, client, source_image):
        outcome = asyncio.run(
            BatchPipeline(client).run(source_image, make_requests("A"), is_current=lambda: False)
        )
        assert outcome.stale
        assert client.transform_calls == []

    def test_late_result_is_dropped(self, client, source_image):
        current = {"value": True}
        delivered = []

        async def scenario():
            client.gate = asyncio.Event()
            task = asyncio.create_task(
                BatchPipeline(client).run(
                    source_image,
                    make_requests("A", "B"),
                    on_result=delivered.append,
                    is_current=lambda: current["value"],
                )
            )
            while client.started == 0:
                await asyncio.sleep(0)
            current["value"] = False
            client.gate.set()
            return await task

        outcome = asyncio.run(scenario())
        assert outcome.stale
        assert outcome.results == []
        assert delivered == []
        assert len(client.transform_calls) == 1

    def test_failure_after_supersede_is_stale(self, client_factory, source_image):
        current = {"value": True}
        client = client_factory(transform_script=[NoImageGeneratedError()])

        async def scenario():
            client.gate = asyncio.Event()
            task = asyncio.create_task(
                BatchPipeline(client).run(
                    source_image, make_requests("A"), is_current=lambda: current["value"]
                )
            )
            while client.started == 0:
                await asyncio.sleep(0)
            current["value"] = False
            client.gate.set()
            return await task

        outcome = asyncio.run(scenario())
        assert outcome.stale
        assert outcome.error is not None
