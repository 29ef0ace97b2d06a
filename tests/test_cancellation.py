#!/usr/bin/env python3
"""Cooperative cancellation and work bounds."""

import threading

import pytest

from msu_risk.analysis_runner import AnalysisRunner, INTERRUPTED
from msu_risk.cancellation import CancellationToken, ensure_token
from msu_risk.exceptions import AnalysisInterrupted, ResourceExhaustionError
from msu_risk.exhaustive_search import ExhaustiveSearch
from msu_risk.suda_search import SudaSearch


class CountdownToken(CancellationToken):
    """Fires after a fixed number of polls, to interrupt a search midway."""

    def __init__(self, polls: int):
        super().__init__()
        self.remaining = polls
        self.polls = 0

    def is_cancelled(self) -> bool:
        self.polls += 1
        self.remaining -= 1
        if self.remaining < 0:
            self.cancel("countdown expired")
        return super().is_cancelled()


class TestCancellationToken:

    def test_cancel_sets_reason(self):
        token = CancellationToken()
        assert not token.is_cancelled()
        token.cancel("superseded")
        assert token.is_cancelled()
        assert token.reason == "superseded"
        with pytest.raises(AnalysisInterrupted, match="superseded"):
            token.raise_if_cancelled()

    def test_first_reason_is_kept(self):
        token = CancellationToken()
        token.cancel("first")
        token.cancel("second")
        assert token.reason == "first"

    def test_cancel_from_another_thread(self):
        token = CancellationToken()
        worker = threading.Thread(target=token.cancel, args=("stopped by user",))
        worker.start()
        worker.join()
        assert token.is_cancelled()

    def test_default_token_never_fires(self):
        token = ensure_token(None)
        assert not token.is_cancelled()
        token.raise_if_cancelled()
        with pytest.raises(RuntimeError):
            token.cancel()


class TestEngineInterruption:
    """Interrupted searches raise instead of returning partial results."""

    @pytest.mark.parametrize("engine_cls", [SudaSearch, ExhaustiveSearch])
    def test_cancelled_before_start(self, canonical_matrix, engine_cls):
        token = CancellationToken()
        token.cancel()
        with pytest.raises(AnalysisInterrupted):
            engine_cls(canonical_matrix, cancellation=token).search()

    @pytest.mark.parametrize("polls", [1, 3, 10, 25])
    @pytest.mark.parametrize("engine_cls", [SudaSearch, ExhaustiveSearch])
    def test_cancelled_mid_search(self, canonical_matrix, engine_cls, polls):
        token = CountdownToken(polls)
        with pytest.raises(AnalysisInterrupted, match="countdown expired"):
            engine_cls(canonical_matrix, cancellation=token).search()
        assert token.polls == polls + 1

    def test_search_polls_at_every_level(self, canonical_matrix):
        token = CountdownToken(10_000)
        engine = SudaSearch(canonical_matrix, cancellation=token)
        engine.search()
        assert token.polls > engine.last_stats.nodes_visited

    def test_matrix_reusable_after_interruption(self, canonical_matrix):
        token = CountdownToken(5)
        with pytest.raises(AnalysisInterrupted):
            SudaSearch(canonical_matrix, cancellation=token).search()
        assert not canonical_matrix.values.flags.writeable
        assert len(SudaSearch(canonical_matrix).search()) == 26
        assert len(ExhaustiveSearch(canonical_matrix).search()) == 26


class TestRunnerInterruption:
    """The runner reports interruption as a distinct outcome."""

    def test_interrupted_outcome(self, canonical_matrix):
        runner = AnalysisRunner(canonical_matrix)
        runner.cancel("stop")
        outcome = runner.run(k_max=3)
        assert outcome.status == INTERRUPTED
        assert not outcome.completed
        assert outcome.result is None
        assert outcome.message == "stop"
        assert 'results' not in outcome.to_dict()

    def test_interrupted_during_validation(self, canonical_matrix):
        probe = CountdownToken(10_000)
        SudaSearch(canonical_matrix, cancellation=probe).search(5)

        # Let the SUDA search finish, then fire inside the exhaustive oracle
        token = CountdownToken(probe.polls + 5)
        runner = AnalysisRunner(canonical_matrix, cancellation=token)
        outcome = runner.run(k_max=5, validate=True)
        assert outcome.status == INTERRUPTED
        assert outcome.result is None

    def test_interrupted_outcome_is_not_exported(self, canonical_matrix, tmp_path):
        runner = AnalysisRunner(canonical_matrix)
        runner.cancel()
        outcome = runner.run()
        assert runner.export_results(outcome, tmp_path) == {}
        assert list(tmp_path.iterdir()) == []


class TestWorkBound:
    """The exhaustive oracle refuses unbounded work up front."""

    def test_estimate(self, canonical_matrix):
        oracle = ExhaustiveSearch(canonical_matrix)
        assert oracle.estimate_work(5) == 6 * 31
        assert oracle.estimate_work(2) == 6 * 15

    def test_bound_exceeded(self, canonical_matrix):
        token = CountdownToken(10_000)
        oracle = ExhaustiveSearch(canonical_matrix, cancellation=token, max_subsets=100)
        with pytest.raises(ResourceExhaustionError) as excinfo:
            oracle.search(k_max=5)
        assert excinfo.value.required == 186
        assert excinfo.value.limit == 100
        # Rejected before any work
        assert token.polls == 0

    def test_bound_respected_for_smaller_key_size(self, canonical_matrix):
        oracle = ExhaustiveSearch(canonical_matrix, max_subsets=100)
        assert len(oracle.search(k_max=2)) == 24
