"""
PURPOSE: Unit and integration tests for the Monte Carlo trial runner.

Tests verify:
- Non-positive trial counts and invalid variables are rejected before any trial
- An empty variable list yields zero duration and the baseline cost
- Single-task and single-risk scenarios land on their analytic expectations
- Criticality hits follow the 1.2 x most-likely threshold
- Seeded runs are reproducible whatever the worker count
- Cancellation between chunks aborts the run
"""

import threading
import unittest

import numpy as np

from schedule_risk_internal.monte_carlo.config import SimulationSettings
from schedule_risk_internal.monte_carlo.exceptions import InvalidInputError, SimulationCancelledError
from schedule_risk_internal.monte_carlo.inputs import ProjectTask, RiskEntry, assemble_variables
from schedule_risk_internal.monte_carlo.simulation import MonteCarloSimulation, TrialOutcome, TrialSet
from schedule_risk_internal.monte_carlo.variables import Distribution, StochasticVariable, VariableKind


class TestTrialCountValidation(unittest.TestCase):
    def test_zero_runs_rejected(self):
        with self.assertRaises(InvalidInputError):
            MonteCarloSimulation(num_runs=0).run([])

    def test_negative_runs_rejected(self):
        with self.assertRaises(InvalidInputError):
            MonteCarloSimulation(num_runs=-5).run([])

    def test_non_integer_runs_rejected(self):
        with self.assertRaises(InvalidInputError):
            MonteCarloSimulation(num_runs=10.5).run([])
        with self.assertRaises(InvalidInputError):
            MonteCarloSimulation(num_runs=True).run([])

    def test_invalid_variable_rejected_before_trials(self):
        inverted = StochasticVariable("Task Bad Duration", VariableKind.DURATION, Distribution.TRIANGULAR, 10, 5)
        with self.assertRaises(InvalidInputError):
            MonteCarloSimulation(num_runs=10).run([inverted])

    def test_non_finite_baseline_rejected(self):
        with self.assertRaises(InvalidInputError):
            MonteCarloSimulation(num_runs=10).run([], baseline_cost=float("nan"))


class TestMonteCarloSimulation(unittest.TestCase):
    """Scenario tests for the trial runner."""

    def test_empty_variables(self):
        trials = MonteCarloSimulation(num_runs=50, random_seed=1).run([], baseline_cost=1000.0)
        self.assertEqual(len(trials), 50)
        np.testing.assert_array_equal(trials.durations, np.zeros(50))
        np.testing.assert_array_equal(trials.costs, np.full(50, 1000.0))
        self.assertEqual(trials.critical_hits, {})

    def test_single_task(self):
        """TRIANGULAR(192, 240, 360) hours has mean 264 hours = 11 days."""
        variables = assemble_variables([ProjectTask("Piling", 240)], [])
        trials = MonteCarloSimulation(num_runs=10000, random_seed=2).run(variables, baseline_cost=100000.0)
        self.assertAlmostEqual(float(np.mean(trials.durations)), 11.0, delta=0.1)
        self.assertTrue(np.all(trials.durations >= 8.0))
        self.assertTrue(np.all(trials.durations <= 15.0))
        np.testing.assert_array_equal(trials.costs, np.full(10000, 100000.0))

    def test_single_risk(self):
        """A certain, impact-5 risk still materializes in only ~30% of trials."""
        variables = assemble_variables([], [RiskEntry("Flood", probability=1.0, impact=5)])
        trials = MonteCarloSimulation(num_runs=10000, random_seed=3).run(variables, baseline_cost=100000.0)
        np.testing.assert_array_equal(trials.durations, np.zeros(10000))
        self.assertTrue(np.all(trials.costs >= 100000.0))
        self.assertAlmostEqual(float(np.mean(trials.costs > 100000.0)), 0.3, delta=0.02)
        self.assertAlmostEqual(float(np.mean(trials.costs)), 100000.0 + 0.3 * 25000, delta=600)

    def test_declared_risk_probability(self):
        settings = SimulationSettings(use_declared_risk_probability=True)
        variables = assemble_variables([], [RiskEntry("Flood", probability=1.0, impact=5)])
        trials = MonteCarloSimulation(num_runs=2000, random_seed=4, settings=settings).run(variables, 0.0)
        self.assertTrue(np.all(trials.costs > 0.0))

    def test_criticality_frequency(self):
        """P(X > 1.2 * 240) for TRIANGULAR(192, 240, 360) is 72^2 / (168 * 120) ~ 0.257."""
        variables = assemble_variables([ProjectTask("Piling", 240)], [])
        trials = MonteCarloSimulation(num_runs=20000, random_seed=5).run(variables)
        hits = trials.critical_hits["Task Piling Duration"]
        self.assertEqual(hits.dtype, bool)
        self.assertAlmostEqual(float(np.mean(hits)), 5184 / 20160, delta=0.015)
        contributions = trials.contributions["Task Piling Duration"]
        np.testing.assert_array_equal(hits, contributions > 288.0)

    def test_hours_to_days(self):
        variables = [StochasticVariable("Task Fixed Duration", VariableKind.DURATION, Distribution.UNIFORM, 48, 48)]
        trials = MonteCarloSimulation(num_runs=5, random_seed=6).run(variables)
        np.testing.assert_allclose(trials.durations, np.full(5, 2.0))

    def test_single_trial(self):
        variables = assemble_variables([ProjectTask("Piling", 240)], [RiskEntry("Flood", 0.5, 3)])
        trials = MonteCarloSimulation(num_runs=1, random_seed=7).run(variables, 5000.0)
        self.assertEqual(len(trials), 1)


class TestReproducibility(unittest.TestCase):
    def setUp(self):
        self.variables = assemble_variables(
            [ProjectTask("Piling", 240), ProjectTask("Roofing", 96), ProjectTask("MEP", 400)],
            [RiskEntry("Flood", 0.4, 5), RiskEntry("Strike", 0.1, 2)],
        )

    def test_same_seed_same_trials(self):
        first = MonteCarloSimulation(num_runs=3000, random_seed=42).run(self.variables, 250000.0)
        second = MonteCarloSimulation(num_runs=3000, random_seed=42).run(self.variables, 250000.0)
        np.testing.assert_array_equal(first.durations, second.durations)
        np.testing.assert_array_equal(first.costs, second.costs)

    def test_worker_count_does_not_change_trials(self):
        sequential = MonteCarloSimulation(num_runs=4500, random_seed=9, num_workers=1, chunk_size=1000)
        parallel = MonteCarloSimulation(num_runs=4500, random_seed=9, num_workers=4, chunk_size=1000)
        first = sequential.run(self.variables, 250000.0)
        second = parallel.run(self.variables, 250000.0)
        self.assertEqual(len(second), 4500)
        np.testing.assert_array_equal(first.durations, second.durations)
        np.testing.assert_array_equal(first.costs, second.costs)
        for name, hits in first.critical_hits.items():
            np.testing.assert_array_equal(hits, second.critical_hits[name])

    def test_different_seeds_differ(self):
        first = MonteCarloSimulation(num_runs=500, random_seed=1).run(self.variables)
        second = MonteCarloSimulation(num_runs=500, random_seed=2).run(self.variables)
        self.assertFalse(np.array_equal(first.durations, second.durations))


class TestCancellation(unittest.TestCase):
    def setUp(self):
        self.variables = assemble_variables([ProjectTask("Piling", 240)], [])

    def test_cancelled_before_start(self):
        event = threading.Event()
        event.set()
        with self.assertRaises(SimulationCancelledError) as ctx:
            MonteCarloSimulation(num_runs=1000, chunk_size=100).run(self.variables, cancel_event=event)
        self.assertEqual(ctx.exception.completed_trials, 0)
        self.assertEqual(ctx.exception.requested_trials, 1000)

    def test_cancelled_parallel_run(self):
        event = threading.Event()
        event.set()
        simulation = MonteCarloSimulation(num_runs=1000, chunk_size=100, num_workers=3)
        with self.assertRaises(SimulationCancelledError):
            simulation.run(self.variables, cancel_event=event)

    def test_unset_event_runs_to_completion(self):
        trials = MonteCarloSimulation(num_runs=1000, chunk_size=100).run(self.variables, cancel_event=threading.Event())
        self.assertEqual(len(trials), 1000)


class TestTrialSet(unittest.TestCase):
    def test_rows_from_columns(self):
        outcomes = [
            TrialOutcome(10.0, 100.0, {"Task A Duration": True}),
            TrialOutcome(12.5, 150.0, {"Task A Duration": False}),
        ]
        trials = TrialSet.from_outcomes(outcomes)
        self.assertEqual(len(trials), 2)
        self.assertEqual(list(trials), outcomes)
        self.assertEqual(trials.outcome(1).critical_hits, {"Task A Duration": False})

    def test_concatenate(self):
        first = TrialSet.from_outcomes([TrialOutcome(1.0, 10.0, {"a": True})])
        second = TrialSet.from_outcomes([TrialOutcome(2.0, 20.0, {"a": False})])
        merged = TrialSet.concatenate([first, second])
        np.testing.assert_array_equal(merged.durations, [1.0, 2.0])
        np.testing.assert_array_equal(merged.critical_hits["a"], [True, False])


if __name__ == "__main__":
    unittest.main()
