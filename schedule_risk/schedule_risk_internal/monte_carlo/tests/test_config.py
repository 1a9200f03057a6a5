import unittest

from schedule_risk_internal.monte_carlo import config
from schedule_risk_internal.monte_carlo.config import SimulationSettings, get_assembly_parameters
from schedule_risk_internal.monte_carlo.exceptions import InvalidInputError


class TestSimulationSettings(unittest.TestCase):
    def test_defaults_follow_module_constants(self):
        settings = SimulationSettings()
        self.assertEqual(settings.num_runs, config.NUM_RUNS)
        self.assertEqual(settings.num_runs, 10000)
        self.assertEqual(settings.risk_materialization_probability, 0.3)
        self.assertFalse(settings.use_declared_risk_probability)
        self.assertEqual(settings.criticality_threshold_factor, 1.2)
        self.assertEqual(settings.percentiles, (10, 25, 50, 75, 90, 95, 99))
        self.assertEqual(settings.curve_bins, 20)

    def test_from_env_overrides(self):
        environ = {
            "SCHEDULE_RISK_NUM_RUNS": "5000",
            "SCHEDULE_RISK_RANDOM_SEED": "7",
            "SCHEDULE_RISK_RISK_IMPACT_COST_MULTIPLIER": "12500",
            "SCHEDULE_RISK_USE_DECLARED_RISK_PROBABILITY": "true",
            "SCHEDULE_RISK_PERCENTILES": "50, 80, 95",
            "SCHEDULE_RISK_CHUNK_SIZE": "",
        }
        settings = SimulationSettings.from_env(environ)
        self.assertEqual(settings.num_runs, 5000)
        self.assertEqual(settings.random_seed, 7)
        self.assertEqual(settings.risk_impact_cost_multiplier, 12500.0)
        self.assertTrue(settings.use_declared_risk_probability)
        self.assertEqual(settings.percentiles, (50, 80, 95))
        self.assertEqual(settings.chunk_size, config.CHUNK_SIZE)

    def test_from_env_rejects_garbage(self):
        with self.assertRaises(InvalidInputError):
            SimulationSettings.from_env({"SCHEDULE_RISK_NUM_RUNS": "many"})
        with self.assertRaises(InvalidInputError):
            SimulationSettings.from_env({"SCHEDULE_RISK_CLAMP_NORMAL_TO_BOUNDS": "maybe"})

    def test_invalid_settings_rejected(self):
        with self.assertRaises(InvalidInputError):
            SimulationSettings(num_runs=0)
        with self.assertRaises(InvalidInputError):
            SimulationSettings(risk_materialization_probability=1.5)
        with self.assertRaises(InvalidInputError):
            SimulationSettings(percentiles=(0, 50))

    def test_with_overrides(self):
        settings = SimulationSettings().with_overrides(hours_per_day=8)
        self.assertEqual(settings.hours_per_day, 8)

    def test_assembly_parameters(self):
        params = get_assembly_parameters(SimulationSettings(risk_impact_cost_multiplier=2000))
        self.assertEqual(params["optimistic_factor"], 0.8)
        self.assertEqual(params["pessimistic_factor"], 1.5)
        self.assertEqual(params["risk_impact_cost_multiplier"], 2000)


if __name__ == "__main__":
    unittest.main()
