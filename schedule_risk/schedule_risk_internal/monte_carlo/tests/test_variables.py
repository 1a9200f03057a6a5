import math
import unittest

from schedule_risk_internal.monte_carlo.exceptions import InvalidInputError
from schedule_risk_internal.monte_carlo.variables import Distribution, StochasticVariable, VariableKind


class TestStochasticVariableDefaults(unittest.TestCase):
    def test_string_enums_are_coerced(self):
        variable = StochasticVariable("Risk: Flood", "risk", "UNIFORM", min_value=0, max_value=50000)
        self.assertIs(variable.kind, VariableKind.COST_RISK)
        self.assertIs(variable.distribution, Distribution.UNIFORM)

    def test_unknown_distribution_is_kept(self):
        variable = StochasticVariable("x", VariableKind.DURATION, "lognormal", min_value=1, max_value=2)
        self.assertEqual(variable.distribution, "lognormal")

    def test_mode_defaults_to_midpoint(self):
        variable = StochasticVariable("t", VariableKind.DURATION, Distribution.TRIANGULAR, 10, 20)
        self.assertEqual(variable.mode, 15)

    def test_most_likely_of_zero_is_respected(self):
        variable = StochasticVariable("t", VariableKind.DURATION, Distribution.TRIANGULAR, 0, 20, most_likely=0)
        self.assertEqual(variable.mode, 0)

    def test_normal_defaults(self):
        variable = StochasticVariable("n", VariableKind.DURATION, Distribution.NORMAL, 0, 60)
        self.assertEqual(variable.resolved_mean, 30)
        self.assertEqual(variable.resolved_std_dev, 10)

    def test_explicit_normal_parameters_win(self):
        variable = StochasticVariable("n", VariableKind.DURATION, Distribution.NORMAL, 0, 60, mean=25, std_dev=4)
        self.assertEqual(variable.resolved_mean, 25)
        self.assertEqual(variable.resolved_std_dev, 4)

    def test_criticality_threshold(self):
        variable = StochasticVariable("t", VariableKind.DURATION, Distribution.TRIANGULAR, 192, 360, most_likely=240)
        self.assertAlmostEqual(variable.criticality_threshold(1.2), 288.0)

    def test_to_dict(self):
        variable = StochasticVariable("t", VariableKind.DURATION, Distribution.TRIANGULAR, 8, 15, most_likely=10)
        data = variable.to_dict()
        self.assertEqual(data["variable_name"], "t")
        self.assertEqual(data["variable_type"], "duration")
        self.assertEqual(data["distribution_type"], "triangular")
        self.assertEqual(data["most_likely"], 10)


class TestStochasticVariableValidation(unittest.TestCase):
    def test_valid_variables_pass(self):
        StochasticVariable("t", VariableKind.DURATION, Distribution.TRIANGULAR, 8, 15, most_likely=10).validate()
        StochasticVariable("z", VariableKind.DURATION, Distribution.TRIANGULAR, 5, 5, most_likely=5).validate()
        StochasticVariable("n", VariableKind.DURATION, Distribution.NORMAL, mean=5, std_dev=1).validate()

    def test_inverted_range_rejected(self):
        variable = StochasticVariable("t", VariableKind.DURATION, Distribution.UNIFORM, min_value=10, max_value=5)
        with self.assertRaises(InvalidInputError):
            variable.validate()

    def test_most_likely_outside_bounds_rejected(self):
        variable = StochasticVariable("t", VariableKind.DURATION, Distribution.PERT, 1, 5, most_likely=7)
        with self.assertRaises(InvalidInputError):
            variable.validate()

    def test_missing_bounds_rejected(self):
        variable = StochasticVariable("t", VariableKind.DURATION, Distribution.TRIANGULAR, most_likely=7)
        with self.assertRaises(InvalidInputError):
            variable.validate()

    def test_non_finite_rejected(self):
        variable = StochasticVariable("t", VariableKind.DURATION, Distribution.UNIFORM, 0, math.inf)
        with self.assertRaises(InvalidInputError):
            variable.validate()

    def test_negative_std_dev_rejected(self):
        variable = StochasticVariable("n", VariableKind.DURATION, Distribution.NORMAL, mean=5, std_dev=-1)
        with self.assertRaises(InvalidInputError):
            variable.validate()

    def test_normal_without_parameters_rejected(self):
        variable = StochasticVariable("n", VariableKind.DURATION, Distribution.NORMAL, mean=5)
        with self.assertRaises(InvalidInputError):
            variable.validate()

    def test_probability_out_of_range_rejected(self):
        variable = StochasticVariable("r", VariableKind.COST_RISK, Distribution.UNIFORM, 0, 10, probability=1.5)
        with self.assertRaises(InvalidInputError):
            variable.validate()

    def test_unknown_distribution_needs_fallback_value(self):
        variable = StochasticVariable("x", VariableKind.DURATION, "gamma")
        with self.assertRaises(InvalidInputError):
            variable.validate()

    def test_unknown_kind_rejected(self):
        with self.assertRaises(InvalidInputError) as ctx:
            StochasticVariable("Task Piling Duration", "schedule", Distribution.TRIANGULAR, 8, 15)
        self.assertIn("Task Piling Duration", str(ctx.exception))

    def test_invalid_input_is_a_value_error(self):
        variable = StochasticVariable("t", VariableKind.DURATION, Distribution.UNIFORM, min_value=3, max_value=1)
        with self.assertRaises(ValueError):
            variable.validate()


if __name__ == "__main__":
    unittest.main()
