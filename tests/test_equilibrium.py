import logging

import numpy as np
import pytest

from glucoloop.core.equilibrium import EquilibriumSolver, state_for_infusion
from glucoloop.core.enums import SteadyStateMethod
from glucoloop.core.state import PatientState, STATE_KEYS
from glucoloop.patient.patient import PatientParameters


class TestQuadratic:

    def test_equilibrium_insulin_default_patient(self, patient):
        i_eq = EquilibriumSolver(patient).equilibrium_insulin()
        assert i_eq == pytest.approx(5.65, rel=0.02)

    def test_basal_rate_units(self, patient):
        """Literature patient needs roughly 0.4 U/h to stay at 5.5 mmol/L."""
        basal = EquilibriumSolver(patient).basal_rate()
        assert 0.3 < basal * 60.0 < 0.5, f"Basal should be ~0.39 U/h, got {basal * 60.0:.3f}"

    def test_basal_matches_model_entry_point(self, model, patient):
        assert model.basal_infusion_for_target(patient) == EquilibriumSolver(patient).basal_rate()

    def test_residual_vanishes_at_solution(self, patient):
        eq = EquilibriumSolver(patient)
        eq.solve(SteadyStateMethod.QUADRATIC)
        assert eq.glucose_balance(eq.last_infusion_mu_min) == pytest.approx(0.0, abs=1e-10)

    def test_no_gut_glucose_at_rest(self, patient):
        x = EquilibriumSolver(patient).solve()
        assert x.D1 == 0.0 and x.D2 == 0.0


class TestBisection:

    def test_agrees_with_quadratic(self, patient):
        quad = EquilibriumSolver(patient).solve(SteadyStateMethod.QUADRATIC)
        bis = EquilibriumSolver(patient).solve(SteadyStateMethod.BISECTION)
        for key in STATE_KEYS:
            assert bis[key] == pytest.approx(quad[key], rel=1e-6, abs=1e-9), f"{key} differs between strategies"

    def test_records_infusion(self, patient):
        eq = EquilibriumSolver(patient)
        eq.solve_bisection()
        assert 0.0 < eq.last_infusion_mu_min < 300.0

    def test_balance_decreases_with_infusion(self, patient):
        eq = EquilibriumSolver(patient)
        assert eq.glucose_balance(0.0) > 0
        assert eq.glucose_balance(300.0) < 0


class TestNoEquilibrium:
    """Without endogenous production no insulin level can hold the target."""

    @pytest.fixture
    def hopeless_patient(self):
        return PatientParameters(EGP0=0.0)

    @pytest.mark.parametrize("method", list(SteadyStateMethod))
    def test_zero_state_and_logged_error(self, hopeless_patient, method, caplog):
        with caplog.at_level(logging.ERROR):
            x = EquilibriumSolver(hopeless_patient).solve(method)
        assert x == PatientState.zeros()
        assert any(r.levelno == logging.ERROR for r in caplog.records)

    def test_basal_rate_zero(self, hopeless_patient, caplog):
        with caplog.at_level(logging.ERROR):
            eq = EquilibriumSolver(hopeless_patient)
            assert eq.basal_rate() == 0.0
            assert eq.equilibrium_insulin() is None
        assert "determinant" in caplog.text

    def test_degenerate_quadratic(self, caplog):
        with caplog.at_level(logging.ERROR):
            assert EquilibriumSolver(PatientParameters(SI2=0.0)).basal_rate() == 0.0
        assert "Degenerate" in caplog.text


def test_state_for_infusion(patient):
    x = state_for_infusion(patient, 10.0)
    assert x.S1 == x.S2 == pytest.approx(patient.tauI * 10.0)
    assert x.I == pytest.approx(10.0 / (patient.ke * patient.insulin_volume))
    assert x.x3 == pytest.approx(patient.SI3 * x.I)
    assert x.Q1 == pytest.approx(patient.Geq * patient.glucose_volume)


class TestProductionBelowUptake:
    """EGP0*BW under F01 uptake at Geq: both quadratic roots are negative."""

    @pytest.fixture
    def low_egp_patient(self):
        return PatientParameters(EGP0=0.009)

    @pytest.mark.parametrize("method", list(SteadyStateMethod))
    def test_both_strategies_fail(self, low_egp_patient, method, caplog):
        with caplog.at_level(logging.ERROR):
            eq = EquilibriumSolver(low_egp_patient)
            x = eq.solve(method)
        assert x == PatientState.zeros()
        assert eq.last_infusion_mu_min is None
        assert any(r.levelno == logging.ERROR for r in caplog.records)

    def test_no_negative_basal(self, low_egp_patient, caplog):
        with caplog.at_level(logging.ERROR):
            eq = EquilibriumSolver(low_egp_patient)
            assert eq.equilibrium_insulin() is None
            assert eq.basal_rate() == 0.0
        assert "Negative equilibrium insulin" in caplog.text

    def test_engine_does_not_subtract_from_schedule(self, low_egp_patient, run_engine, config):
        basal = [0.01] * 121
        _, result = run_engine(config, basal=basal, params=low_egp_patient)
        assert result.insulin[0] == pytest.approx(0.01)

    def test_sampled_population_never_negative(self):
        rng = np.random.default_rng(0)
        for _ in range(500):
            p = PatientParameters.sample(rng)
            eq = EquilibriumSolver(p)
            x = eq.solve(SteadyStateMethod.QUADRATIC)
            assert x.I >= 0.0 and x.S1 >= 0.0, f"Negative steady insulin for {p}"
            assert eq.basal_rate() >= 0.0


def test_zero_transfer_rate_rejected():
    with pytest.raises(ValueError):
        EquilibriumSolver(PatientParameters(k12=0.0))
