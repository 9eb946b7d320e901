import numpy as np
import pytest

from glucoloop.core.metrics import (
    compute_control_metrics,
    compute_performance_error,
    glucose_variability,
    summarize,
    time_in_range,
)


def test_performance_error_percent():
    pe = compute_performance_error(np.array([6.6, 4.4]), np.array([5.5, 5.5]))
    assert pe == pytest.approx([20.0, -20.0])


def test_perfect_tracking_scores_zero():
    metrics = compute_control_metrics([0, 1, 2], [5.5, 5.5, 5.5], 5.5)
    assert metrics["MDPE"] == pytest.approx(0.0)
    assert metrics["GlobalScore"] == pytest.approx(0.0)


def test_window_outside_data():
    metrics = compute_control_metrics([0, 1, 2], [5.5, 6.0, 7.0], 5.5, start_time=10)
    assert metrics == {"MDPE": 0, "MDAPE": 0, "Wobble": 0, "GlobalScore": 0}


def test_time_in_range():
    tir = time_in_range([3.0, 5.0, 11.0, 6.0])
    assert tir["below"] == pytest.approx(25.0)
    assert tir["in_range"] == pytest.approx(50.0)
    assert tir["above"] == pytest.approx(25.0)


def test_range_edges_count_as_in_range():
    assert time_in_range([3.9, 10.0])["in_range"] == pytest.approx(100.0)


def test_glucose_variability():
    stats = glucose_variability([4.0, 6.0])
    assert stats["mean"] == pytest.approx(5.0)
    assert stats["sd"] == pytest.approx(1.0)
    assert stats["cv"] == pytest.approx(20.0)
    assert glucose_variability([5.5] * 10)["cv"] == 0.0


def test_summarize_fasting_run(run_engine, config):
    _, result = run_engine(config)
    summary = summarize(result, 5.5)
    assert summary["TIR_in_range"] == pytest.approx(100.0)
    assert summary["MDAPE"] == pytest.approx(0.0, abs=1e-6)
    assert summary["carbs_total"] == 0.0
    assert summary["insulin_total"] > 0.0
