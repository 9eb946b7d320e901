import argparse

import pytest

from glucoloop.cli import DEFAULT_TARGET, main, target_glycemia


def test_headless_fasting_run(capsys):
    main(["--fasting", "--no-basal", "--controller", "p", "--kp", "0"])
    out = capsys.readouterr().out
    assert "Starting Simulation" in out
    assert out.count("Time:") == 25  # hours 0..24 inclusive
    assert "TIR: 100.0%" in out


def test_mg_dl_output(capsys):
    main(["--fasting", "--no-basal", "--mg-dl"])
    out = capsys.readouterr().out
    assert "mg/dL" in out


def test_unknown_controller_rejected():
    with pytest.raises(SystemExit):
        main(["--controller", "mpc"])


def test_target_read_in_mg_dl(capsys):
    main(["--fasting", "--no-basal", "--controller", "p", "--kp", "0", "--mg-dl", "--target", "99.09"])
    out = capsys.readouterr().out
    assert "Mean G: 5.50 mmol/L" in out
    assert "U/h" in out


def test_target_defaults_to_mmol():
    assert target_glycemia(argparse.Namespace(target=None, mg_dl=True)) == DEFAULT_TARGET
    assert target_glycemia(argparse.Namespace(target=6.0, mg_dl=False)) == 6.0
