import argparse
import logging
import sys
import time

import numpy as np

from glucoloop.core.engine import SimulationEngine
from glucoloop.core.state import SimulationConfig
from glucoloop.core.controller import ControllerConfig, ControllerGains
from glucoloop.core.enums import ControllerKind, SteadyStateMethod
from glucoloop.core.metrics import summarize
from glucoloop.core.schedules import (
    build_basal_schedule,
    build_carb_schedule,
    default_basal,
    default_meals,
)
from glucoloop.core.units import convert_rate, mg_dl_to_mmol_l, mmol_l_to_mg_dl
from glucoloop.patient.patient import PatientParameters

DEFAULT_TARGET = 5.5  # mmol/L


def target_glycemia(args) -> float:
    """--target in mmol/L; read as mg/dL when --mg-dl is given."""
    if args.target is None:
        return DEFAULT_TARGET
    if args.mg_dl:
        return mg_dl_to_mmol_l(args.target)
    return args.target


def build_engine(args) -> SimulationEngine:
    target = target_glycemia(args)
    controller = ControllerConfig(
        kind=args.controller,
        gains=ControllerGains(kp=args.kp, ki=args.ki, kd=args.kd),
        min_dose=args.min_dose,
        max_dose=args.max_dose,
        insulin_sensitivity=args.sensitivity,
    )
    config = SimulationConfig(
        t_start=0,
        t_end=int(args.days * 24 * 60),
        controller=controller,
        steady_state_method=SteadyStateMethod(args.steady_state),
        equilibrium_basal=not args.no_equilibrium_basal,
        rng_seed=args.seed,
    )
    if args.random_patient:
        params = PatientParameters.sample(np.random.default_rng(args.seed), Geq=target)
    else:
        params = PatientParameters(BW=args.weight, Geq=target)
    return SimulationEngine(params, config)


def run_headless(args):
    """Run one closed-loop simulation and print an hourly trace."""
    engine = build_engine(args)
    print(f"Starting Simulation ({args.days} day(s), {engine.config.controller.kind.value} controller)...")

    carbs = build_carb_schedule([] if args.fasting else default_meals(), days=args.days)
    basal = build_basal_schedule([] if args.no_basal else default_basal(), days=args.days)

    start_real = time.time()
    result = engine.run(carbs, basal)
    end_real = time.time()

    for t, g, u, d in zip(result.time, result.glucose, result.insulin, result.disturbance):
        if t % 60 == 0:
            g_out = mmol_l_to_mg_dl(g, engine.params.MwG) if args.mg_dl else g
            unit = "mg/dL" if args.mg_dl else "mmol/L"
            rate_u_hr = convert_rate(u, "u/min", "u/hr")
            print(f"Time: {t // 60:3d}h | G: {g_out:7.2f} {unit} | Insulin: {rate_u_hr:6.3f} U/h | Carbs: {d:5.1f} g")

    summary = summarize(result, engine.params.Geq)
    print(f"Simulation completed in {end_real - start_real:.2f}s real time.")
    print(f"TIR: {summary['TIR_in_range']:.1f}% | Below: {summary['TIR_below']:.1f}% | Above: {summary['TIR_above']:.1f}%")
    print(f"Mean G: {summary['G_mean']:.2f} mmol/L | CV: {summary['G_cv']:.1f}% | MDAPE: {summary['MDAPE']:.1f}%")
    print(f"Insulin delivered: {summary['insulin_total']:.2f} U | Carbs: {summary['carbs_total']:.0f} g")
    return result


def main(argv=None):
    parser = argparse.ArgumentParser(description="glucoloop - Closed-loop glucose-insulin simulator")
    parser.add_argument("--days", type=int, default=1, help="Simulated days (default: 1)")
    parser.add_argument("--controller", type=str.upper, default="PID",
                        choices=[k.value for k in ControllerKind], help="Feedback law (default: PID)")
    parser.add_argument("--kp", type=float, default=0.2, help="Proportional gain")
    parser.add_argument("--ki", type=float, default=0.0, help="Integral gain")
    parser.add_argument("--kd", type=float, default=0.0, help="Derivative gain")
    parser.add_argument("--min-dose", type=float, default=0.0, help="Minimum insulin dose (U/min)")
    parser.add_argument("--max-dose", type=float, default=0.25, help="Maximum insulin dose (U/min)")
    parser.add_argument("--sensitivity", type=float, default=100.0,
                        help="Glucose error (mmol/L) per U/min of insulin")
    parser.add_argument("--target", type=float, default=None,
                        help="Target glycemia (mmol/L, or mg/dL with --mg-dl; default 5.5 mmol/L)")
    parser.add_argument("--weight", type=float, default=70.0, help="Body weight (kg)")
    parser.add_argument("--random-patient", action="store_true", help="Sample a virtual patient")
    parser.add_argument("--seed", type=int, default=None, help="RNG seed for --random-patient")
    parser.add_argument("--steady-state", choices=[m.value for m in SteadyStateMethod],
                        default=SteadyStateMethod.QUADRATIC.value, help="Equilibrium strategy")
    parser.add_argument("--no-equilibrium-basal", action="store_true",
                        help="Do not add the steady-state basal under the schedule")
    parser.add_argument("--fasting", action="store_true", help="Skip the default meals")
    parser.add_argument("--no-basal", action="store_true", help="Skip the default basal schedule")
    parser.add_argument("--mg-dl", action="store_true", help="Print glycemia and read --target in mg/dL")
    parser.add_argument("--log-level", default="WARNING",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Logging level")

    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level),
                        format="%(asctime)s %(name)s %(levelname)s: %(message)s")

    try:
        run_headless(args)
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)

if __name__ == "__main__":
    main()
