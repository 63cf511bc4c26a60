"""
Command line entry point: run a scenario file and print the run summary.
"""

import argparse
import dataclasses
import json
import logging
import sys

from satellite import ConfigurationError
from scenario import SimulationConfig
from simulation import PropagationError, Simulation, load_scenario


logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Orbit and attitude propagation of the dart CubeSat with B-dot damping",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument("scenario", nargs="?", default=None,
                        help="Scenario JSON file, the built-in dart scenario if omitted")
    parser.add_argument("--horizon", type=float, default=None, help="Override the simulated time [s]")
    parser.add_argument("--increment", type=float, default=None, help="Override the re-basing increment [s]")
    parser.add_argument("--no-progress", action="store_true", help="Hide the progress bar")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log every integration segment")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        if args.scenario is None:
            config, sat = SimulationConfig(), None
        else:
            config, sat = load_scenario(args.scenario)
    except OSError as e:
        logger.error("Cannot read scenario: %s", e)
        return 2
    except ConfigurationError as e:
        logger.error("Invalid configuration: %s", e)
        return 2
    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        logger.error("Malformed scenario %s: %r", args.scenario, e)
        return 2

    try:
        overrides = {k: v for k, v in (("horizon", args.horizon), ("increment", args.increment)) if v is not None}
        if args.no_progress:
            overrides["progress"] = False
        config = dataclasses.replace(config, **overrides)

        result = Simulation(config, sat).run()
    except ConfigurationError as e:
        logger.error("Invalid configuration: %s", e)
        return 2
    except PropagationError as e:
        logger.error("Simulation failed: %s", e)
        return 1

    summary = result.summary()
    print("\n" + "=" * 60)
    print("SIMULATION SUMMARY")
    print("=" * 60)
    print(f"Final time:            {summary['final_time']:.1f} s")
    print(f"Samples:               {summary['samples']}")
    print(f"|omega| initial/final: {summary['omega_initial']:.5f} / {summary['omega_final']:.5f} rad/s")
    print(f"Rot. energy in/final:  {summary['rotational_energy_initial']:.3e} / {summary['rotational_energy_final']:.3e} J")
    print(f"Quaternion norm error: {summary['max_quaternion_norm_error']:.2e}")
    print(f"Final pointing error:  {result.pointing_error_deg()[-1]:.1f} deg")
    print("=" * 60)

    return 0


if __name__ == "__main__":
    sys.exit(main())
