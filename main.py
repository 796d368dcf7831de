#!/usr/bin/env python3
"""
Gas Bench Lab - Main entry point for running gas comparisons.

Usage:
    python main.py [command] [scenario ...] [options]

Commands:
    run     - Run scenarios (default: all) against every variant
    list    - List configured variants and available scenarios

Exit status:
    0 - every assertion passed
    1 - an assertion failed (or was inconclusive with --inconclusive-fails)
    2 - configuration error, unreachable environment or fail-fast deployment abort
"""

import argparse
import asyncio
import sys
from pathlib import Path

from dotenv import load_dotenv

from gas_bench_lab.exceptions import GasBenchError

# Load environment variables from .env file
load_dotenv()


def load_variants(args):
    """Registry from --registry (or the built-in one), narrowed by --variants."""
    from gas_bench_lab.variants import USER_REGISTRIES, load_registry

    registry = load_registry(args.registry) if args.registry else USER_REGISTRIES
    if args.variants:
        registry = registry.select([v.strip() for v in args.variants.split(",") if v.strip()])
    return registry


def select_scenarios(names, registry):
    """Resolve scenario names, dropping assertions on variants not deployed."""
    from gas_bench_lab.scenarios import ALL_SCENARIOS, get_scenario

    if not names or "all" in names:
        scenarios = list(ALL_SCENARIOS.values())
    else:
        scenarios = [get_scenario(name) for name in names]
    return [s.restricted_to(registry) for s in scenarios]


async def run_scenarios(args) -> int:
    """Run the selected scenarios and report the outcome."""
    from gas_bench_lab.environment import SimulatedChain
    from gas_bench_lab.harness import BenchmarkRunner, ConsoleReporter, JSONReporter, RunConfig
    from gas_bench_lab.instrumentation import TracingConfig, init_tracing, shutdown_tracing

    registry = load_variants(args)
    scenarios = select_scenarios(args.scenarios, registry)

    config = RunConfig.from_env(
        failure_policy=args.failure_policy,
        invoke_timeout_seconds=args.timeout,
        deploy_timeout_seconds=args.deploy_timeout,
        fail_fast_deploy=True if args.fail_fast_deploy else None,
        inconclusive_fails=True if args.inconclusive_fails else None,
    )

    tracer = init_tracing(TracingConfig(enable_console_export=True)) if args.trace else None

    print("=" * 70)
    print("GAS BENCH LAB - VARIANT COMPARISON")
    print("=" * 70)
    print(f"Registry: {registry.name} ({', '.join(registry.names())})")
    print(f"Scenarios: {', '.join(s.name for s in scenarios)}")

    environment = SimulatedChain(latency=args.latency)
    runner = BenchmarkRunner(environment, config, tracer, verbose=not args.quiet)
    try:
        results = await runner.run_all(scenarios, registry)
    finally:
        if tracer is not None:
            shutdown_tracing()

    reporter = ConsoleReporter(use_color=not args.no_color)
    for result in results:
        print(reporter.single_result(result))
    print(reporter.summary(results))

    if args.json:
        path = JSONReporter(args.output_dir).save_suite(results)
        print(f"\nResults saved to {path}")

    return 0 if all(r.passed for r in results) else 1


async def list_available(args) -> int:
    """List variants and scenarios."""
    from gas_bench_lab.scenarios import list_scenarios

    registry = load_variants(args)

    print(f"Variants ({registry.name}):")
    for variant in registry.variants:
        detail = f" - {variant.description}" if variant.description else ""
        print(f"  {variant.name:<12} {variant.contract}{detail}")

    print("\nScenarios:")
    for name, description in list_scenarios().items():
        print(f"  {name:<20} {description}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Gas Bench Lab - Compare gas usage of equivalent contract variants",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python main.py run
    python main.py run add_user --variants medium,optimized
    python main.py run --failure-policy abort-scenario --json
    python main.py list --registry registries.json
        """,
    )

    parser.add_argument(
        "command",
        choices=["run", "list"],
        help="Action to perform",
    )
    parser.add_argument(
        "scenarios",
        nargs="*",
        default=[],
        help="Scenarios to run (default: all)",
    )
    parser.add_argument(
        "--registry",
        type=Path,
        default=None,
        help="JSON file defining the variants (default: built-in UserRegistry variants)",
    )
    parser.add_argument(
        "--variants",
        default=None,
        help="Comma-separated subset of variants to deploy, in order",
    )
    parser.add_argument(
        "--failure-policy",
        choices=["halt-variant", "abort-scenario", "continue"],
        default=None,
        help="What a failed step does (default: halt-variant, or GAS_BENCH_FAILURE_POLICY)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds to wait for each invocation (default: 60, or GAS_BENCH_INVOKE_TIMEOUT)",
    )
    parser.add_argument(
        "--deploy-timeout",
        type=float,
        default=None,
        help="Seconds to wait for each deployment (default: 120, or GAS_BENCH_DEPLOY_TIMEOUT)",
    )
    parser.add_argument(
        "--fail-fast-deploy",
        action="store_true",
        help="Abort the run on the first failed deployment",
    )
    parser.add_argument(
        "--inconclusive-fails",
        action="store_true",
        help="Treat inconclusive assertions as failures for the exit status",
    )
    parser.add_argument(
        "--latency",
        type=float,
        default=0.0,
        help="Simulated per-request latency in seconds (default: 0)",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("results"),
        help="Directory to save results (default: results/)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Save results as JSON in --output-dir",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable ANSI colors",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Do not print per-step progress",
    )
    parser.add_argument(
        "--trace",
        action="store_true",
        help="Export OpenTelemetry spans to the console",
    )
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    commands = {
        "run": run_scenarios,
        "list": list_available,
    }

    try:
        return asyncio.run(commands[args.command](args))
    except KeyboardInterrupt:
        print("\nBenchmark interrupted by user")
        return 1
    except GasBenchError as e:
        print(f"\nError: {e}")
        return 2


if __name__ == "__main__":
    sys.exit(main())
