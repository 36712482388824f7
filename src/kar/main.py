#!/usr/bin/env python3
"""
KRO Actions Runner CLI

Provisions the compute for one GitHub Actions job as a kro ResourceGraph
instance, waits for the job to finish and removes the instance again.
"""

import argparse
import logging
import os
import signal
import sys
from importlib import metadata

from kro_runner import k8s
from kro_runner.config import (
    DEFAULT_RUNNER_NAME,
    ENV_INDETERMINATE_PHASE,
    ENV_JIT_CONFIG,
    ENV_LOG_LEVEL,
    ENV_NAMESPACE,
    ENV_RUNNER_NAME,
    ENV_SCALE_SET_NAME,
    ENV_TIMEOUT,
    ENV_WATCH_WINDOW,
    RunnerConfig,
    cleanup_timeout_from_env,
    duration_from_env,
    parse_duration,
)
from kro_runner.context import RunContext
from kro_runner.errors import CancelledError, DeadlineExceededError, RunnerError, RunnerFailedError
from kro_runner.runner import KRORunner
from kro_runner.status import IndeterminatePolicy
from kro_runner.watcher import DEFAULT_WATCH_WINDOW

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

EXIT_OK = 0
EXIT_FAILED = 1

logger = logging.getLogger("kar")


def duration_arg(value):
    try:
        return parse_duration(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def get_version():
    try:
        return metadata.version("kro-actions-runner")
    except metadata.PackageNotFoundError:
        return "unknown"


def build_parser(environ=None):
    environ = os.environ if environ is None else environ

    parser = argparse.ArgumentParser(
        prog="kar",
        description="Create a GitHub self-hosted runner with a kro ResourceGraph",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run with the values ARC injects into the runner pod
  kar

  # Explicit values
  kar -s my-scale-set -r my-runner-abc12 -c "$JIT_CONFIG"

  # Fail the run when the runner pod phase cannot be determined
  kar --indeterminate-phase failure
        """,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {get_version()}")
    parser.add_argument(
        "-s",
        "--scale-set-name",
        default=environ.get(ENV_SCALE_SET_NAME, ""),
        help=f"Scale set name used to select the RGD (env: {ENV_SCALE_SET_NAME})",
    )
    parser.add_argument(
        "-r",
        "--runner-name",
        default=environ.get(ENV_RUNNER_NAME) or DEFAULT_RUNNER_NAME,
        help=f"Runner name, also the name of this pod (env: {ENV_RUNNER_NAME}, default: {DEFAULT_RUNNER_NAME})",
    )
    parser.add_argument(
        "-c",
        "--actions-runner-input-jitconfig",
        dest="jit_config",
        default=environ.get(ENV_JIT_CONFIG, ""),
        help=f"JIT runner configuration (env: {ENV_JIT_CONFIG})",
    )
    parser.add_argument(
        "-n",
        "--namespace",
        default=environ.get(ENV_NAMESPACE) or None,
        help=f"Namespace for the instance (env: {ENV_NAMESPACE}, default: current namespace)",
    )
    parser.add_argument(
        "--cleanup-timeout",
        type=duration_arg,
        default=cleanup_timeout_from_env(environ),
        help="Time budget for cleanup, e.g. 5m (env: KAR_CLEANUP_TIMEOUT, default: 5m)",
    )
    parser.add_argument(
        "--timeout",
        type=duration_arg,
        default=duration_from_env(ENV_TIMEOUT, None, environ),
        help=f"Deadline for create and wait, e.g. 6h (env: {ENV_TIMEOUT}, default: none)",
    )
    parser.add_argument(
        "--watch-window",
        type=duration_arg,
        default=duration_from_env(ENV_WATCH_WINDOW, DEFAULT_WATCH_WINDOW, environ),
        help=f"Lifetime of one watch request (env: {ENV_WATCH_WINDOW}, default: {DEFAULT_WATCH_WINDOW}s)",
    )
    parser.add_argument(
        "--indeterminate-phase",
        choices=[p.value for p in IndeterminatePolicy],
        default=environ.get(ENV_INDETERMINATE_PHASE) or IndeterminatePolicy.SUCCESS.value,
        help="Outcome when resources are ready but the runner pod phase is unknown "
        f"(env: {ENV_INDETERMINATE_PHASE}, default: success)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        default=(environ.get(ENV_LOG_LEVEL) or "INFO").upper(),
        help=f"Log level (env: {ENV_LOG_LEVEL}, default: INFO)",
    )
    return parser


def parse_config(argv=None, environ=None):
    """Parse flags into a validated RunnerConfig."""
    parser = build_parser(environ)
    args = parser.parse_args(argv)

    try:
        policy = IndeterminatePolicy(args.indeterminate_phase)
    except ValueError:
        parser.error(f"invalid --indeterminate-phase: {args.indeterminate_phase}")

    cfg = RunnerConfig(
        scale_set_name=args.scale_set_name,
        runner_name=args.runner_name,
        jit_config=args.jit_config,
        namespace=args.namespace,
        cleanup_timeout=args.cleanup_timeout,
        timeout=args.timeout,
        watch_window=args.watch_window,
        indeterminate_policy=policy,
        log_level=args.log_level,
    )
    try:
        return cfg.validate()
    except ValueError as e:
        parser.error(str(e))


def configure_logging(level="INFO"):
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)


def install_signal_handlers(context):
    """Cancel the run context on SIGINT/SIGTERM."""

    def _handle_signal(signum, frame):
        name = signal.Signals(signum).name
        logger.info(f"Received {name}, cancelling")
        context.cancel(name)

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)


def main(argv=None):
    cfg = parse_config(argv)
    configure_logging(cfg.log_level)

    logger.info(f"Starting kro-actions-runner {get_version()} (python {sys.version.split()[0]})")
    logger.info(f"Using KRO mode with scale-set-name: {cfg.scale_set_name}")

    try:
        v1, custom_api = k8s.get_clients()
    except Exception as e:
        logger.error(f"Cannot obtain Kubernetes config: {e}")
        return EXIT_FAILED

    namespace = cfg.namespace or k8s.current_namespace()
    logger.info(f"Namespace: {namespace}")
    logger.info(f"Cleanup timeout is set to: {cfg.cleanup_timeout:g}s")

    runner = KRORunner(
        namespace,
        v1,
        custom_api,
        cfg.scale_set_name,
        indeterminate_policy=cfg.indeterminate_policy,
        watch_window=cfg.watch_window,
    )

    context = RunContext(timeout=cfg.timeout)
    install_signal_handlers(context)

    try:
        report = runner.run(cfg.runner_name, cfg.jit_config, context, cleanup_timeout=cfg.cleanup_timeout)
    except DeadlineExceededError as e:
        logger.error(f"Runner did not finish in time: {e}")
        return EXIT_FAILED
    except CancelledError:
        logger.info("Run cancelled")
        return EXIT_OK
    except RunnerFailedError as e:
        logger.error(f"Runner failed: {e}")
        return EXIT_FAILED
    except RunnerError as e:
        logger.error(f"Execute command failed: {e}")
        return EXIT_FAILED

    if report is not None and not report.ok:
        logger.warning(f"Runner {cfg.runner_name} finished but its resources were not fully removed")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
