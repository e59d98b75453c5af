"""Citadel CLI: deploy and verify the KingOfTheCastle game on Fhenix.

Usage:
    citadel deploy                  Fund (dev only) and deploy the game contract
    citadel verify                  Deploy a fresh instance and check its genesis state
    citadel config                  Show current configuration
    citadel --version               Print version

Examples:
    citadel deploy --network localfhenix
    citadel deploy --network testnet --skip-if-deployed --strict
    citadel verify --format json
"""

from __future__ import annotations

import argparse
import asyncio
import sys
import uuid

from citadel.chain.context import open_network_context
from citadel.contracts.registry import KING_OF_THE_CASTLE
from citadel.core.config import Settings, get_settings
from citadel.core.errors import ErrorCode, FundingError, HarnessError
from citadel.core.logging import setup_logging
from citadel.core.types import VerificationReport
from citadel.deploy.coordinator import DeploymentCoordinator
from citadel.deploy.funding import ensure_funded
from citadel.harness import VerificationHarness

__version__ = "0.1.0"

# Exit code for an unfunded account when --strict is given
EXIT_UNFUNDED = 2


# ── Coloured output helpers ──────────────────────────────────────────────────

_RESET = "\033[0m"
_BOLD = "\033[1m"
_RED = "\033[91m"
_GREEN = "\033[92m"
_CYAN = "\033[96m"
_DIM = "\033[2m"


def _c(text: str, code: str) -> str:
    return f"{code}{text}{_RESET}"


# ── Banner ───────────────────────────────────────────────────────────────────

BANNER = rf"""
{_BOLD}{_CYAN}   ___ _ _            _      _
  / __(_) |_ __ _  __| | ___| |
 | (__| |  _/ _` |/ _` |/ -_) |
  \___|_|\__\__,_|\__,_|\___|_|{_RESET}
  {_DIM}Confidential game deploy & verify harness v{__version__}{_RESET}
"""


# ── CLI argument parser ─────────────────────────────────────────────────────


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="citadel",
        description="Citadel: deploy and verify the KingOfTheCastle game on Fhenix",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="store_true", help="Print version and exit")
    parser.add_argument("--no-banner", action="store_true", help="Suppress the startup banner")
    parser.add_argument("--quiet", "-q", action="store_true", help="Minimal output")

    sub = parser.add_subparsers(dest="command")

    # ── deploy ───────────────────────────────────────────────────────────────
    deploy_p = sub.add_parser("deploy", help="Fund the signer (dev only) and deploy the game")
    deploy_p.add_argument("--network", "-n", help="Network name (default: CITADEL_NETWORK)")
    deploy_p.add_argument(
        "--skip-if-deployed",
        action="store_true",
        help="Reuse the recorded deployment instead of deploying again",
    )
    deploy_p.add_argument(
        "--strict",
        action="store_true",
        help=f"Exit with code {EXIT_UNFUNDED} instead of 0 when the account is unfunded",
    )

    # ── verify ───────────────────────────────────────────────────────────────
    verify_p = sub.add_parser("verify", help="Deploy a fresh game and check its genesis state")
    verify_p.add_argument("--network", "-n", help="Network name (default: CITADEL_NETWORK)")
    verify_p.add_argument(
        "--format",
        "-f",
        default="table",
        choices=["table", "json"],
        help="Output format (default: table)",
    )

    # ── config ───────────────────────────────────────────────────────────────
    sub.add_parser("config", help="Show current configuration")

    return parser


def _settings_for(args: argparse.Namespace) -> Settings:
    settings = get_settings()
    if getattr(args, "network", None):
        settings = settings.model_copy(update={"network": args.network})
    return settings


# ── Deploy command ───────────────────────────────────────────────────────────


async def _run_deploy(args: argparse.Namespace) -> int:
    """Fund the signer if needed, then deploy the game contract."""
    settings = _settings_for(args)
    strict = args.strict or settings.strict_funding

    try:
        async with open_network_context(settings) as ctx:
            try:
                await ensure_funded(ctx)
            except FundingError as exc:
                if exc.code is not ErrorCode.UNFUNDED:
                    raise
                print(_c(exc.hint or str(exc), _RED), file=sys.stderr)
                return EXIT_UNFUNDED if strict else 0

            record = await DeploymentCoordinator(ctx).deploy(
                KING_OF_THE_CASTLE.name,
                skip_if_already_deployed=args.skip_if_deployed,
            )
    except (HarnessError, ValueError) as exc:
        print(_c(f"Deploy failed: {exc}", _RED), file=sys.stderr)
        return 1

    print(f"game contract:  {record.address}")
    return 0


# ── Verify command ───────────────────────────────────────────────────────────


def _print_report(report: VerificationReport, quiet: bool = False) -> None:
    if not quiet:
        print(f"\n{_BOLD}Genesis verification{_RESET}: {report.contract_name} on {report.network}")
        print(f"  Contract: {_c(report.contract_address, _CYAN)}")
        print(f"  Signer:   {report.signer}")
        print(f"  Funding:  {report.funding.value}\n")

    for check in report.checks:
        mark = _c("✓", _GREEN) if check.passed else _c("✗", _RED)
        line = f"  {mark} {check.name}: {check.actual!r}"
        if not check.passed:
            line += _c(f" (expected {check.expected!r})", _DIM)
        print(line)
    print()


async def _run_verify(args: argparse.Namespace) -> int:
    """Run the full fund → deploy → permit → read check."""
    settings = _settings_for(args)

    try:
        async with open_network_context(settings) as ctx:
            report = await VerificationHarness(ctx).run()
    except (HarnessError, ValueError) as exc:
        print(_c(f"Verification failed: {exc}", _RED), file=sys.stderr)
        return 1

    if args.format == "json":
        print(report.model_dump_json(indent=2))
    else:
        _print_report(report, quiet=args.quiet)
    return 0 if report.passed else 1


# ── Config command ───────────────────────────────────────────────────────────


def _run_config() -> int:
    """Print current settings (redacted)."""
    s = get_settings()
    print(f"\n{_BOLD}Citadel Configuration{_RESET}\n")
    for field_name in sorted(type(s).model_fields.keys()):
        val = getattr(s, field_name, "")
        if any(kw in field_name for kw in ("private_key", "mnemonic", "secret", "token")):
            val = "****" if val else "(not set)"
        print(f"  {_DIM}{field_name}:{_RESET}  {val}")
    print()
    return 0


# ── Entrypoint ───────────────────────────────────────────────────────────────


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"citadel {__version__}")
        return 0

    if not args.no_banner and not args.quiet:
        print(BANNER, file=sys.stderr)

    if not args.command:
        parser.print_help()
        return 0

    settings = get_settings()
    setup_logging(settings.app_env, settings.log_level, run_id=uuid.uuid4().hex)

    if args.command == "config":
        return _run_config()

    if args.command == "deploy":
        return asyncio.run(_run_deploy(args))

    if args.command == "verify":
        return asyncio.run(_run_verify(args))

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
