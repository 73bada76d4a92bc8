# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""authprobe CLI."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import replace
from typing import Any

from ..config import ProbeConfig
from ..envfile import DEFAULT_ENV_FILE, DEFAULT_ENV_TEMPLATE, EnvConfig, load_env_file
from ..errors import ConfigurationError, ConfigurationMissingError
from ..http import create_default_http_client
from ..log import setup_logging
from ..runtime import AuthProbe
from ..scenario.models import ScenarioReport, StepOutcome, StepStatus
from ..scenario.scenarios import DEFAULT_SCENARIO, SCENARIOS
from ..scenario.steps import ProbeStep

logger = logging.getLogger(__name__)

CLI_TEXT_TRUNCATION_BYTES = 4096
API_KEY_PREVIEW_CHARS = 20

_STATUS_MARKS = {
    StepStatus.SUCCEEDED: "✅",
    StepStatus.FAILED: "❌",
    StepStatus.SKIPPED: "⏭️ ",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Probe a local auth gateway: signup, login, user info and protected reads")
    parser.add_argument(
        "scenario",
        nargs="?",
        default=DEFAULT_SCENARIO,
        choices=sorted(SCENARIOS),
        help=f"Scenario to run (default: {DEFAULT_SCENARIO})",
    )
    parser.add_argument("--env-file", default=DEFAULT_ENV_FILE, help="KEY=VALUE file holding the API key")
    parser.add_argument(
        "--env-template",
        default=DEFAULT_ENV_TEMPLATE,
        help="Template copied to --env-file when it does not exist",
    )
    parser.add_argument("--api-key-var", default="ANON_KEY", help="Env file key holding the API key")
    parser.add_argument("--gateway-url", help="Gateway base URL (overrides AUTHPROBE_GATEWAY_URL)")
    parser.add_argument("--timeout", type=float, help="Per-request timeout in seconds")
    parser.add_argument("--email", help="Test account email")
    parser.add_argument("--password", help="Test account password")
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output JSON instead of human-friendly summary",
    )
    parser.add_argument("--log-level", help="Logging level (default: AUTHPROBE_LOG_LEVEL or WARNING)")
    return parser


def build_config(args: argparse.Namespace, env: EnvConfig) -> ProbeConfig:
    config = ProbeConfig.from_env_config(env, api_key_var=args.api_key_var)
    if args.gateway_url:
        config.topology = replace(config.topology, gateway_url=args.gateway_url)
    if args.timeout is not None:
        config.http = replace(config.http, timeout=args.timeout)
    if args.email:
        config.credentials = replace(config.credentials, email=args.email)
    if args.password:
        config.credentials = replace(config.credentials, password=args.password)
    return config


def _truncate_text_bytes(text: str, max_bytes: int) -> str:
    raw = text.encode("utf-8")
    if len(raw) <= max_bytes:
        return text
    suffix = "...[truncated]"
    keep = max_bytes - len(suffix.encode("utf-8"))
    if keep <= 0:
        return suffix
    return raw[:keep].decode("utf-8", errors="ignore") + suffix


def _truncate_for_cli(value: Any, *, max_bytes: int) -> Any:
    """Truncate large strings anywhere inside JSON-like data."""
    if isinstance(value, str):
        return _truncate_text_bytes(value, max_bytes)
    if isinstance(value, dict):
        return {k: _truncate_for_cli(v, max_bytes=max_bytes) for k, v in value.items()}
    if isinstance(value, list):
        return [_truncate_for_cli(v, max_bytes=max_bytes) for v in value]
    return value


def _print_json(data: dict[str, Any] | Any) -> None:
    payload = data.to_dict() if hasattr(data, "to_dict") else data
    json.dump(_truncate_for_cli(payload, max_bytes=CLI_TEXT_TRUNCATION_BYTES), sys.stdout, indent=2, sort_keys=True)
    sys.stdout.write("\n")


def _render_data(data: Any) -> str:
    if isinstance(data, (dict, list)):
        return json.dumps(data, indent=2)
    return str(data)


def _print_environment(config: ProbeConfig) -> None:
    api_key = config.api_key
    preview = f"{api_key[:API_KEY_PREVIEW_CHARS]}..." if api_key else "NOT FOUND"
    print("🔧 Environment check:")
    print(f"- {config.api_key_var}: {preview}")
    print(f"- Gateway: {config.topology.gateway_url}\n")


def _print_progress(step: ProbeStep, status: StepStatus, outcome: StepOutcome | None) -> None:
    if status == StepStatus.RUNNING:
        print(f"🚀 {step.title}...")
        return
    if outcome is None:
        return
    _print_outcome(outcome)


def _print_outcome(outcome: StepOutcome) -> None:
    mark = _STATUS_MARKS.get(outcome.status, "")
    result = outcome.result
    if outcome.status == StepStatus.SKIPPED:
        print(f"{mark} {outcome.title}: {outcome.reason}\n")
        return
    if result is not None:
        print(f"   {result.endpoint} - Status: {result.status_label}")
    if outcome.status == StepStatus.SUCCEEDED:
        print(f"   {mark} {outcome.title} succeeded")
    else:
        print(f"   {mark} {outcome.title} failed: {outcome.reason}")
        if result is not None and result.data not in (None, ""):
            label = "Response" if result.is_json else "Raw response"
            print(f"   {label}: {_truncate_text_bytes(_render_data(result.data), CLI_TEXT_TRUNCATION_BYTES)}")
    for key, value in outcome.details.items():
        print(f"   - {key}: {value}")
    print()


def _print_summary(report: ScenarioReport) -> None:
    total = len(report.outcomes)
    print(f"[authprobe] Scenario: {report.scenario}")
    print(f"Steps: {total}  succeeded: {report.succeeded}  failed: {report.failed}  skipped: {report.skipped}")
    for outcome in report.outcomes:
        mark = _STATUS_MARKS.get(outcome.status, "")
        suffix = f" - {outcome.reason}" if outcome.reason else ""
        print(f"{mark} {outcome.name}: {outcome.status.value}{suffix}")


async def _run(config: ProbeConfig, scenario: str, *, live: bool) -> ScenarioReport:
    http_client = create_default_http_client(config.http)
    async with AuthProbe(config, http_client, listener=_print_progress if live else None) as probe:
        return await probe.run(scenario)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    try:
        env = load_env_file(args.env_file, args.env_template)
    except ConfigurationMissingError as exc:
        print(f"❌ {exc}", file=sys.stderr)
        print(f"   Please create {args.env_file} with the required environment variables.", file=sys.stderr)
        return 1

    if env.created_from_template:
        print(f"📄 {args.env_file} not found, created from {args.env_template}", file=sys.stderr)
        print(f"⚠️  Please review and update {args.env_file} with your actual values\n", file=sys.stderr)

    try:
        config = build_config(args, env)
    except ConfigurationError as exc:
        print(f"❌ {exc}", file=sys.stderr)
        return 1

    if not args.json:
        _print_environment(config)

    try:
        report = asyncio.run(_run(config, args.scenario, live=not args.json))
    except Exception as exc:  # noqa: BLE001
        logger.exception("Scenario %s aborted", args.scenario)
        print(f"\n❌ Tests failed: {exc}")
        return 0

    if args.json:
        _print_json(report)
    else:
        _print_summary(report)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
