"""CLI command handlers for Prism.

Updates:
  v0.2.0 - 2026-09-21 - Add serve and rate-limit-check handlers.
  v0.1.0 - 2026-09-05 - Demo listing and guest workspace maintenance commands.
"""

from __future__ import annotations

import argparse
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

import uvicorn

from api import AuthenticatedUser, StaticTokenVerifier, create_app
from core import check_rate_limit, get_demo_prompts, get_demo_stats

from .runtime import configure_server_logging
from .utils import print_and_log, write_json

if TYPE_CHECKING:  # pragma: no cover - typing helpers
    from core import GuestServices

CommandHandler = Callable[["GuestServices", argparse.Namespace, logging.Logger], int]


@dataclass(frozen=True)
class CommandSpec:
    """Metadata for dispatching CLI command handlers."""

    handler: CommandHandler


def _run_demo_list(
    services: GuestServices,
    args: argparse.Namespace,
    logger: logging.Logger,
) -> int:
    prompts = get_demo_prompts()
    if args.json:
        print(json.dumps([prompt.to_record() for prompt in prompts], indent=2, ensure_ascii=False))
        return 0
    for prompt in prompts:
        stats = prompt.stats or {}
        print(
            f"{prompt.id:<8} {prompt.title:<36} {prompt.category or '-':<18} "
            f"views={stats.get('views', 0):<6} copies={stats.get('copies', 0)}"
        )
    totals = get_demo_stats()
    print(
        f"\n{totals.total_prompts} demo prompts, {totals.total_views} views, "
        f"{totals.total_copies} copies"
    )
    return 0


def _run_guest_summary(
    services: GuestServices,
    args: argparse.Namespace,
    logger: logging.Logger,
) -> int:
    summary = services.guest_state.get_work_summary()
    info = services.guest_state.get_storage_info()
    last_modified = summary.last_modified.isoformat() if summary.last_modified else "never"
    lines = [
        "Guest workspace summary",
        "-----------------------",
        f"Session: {summary.session_id}",
        f"Prompts: {summary.prompt_count}",
        f"Outputs: {summary.output_count}",
        f"Chat messages: {summary.chat_count}",
        f"Enhancements: {summary.enhancement_count}",
        f"Last modified: {last_modified}",
        f"Stored size: {info.size_in_kb} KiB",
    ]
    print("\n".join(lines))
    return 0


def _run_guest_export(
    services: GuestServices,
    args: argparse.Namespace,
    logger: logging.Logger,
) -> int:
    payload = services.guest_state.export_for_migration()
    try:
        destination = write_json(args.path, payload.to_record())
    except OSError as exc:
        logger.error("Unable to write guest export: %s", exc)
        return 1
    print_and_log(
        logger,
        logging.INFO,
        f"Exported {len(payload.prompts)} prompt(s) and "
        f"{len(payload.chat_messages)} chat message(s) to {destination}",
    )
    return 0


def _run_guest_clear(
    services: GuestServices,
    args: argparse.Namespace,
    logger: logging.Logger,
) -> int:
    if not args.yes:
        summary = services.guest_state.get_work_summary()
        answer = input(
            f"Delete {summary.prompt_count} prompt(s), {summary.output_count} output(s) and "
            f"{summary.chat_count} chat message(s)? [y/N]: "
        )
        if answer.strip().lower() not in {"y", "yes"}:
            print("Aborted.")
            return 1
    result = services.guest_state.clear_guest_work()
    if not result.success:
        logger.error("Failed to clear guest work: %s", result.error)
        return 1
    print_and_log(logger, logging.INFO, "Guest work cleared.")
    return 0


def _run_rate_limit_check(
    services: GuestServices,
    args: argparse.Namespace,
    logger: logging.Logger,
) -> int:
    try:
        policy = services.policy_for(args.endpoint)
    except KeyError as exc:
        logger.error("%s", exc.args[0])
        return 2
    decision = check_rate_limit(services.rate_limiter, args.identity, args.endpoint, policy)
    status = "allowed" if decision.allowed else "blocked"
    print(f"{args.endpoint} for {args.identity}: {status} (count={decision.result.count})")
    for header, value in decision.headers.items():
        print(f"  {header}: {value}")
    if decision.message:
        print(decision.message)
    return 0 if decision.allowed else 1


def _parse_dev_tokens(values: list[str]) -> dict[str, AuthenticatedUser]:
    tokens: dict[str, AuthenticatedUser] = {}
    for raw in values:
        token, separator, uid = raw.partition(":")
        if not separator or not token or not uid:
            raise ValueError(f"Invalid --dev-token {raw!r}; expected TOKEN:UID")
        tokens[token] = AuthenticatedUser(uid=uid)
    return tokens


def _run_serve(
    services: GuestServices,
    args: argparse.Namespace,
    logger: logging.Logger,
) -> int:
    try:
        tokens = _parse_dev_tokens(args.dev_token)
    except ValueError as exc:
        logger.error("%s", exc)
        return 2
    if not tokens:
        logger.warning("No token verifier configured; every API request will be rejected.")
    app = create_app(services, token_verifier=StaticTokenVerifier(tokens))
    host = args.host or services.settings.api_host
    port = args.port or services.settings.api_port
    configure_server_logging(args.debug)
    logger.info("Starting API server on %s:%s", host, port)
    uvicorn.run(app, host=host, port=port, log_config=None)
    return 0


COMMAND_SPECS: dict[str, CommandSpec] = {
    "demo-list": CommandSpec(_run_demo_list),
    "guest-summary": CommandSpec(_run_guest_summary),
    "guest-export": CommandSpec(_run_guest_export),
    "guest-clear": CommandSpec(_run_guest_clear),
    "rate-limit-check": CommandSpec(_run_rate_limit_check),
    "serve": CommandSpec(_run_serve),
}
