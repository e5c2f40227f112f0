from __future__ import annotations

import argparse
import logging
from typing import Optional

from ghrules.config import load_config, setup_logging
from ghrules.domain.exceptions import ConfigurationError, NotFoundError
from ghrules.enums.rules import LoadStatus
from ghrules.services.container import RuleConfigContainer

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ghrules", description="Inspect and manage greenhouse automation rules")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("greenhouses", help="List greenhouses")

    # Rule commands act on the rules of one greenhouse
    scope = argparse.ArgumentParser(add_help=False)
    scope.add_argument("--greenhouse", "-g", type=int, help="Greenhouse id (default: first)")

    sub.add_parser("rules", parents=[scope], help="List the rules of a greenhouse")

    toggle = sub.add_parser("toggle", parents=[scope], help="Enable or disable a rule")
    toggle.add_argument("rule_id", type=int)
    state = toggle.add_mutually_exclusive_group(required=True)
    state.add_argument("--on", dest="enabled", action="store_true")
    state.add_argument("--off", dest="enabled", action="store_false")

    delete = sub.add_parser("delete", parents=[scope], help="Delete a rule")
    delete.add_argument("rule_id", type=int)
    delete.add_argument("--yes", "-y", action="store_true", help="Do not ask for confirmation")
    return parser


def _ask(prompt: str) -> bool:
    return input(f"{prompt} [y/N] ").strip().lower() in {"y", "yes"}


def _select(container: RuleConfigContainer, gh_id: Optional[int]) -> bool:
    if not container.start():
        print(container.selector.error)
        return False
    if gh_id is not None:
        container.selector.select(gh_id)
    if container.loader.pending is not None:
        container.loader.pending.result()
    if container.rule_store.status != LoadStatus.READY:
        print(container.rule_store.error or "No greenhouse selected")
        return False
    return True


def _print_rules(container: RuleConfigContainer) -> None:
    directory = container.directory
    for rule in container.rule_store.rules:
        state = "on " if rule.enabled else "off"
        if rule.kind == "threshold":
            condition = f"{directory.display_name(rule.from_comp_id)} {rule.operator_} {rule.threshold:g}"
        else:
            condition = f"at {rule.time_spec}"
        print(f"{rule.rule_id:>5}  [{state}]  {rule.name}: {condition} -> {directory.display_name(rule.to_comp_id)}")


def main(argv: list[str] | None = None) -> int:
    """Entry point of the ``ghrules`` console script."""
    args = _build_parser().parse_args(argv)

    try:
        config = load_config()
    except ConfigurationError as e:
        print(f"Invalid configuration: {e}")
        return 2
    setup_logging(debug=args.debug or config.DEBUG, log_file=config.log_file)

    logger.debug("Running command %s", args.command)
    container = RuleConfigContainer.build(config)
    try:
        if args.command == "greenhouses":
            if not container.start():
                print(container.selector.error)
                return 1
            active = container.selector.active_id
            for gh in container.selector.greenhouses:
                marker = "*" if gh.gh_id == active else " "
                print(f"{marker} {gh.gh_id:>5}  {gh.name}  {gh.location or ''}".rstrip())
            return 0

        if not _select(container, args.greenhouse):
            return 1

        if args.command == "rules":
            _print_rules(container)
            return 0

        if args.command == "toggle":
            enabled = container.toggles.toggle(args.rule_id, args.enabled)
            if enabled is None:
                print(container.notifications.latest.message)
                return 1
            print(f"Rule {args.rule_id} is now {'enabled' if enabled else 'disabled'}")
            return 0 if enabled == args.enabled else 1

        if args.command == "delete":
            confirm = (lambda _prompt: True) if args.yes else _ask
            if container.rule_store.delete(args.rule_id, confirm):
                print(f"Deleted rule {args.rule_id}")
                return 0
            latest = container.notifications.latest
            if latest is not None:
                print(latest.message)
            return 1
    except NotFoundError as e:
        print(e)
        return 2
    finally:
        container.shutdown()
    return 0


if __name__ == "__main__":
    import sys

    raise SystemExit(main(sys.argv[1:]))
