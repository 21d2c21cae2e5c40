"""CLI for NVD Matcher operations."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

from .keymanager import KEYS, delete_api_key, key_status, set_api_key

# NVD rejects modification windows longer than this
MAX_WINDOW_DAYS = 120


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def cmd_keys(args: argparse.Namespace) -> int:
    """Handle key management commands."""
    if args.keys_action == "list":
        print("API Key Status:")
        print("-" * 40)
        for key_name, configured in key_status().items():
            state = "configured" if configured else "not configured"
            print(f"{key_name}: {state}")
        return 0

    if not args.key_name:
        print(f"Error: key_name required for '{args.keys_action}' action")
        return 1
    if args.key_name not in KEYS:
        print(f"Error: Unknown key '{args.key_name}'")
        print(f"Valid keys: {', '.join(KEYS.keys())}")
        return 1

    if args.keys_action == "set":
        import getpass

        value = getpass.getpass(f"Enter value for {args.key_name}: ")
        return 0 if set_api_key(args.key_name, value) else 1

    if delete_api_key(args.key_name):
        return 0
    print(f"Key {args.key_name} not found or could not be deleted")
    return 1


def _client():
    from .clients import NVDClient
    from .config import get_settings

    settings = get_settings()
    return NVDClient(
        page_delay=settings.page_delay,
        results_per_page=settings.results_per_page,
        timeout=settings.request_timeout,
    )


def _window_params(since: str | None) -> dict:
    """Build lastMod window parameters from an ISO start date."""
    if not since:
        return {}
    start = datetime.fromisoformat(since)
    if start.tzinfo is None:
        start = start.replace(tzinfo=timezone.utc)
    end = datetime.now(timezone.utc)
    if (end - start).days > MAX_WINDOW_DAYS:
        raise ValueError(f"--since must be within {MAX_WINDOW_DAYS} days")
    return {
        "lastModStartDate": start.isoformat(timespec="milliseconds"),
        "lastModEndDate": end.isoformat(timespec="milliseconds"),
    }


def cmd_sync(args: argparse.Namespace) -> int:
    """Sync CPEs or CVEs from NVD into the local store."""
    from .clients import APIError
    from .ingest import SyncInProgressError, open_store, sync_cpes, sync_cves

    try:
        params = _window_params(args.since)
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    with open_store(args.db) as store:
        try:
            if args.command == "sync-cpes":
                report = sync_cpes(_client(), store, params)
            else:
                report = sync_cves(_client(), store, params, workers=args.workers)
        except (APIError, SyncInProgressError) as e:
            logging.getLogger(__name__).error(f"Sync aborted: {e}")
            print(f"Error: {e}")
            return 1

    if args.format == "json":
        print(json.dumps(report.to_dict(), indent=2))
    else:
        print(f"Pages:   {report.pages}")
        print(f"Fetched: {report.fetched} of {report.total}")
        print(f"Stored:  {report.stored}")
        print(f"Skipped: {report.skipped}")
    return 0


def cmd_encode(args: argparse.Namespace) -> int:
    """Print padded encodings of version strings."""
    from .version import padded_version

    encoded = {v: padded_version(v) for v in args.versions}
    if args.format == "json":
        print(json.dumps(encoded, indent=2))
    else:
        for version, padded in encoded.items():
            print(f"{version:30s} {padded}")
    return 0


def cmd_parse_cpe(args: argparse.Namespace) -> int:
    """Show the components of a CPE name."""
    from .cpe import parse_cpe23, parse_version
    from .version import padded_version

    name = parse_cpe23(args.cpe)
    if not name.is_valid:
        print(f"Error: Not a CPE 2.3 name: {args.cpe}")
        return 1
    data = name.to_dict()
    data["matchVersion"] = parse_version(args.cpe)
    data["paddedVersion"] = padded_version(data["matchVersion"])

    if args.format == "json":
        print(json.dumps(data, indent=2))
    else:
        for key, value in data.items():
            print(f"{key:15s} {value}")
    return 0


def _extract_cve(document: object) -> dict | None:
    """Unwrap a full API response, a vulnerabilities[] item or a bare cve object."""
    if not isinstance(document, dict):
        return None
    if "vulnerabilities" in document:
        items = document["vulnerabilities"]
        if not isinstance(items, list) or not items or not isinstance(items[0], dict):
            return None
        document = items[0]
    cve = document.get("cve", document)
    return cve if isinstance(cve, dict) else None


def cmd_resolve(args: argparse.Namespace) -> int:
    """Resolve the configurations of a CVE JSON document."""
    from .models import parse_configurations
    from .resolver import ConfigurationResolver
    from .store import MemoryCatalog

    try:
        document = json.loads(Path(args.file).read_text())
    except (OSError, json.JSONDecodeError) as e:
        print(f"Error: Could not read {args.file}: {e}")
        return 1

    cve = _extract_cve(document)
    if cve is None:
        print(f"Error: No CVE object found in {args.file}")
        return 1
    nodes = parse_configurations(cve.get("configurations"))

    if args.catalog:
        try:
            cpes = json.loads(Path(args.catalog).read_text())
        except (OSError, json.JSONDecodeError) as e:
            print(f"Error: Could not read {args.catalog}: {e}")
            return 1
        if not isinstance(cpes, list) or not all(isinstance(c, str) for c in cpes):
            print(f"Error: {args.catalog} must hold a JSON list of CPE names")
            return 1
        result = ConfigurationResolver(MemoryCatalog.from_cpes(cpes)).resolve(nodes)
    else:
        from .ingest import open_store

        with open_store(args.db) as store:
            result = ConfigurationResolver(store).resolve(nodes)

    data = result.to_dict()
    if args.format == "json":
        print(json.dumps({"cveId": cve.get("id", ""), **data}, indent=2))
    else:
        for key in ("vendors", "products", "vulnerableProducts", "vulnerableConfigs"):
            print(f"{key}:")
            for value in data[key]:
                print(f"  {value}")
    return 0


def cmd_show(args: argparse.Namespace) -> int:
    """Show a stored CVE."""
    from .ingest import open_store

    with open_store(args.db) as store:
        record = store.get_cve(args.cve_id)

    if record is None:
        print(f"Error: {args.cve_id} not found in local store")
        return 1

    if args.format == "json":
        print(json.dumps(record.to_dict(), indent=2))
    else:
        print(f"CVE: {record.cve_id}")
        print(f"Status: {record.nvd_status}")
        print(f"CWE: {record.cwe}")
        for score in record.cvss:
            print(f"CVSS {score.version}: {score.base_score} ({score.severity})")
        print(f"Vendors: {', '.join(record.vendors) or '-'}")
        print(f"Products: {', '.join(record.products) or '-'}")
        print(f"Vulnerable CPEs: {len(record.vulnerable_products)}")
        print(f"\nDescription:\n{record.description[:500]}")
    return 0


def cmd_stats(args: argparse.Namespace) -> int:
    """Show store counts."""
    from .ingest import open_store

    with open_store(args.db) as store:
        stats = store.stats()

    if args.format == "json":
        print(json.dumps(stats, indent=2))
    else:
        print(f"CPE names:      {stats['cpes']}")
        print(f"  deprecated:   {stats['deprecated_cpes']}")
        print(f"CVEs:           {stats['cves']}")
    return 0


def _add_format(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--format",
        choices=["text", "json"],
        default="text",
        help="Output format",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nvd-matcher",
        description="NVD Matcher - resolve CVE version ranges to CPE names",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--db", help="SQLite database path (default from settings)")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    keys_parser = subparsers.add_parser("keys", help="Manage API keys")
    keys_parser.add_argument("keys_action", choices=["list", "set", "delete"], help="Key action")
    keys_parser.add_argument("key_name", nargs="?", help="API key name")
    keys_parser.set_defaults(func=cmd_keys)

    for name, help_text in (
        ("sync-cpes", "Fetch CPE names from NVD into the local catalog"),
        ("sync-cves", "Fetch CVEs from NVD and resolve their affected CPEs"),
    ):
        sync_parser = subparsers.add_parser(name, help=help_text)
        sync_parser.add_argument("--since", help="Only records modified since this ISO date")
        sync_parser.add_argument("--workers", type=int, help="Parallel CVE resolution workers")
        _add_format(sync_parser)
        sync_parser.set_defaults(func=cmd_sync)

    encode_parser = subparsers.add_parser("encode", help="Show padded version encodings")
    encode_parser.add_argument("versions", nargs="+", help="Version strings")
    _add_format(encode_parser)
    encode_parser.set_defaults(func=cmd_encode)

    cpe_parser = subparsers.add_parser("parse-cpe", help="Show the components of a CPE name")
    cpe_parser.add_argument("cpe", help="CPE 2.3 name")
    _add_format(cpe_parser)
    cpe_parser.set_defaults(func=cmd_parse_cpe)

    resolve_parser = subparsers.add_parser("resolve", help="Resolve a CVE JSON document")
    resolve_parser.add_argument("file", help="CVE JSON file (NVD API 2.0 format)")
    resolve_parser.add_argument("--catalog", help="JSON list of CPE names to match against")
    _add_format(resolve_parser)
    resolve_parser.set_defaults(func=cmd_resolve)

    show_parser = subparsers.add_parser("show", help="Show a stored CVE")
    show_parser.add_argument("cve_id", help="CVE ID (e.g., CVE-2024-1234)")
    _add_format(show_parser)
    show_parser.set_defaults(func=cmd_show)

    stats_parser = subparsers.add_parser("stats", help="Show local store counts")
    _add_format(stats_parser)
    stats_parser.set_defaults(func=cmd_stats)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    _setup_logging(args.verbose)
    result: int = args.func(args)
    return result


if __name__ == "__main__":
    sys.exit(main())
