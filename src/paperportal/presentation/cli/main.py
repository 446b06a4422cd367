"""
CLI entry point.

Subcommands:
    serve   run the HTTP API with uvicorn
    seed    create the schema, default categories and optional demo users
    list    print papers (optionally as a role's review queue)
    stats   print repository and per-status counts
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from typing import Optional

from dotenv import find_dotenv, load_dotenv

from paperportal.application.services.query_filter import status_counts
from paperportal.core.abstractions.errors import WorkflowError
from paperportal.infrastructure.service_factory import build_research_service

# Load local .env so PAPERPORTAL_* settings apply to CLI runs too.
load_dotenv(find_dotenv(usecwd=True), override=False)

VERSION = "0.1.0"

DEMO_USERS = (
    {"email": "faculty@portal.local", "full_name": "Demo Faculty", "role": "faculty", "department": "CCS"},
    {"email": "editor@portal.local", "full_name": "Demo Editor", "role": "staff", "department": "CCS"},
    {"email": "admin@portal.local", "full_name": "Demo Admin", "role": "admin"},
    {"email": "student@portal.local", "full_name": "Demo Student", "role": "student", "program": "BSIT"},
)


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="paperportal",
        description="PaperPortal - research submission and review workflow",
    )
    parser.add_argument("--version", "-V", action="store_true", help="print version")
    parser.add_argument("--db-url", help="database URL (default: PAPERPORTAL_DB_URL)")

    subparsers = parser.add_subparsers(dest="command", help="available commands")

    serve_parser = subparsers.add_parser("serve", help="run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)
    serve_parser.add_argument("--reload", action="store_true")

    seed_parser = subparsers.add_parser("seed", help="create schema and reference data")
    seed_parser.add_argument(
        "--demo-users", action="store_true", help="also add one user per role"
    )

    list_parser = subparsers.add_parser("list", help="list papers")
    list_parser.add_argument("--status", help="only papers in this status")
    list_parser.add_argument(
        "--role", choices=["student", "faculty", "staff", "editor", "admin"],
        help="show the review queue for this role",
    )
    list_parser.add_argument(
        "--filter", dest="status_filter", default="all",
        help="queue bucket when --role is given: all, needs_review or a status",
    )
    list_parser.add_argument("--actor-id", help="scope the queue to this user")
    list_parser.add_argument("--search", default="")
    list_parser.add_argument("--json", action="store_true", help="print JSON")

    stats_parser = subparsers.add_parser("stats", help="repository statistics")
    stats_parser.add_argument("--json", action="store_true", help="print JSON")

    return parser


def run_cli(args: Optional[list] = None) -> int:
    """
    Run the CLI.

    Args:
        args: argument list (defaults to sys.argv)

    Returns:
        exit code
    """
    parser = create_parser()
    parsed = parser.parse_args(args)

    if parsed.version:
        print(f"PaperPortal v{VERSION}")
        return 0

    if not parsed.command:
        parser.print_help()
        return 0

    try:
        if parsed.command == "serve":
            return _run_serve(parsed)
        if parsed.command == "seed":
            return _run_seed(parsed)
        if parsed.command == "list":
            return _run_list(parsed)
        if parsed.command == "stats":
            return _run_stats(parsed)
        return 0
    except WorkflowError as e:
        print(f"Error: {e.message} ({e.code})", file=sys.stderr)
        return 2


def _run_serve(parsed: argparse.Namespace) -> int:
    import uvicorn

    if parsed.db_url:
        os.environ["PAPERPORTAL_DB_URL"] = parsed.db_url
    uvicorn.run(
        "paperportal.api.main:app", host=parsed.host, port=parsed.port, reload=parsed.reload
    )
    return 0


def _run_seed(parsed: argparse.Namespace) -> int:
    service = build_research_service(parsed.db_url, seed_reference=False)
    added = service.directory.seed_defaults()
    print(f"categories added: {added}")
    if parsed.demo_users:
        existing = {u["email"] for u in service.directory.list_users()}
        for user in DEMO_USERS:
            if user["email"] in existing:
                continue
            row = service.directory.add_user(**user)
            print(f"user added: {row['role']:<8} {row['id']}  {row['email']}")
    return 0


def _run_list(parsed: argparse.Namespace) -> int:
    service = build_research_service(parsed.db_url, seed_reference=False)
    if parsed.role:
        queue = service.review_queue(
            parsed.role,
            status_filter=parsed.status_filter,
            search=parsed.search,
            actor_id=parsed.actor_id,
        )
        papers, stats = queue["papers"], queue["stats"]
    else:
        papers, stats = service.get_all_research(parsed.status), None

    if parsed.json:
        payload = {"papers": [p.to_dict() for p in papers]}
        if stats is not None:
            payload["stats"] = stats
        print(json.dumps(payload, ensure_ascii=False, indent=2))
        return 0

    for paper in papers:
        submitted = paper.submission_date.strftime("%Y-%m-%d") if paper.submission_date else "-"
        print(f"{paper.id}  {paper.status.value:<18} v{paper.version:<3} {submitted}  {paper.title}")
    if stats is not None:
        print(f"total: {stats['total']}  needs_review: {stats['needs_review']}")
    else:
        print(f"total: {len(papers)}")
    return 0


def _run_stats(parsed: argparse.Namespace) -> int:
    service = build_research_service(parsed.db_url, seed_reference=False)
    payload = {
        "repository": service.repository_stats(),
        "status_counts": status_counts(service.get_all_research()),
    }
    if parsed.json:
        print(json.dumps(payload, ensure_ascii=False, indent=2))
        return 0
    repo = payload["repository"]
    print(f"published: {repo['total_papers']}  authors: {repo['total_authors']}")
    print(f"views: {repo['total_views']}  downloads: {repo['total_downloads']}")
    for status, count in payload["status_counts"].items():
        print(f"  {status:<18} {count}")
    return 0


def main() -> None:
    sys.exit(run_cli())


if __name__ == "__main__":
    main()
