#!/usr/bin/env python3
"""Replit Deployer - fix a Replit project export and deploy it to Render.

Usage:
    python main.py analyze project.zip                          # analyze, write project-fixed.zip
    python main.py analyze project.zip --output out/ --verbose  # show full fixed files
    python main.py analyze project.zip --push my-repo           # also push to GitHub
    python main.py analyze project.zip --push my-repo --deploy  # push, then create a Render blueprint
    python main.py owners                                       # list Render owners
"""

import argparse
import logging
import os
import sys

from dotenv import load_dotenv

from agents.analyzer import DeploymentAnalyzer
from agents.deployer import RenderDeployer
from agents.diagnoser import ErrorDiagnoser
from agents.github_pusher import GitHubPusher
from core.errors import DeployerError
from core.orchestrator import Orchestrator
from utils.archive import read_archive
from utils.llm import LLMClient
from utils.paths import safe_output_path


def _format_fixes(plan, verbose=False):
    """Format suggested fixes for CLI display."""
    lines = []
    for fix in plan.suggested_fixes:
        lines.append(f"  {fix.file_name} - {fix.description}")
        if verbose:
            for code_line in fix.suggested_code.splitlines():
                lines.append(f"      {code_line}")
    return "\n".join(lines)


def _print_plan(result, verbose=False):
    plan = result.plan
    print(f"\nProject type:  {plan.project_type}")
    print(f"Build command: {plan.build_command or '(none)'}")
    print(f"Start command: {plan.start_command or '(none)'}")
    print(f"Model calls:   {result.model_calls} ({result.stop_reason.value})")
    print(f"\nExplanation:\n  {plan.explanation}")
    print(f"\nrender.yaml:\n{plan.render_yaml}")

    if plan.suggested_fixes:
        print(f"\nSuggested fixes ({len(plan.suggested_fixes)}):")
        print(_format_fixes(plan, verbose))
    else:
        print("\nNo file changes were needed.")

    if result.skipped_paths:
        print("\nSkipped fixes with invalid paths:")
        for name in result.skipped_paths:
            print(f"  {name!r}")


def cmd_analyze(args):
    """Run the plan-and-repair loop on an archive, then optionally push and deploy."""
    with open(args.archive, "rb") as f:
        files = read_archive(f.read())
    print(f"Extracted and read {len(files)} text files.")

    llm = LLMClient(api_key=os.environ.get("ANTHROPIC_API_KEY"))
    orchestrator = Orchestrator(DeploymentAnalyzer(llm), max_iterations=args.max_iters)

    result = orchestrator.run(files, on_progress=lambda msg: print(f"  • {msg}"))
    _print_plan(result, args.verbose)

    name, data = orchestrator.build_archive(result, os.path.basename(args.archive))
    os.makedirs(args.output, exist_ok=True)
    out_path = safe_output_path(args.output, name)
    with open(out_path, "wb") as f:
        f.write(data)
    print(f"\nFixed archive: {out_path}")

    if not args.push:
        if args.deploy:
            print("--deploy requires --push (Render deploys from the pushed repository).")
        return

    pusher = GitHubPusher(os.environ.get("GITHUB_TOKEN"))
    pushed = orchestrator.publish(result, pusher, args.push, diagnoser=ErrorDiagnoser(llm))
    print(f"Pushed to GitHub: {pushed.html_url}")

    if args.deploy:
        deployer = RenderDeployer(os.environ.get("RENDER_API_KEY"))
        deployed = deployer.deploy(pushed.html_url, args.push, owner_id=args.owner)
        print(f"Render service:   {deployed.dashboard_url}")


def cmd_owners(args):
    """List the Render owners available to RENDER_API_KEY."""
    deployer = RenderDeployer(os.environ.get("RENDER_API_KEY"))
    print("Render owners:")
    for owner in deployer.list_owners():
        print(f"  {owner.id:24s} {owner.type:5s} {owner.name} <{owner.email}>")


def main():
    load_dotenv()

    parser = argparse.ArgumentParser(
        prog="replit-deployer",
        description="Fix a Replit project export and generate a Render deployment",
    )
    parser.add_argument("--log-level", default="WARNING",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Logging verbosity (default: WARNING)")
    subparsers = parser.add_subparsers(dest="command")

    analyze_parser = subparsers.add_parser("analyze", help="Analyze and fix a project archive")
    analyze_parser.add_argument("archive", help="Path to the exported .zip")
    analyze_parser.add_argument("--output", default=".",
                                help="Directory for the fixed archive (default: .)")
    analyze_parser.add_argument("--max-iters", type=int, default=None,
                                help="Max model calls (default: 3)")
    analyze_parser.add_argument("--verbose", action="store_true",
                                help="Show the full content of each fixed file")
    analyze_parser.add_argument("--push", metavar="REPO",
                                help="Create a GitHub repository and push the fixed project")
    analyze_parser.add_argument("--deploy", action="store_true",
                                help="Create a Render blueprint from the pushed repository")
    analyze_parser.add_argument("--owner", help="Render owner id (default: first owner)")

    subparsers.add_parser("owners", help="List Render owners for RENDER_API_KEY")

    args = parser.parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        if args.command == "analyze":
            cmd_analyze(args)
        elif args.command == "owners":
            cmd_owners(args)
        else:
            parser.print_help()
            sys.exit(1)
    except DeployerError as e:
        print(f"\nError: {e.message}", file=sys.stderr)
        sys.exit(1)
    except (OSError, RuntimeError) as e:
        print(f"\nError: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
