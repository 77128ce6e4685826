"""
RiskVanguard CLI - analyze documents and manage review workflows.

Commands:
    riskvanguard analyze lease.txt --vertical energy --type lease
    riskvanguard agents                      List domain agents
    riskvanguard validate workflow.yaml      Validate a workflow
    riskvanguard templates                   List built-in workflow templates
    riskvanguard run workflow.yaml           Run a workflow locally
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Optional

import yaml

from . import __version__
from .config import PolicyConfig, configure_logging
from .exceptions import RiskVanguardError
from .models import DomainInput


def _parse_pairs(pairs: Optional[list[str]], option: str) -> dict[str, Any]:
    """Turn ``key=value`` arguments into a dict, typing values as YAML scalars."""
    result: dict[str, Any] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            print(f"Error: {option} expects key=value, got '{pair}'", file=sys.stderr)
            sys.exit(2)
        try:
            result[key.strip()] = yaml.safe_load(value)
        except yaml.YAMLError:
            result[key.strip()] = value
    return result


def _read_document(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    file_path = Path(path)
    if not file_path.exists():
        print(f"Error: File not found: {path}", file=sys.stderr)
        sys.exit(1)
    return file_path.read_text()


def _write_result(data: dict[str, Any], output: Optional[str]) -> None:
    if output:
        with open(output, "w") as f:
            json.dump(data, f, indent=2, default=str)
        print(f"Result saved to: {output}")
    else:
        print(json.dumps(data, indent=2, default=str))


def cmd_analyze(args: argparse.Namespace) -> None:
    """Run a document through its domain agent and the vanguard lanes."""
    from .pipeline import AnalysisPipeline
    from .registry import create_default_registry

    policy = PolicyConfig.from_env()
    pipeline = AnalysisPipeline(create_default_registry(policy), policy=policy)
    document = DomainInput(
        document_type=args.type,
        content=_read_document(args.file),
        metadata=_parse_pairs(args.meta, "--meta"),
        context=_parse_pairs(args.context, "--context"),
    )

    try:
        analysis = asyncio.run(pipeline.analyze(args.vertical, document))
    except RiskVanguardError as e:
        print(f"Analysis failed [{e.code}]: {e.message}", file=sys.stderr)
        sys.exit(1)

    if args.json or args.output:
        _write_result(analysis.to_dict(), args.output)
        return

    result = analysis.domain_agent_result or {}
    print(f"Analysis {analysis.id}")
    print(f"  Agent: {result.get('agent_id')}")
    print(f"  Summary: {analysis.summary}")
    print(f"  Overall score: {analysis.overall_score:g} ({analysis.risk_level.value})")
    print("\nVanguard lanes:")
    for lane, lane_result in analysis.vanguard_results.items():
        print(f"  {lane:<20} {lane_result['status']:<8} {lane_result['score']:g}")

    risks = result.get("analysis", {}).get("risks", [])
    if risks:
        print(f"\nRisks ({len(risks)}):")
        for risk in risks:
            print(f"  [{risk['severity']}] {risk['type']}: {risk['description']}")

    recommendations = result.get("recommendations", [])
    if recommendations:
        print(f"\nRecommendations ({len(recommendations)}):")
        for recommendation in recommendations:
            print(f"  - {recommendation}")


def cmd_agents(args: argparse.Namespace) -> None:
    """List registered domain agents."""
    from .registry import create_default_registry

    registry = create_default_registry(PolicyConfig.from_env())
    print("Domain Agents:\n")
    for agent in registry.all():
        print(f"  {agent.id} (v{agent.version})")
        print(f"    {agent.description}")
        print(f"    Document types: {', '.join(agent.document_types)}")
        print(f"    Aliases: {', '.join(registry.aliases_for(agent.id))}")
        print()


def cmd_validate(args: argparse.Namespace) -> None:
    """Validate a workflow YAML file."""
    from .workflow import (
        WorkflowError,
        WorkflowSpec,
        WorkflowValidationError,
        topological_order,
        validate_workflow,
    )

    try:
        warnings = validate_workflow(args.workflow)
        spec = WorkflowSpec.from_yaml(args.workflow)

        print(f"Workflow '{spec.name}' is valid!")
        print(f"  Type: {spec.type.value}")
        print(f"  Steps: {len(spec.steps)}")
        print(f"  Order: {' -> '.join(topological_order(spec.steps))}")

        if warnings:
            print(f"\nWarnings ({len(warnings)}):")
            for warning in warnings:
                print(f"  - {warning}")

    except WorkflowValidationError as e:
        print(f"Validation Error: {e}", file=sys.stderr)
        sys.exit(1)
    except WorkflowError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def cmd_templates(args: argparse.Namespace) -> None:
    """List built-in workflow templates."""
    from .workflow import list_templates

    print("Available Workflow Templates:\n")
    for template in list_templates():
        print(f"  {template['name']}")
        print(f"    {template['title']} ({template['type']}, {template['steps']} steps)")
        if template["description"]:
            print(f"    {template['description']}")
        print()


def cmd_run(args: argparse.Namespace) -> None:
    """Run a workflow file or template locally with the built-in executors."""
    from .executors import default_executors
    from .pipeline import AnalysisPipeline
    from .registry import create_default_registry
    from .workflow import WorkflowEngine, WorkflowError, WorkflowSpec, workflow_from_template

    variables = _parse_pairs(args.var, "--var")
    if args.document:
        variables["document"] = _read_document(args.document)
    if args.approve:
        variables["approvals"] = {step_id: "approved" for step_id in args.approve}

    try:
        if args.workflow.endswith((".yaml", ".yml")):
            workflow = WorkflowSpec.from_yaml(args.workflow).to_workflow(variables=variables)
        else:
            workflow = workflow_from_template(args.workflow, variables=variables)
    except WorkflowError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    policy = PolicyConfig.from_env()
    pipeline = AnalysisPipeline(create_default_registry(policy), policy=policy)
    engine = WorkflowEngine(executors=default_executors(pipeline))

    try:
        asyncio.run(engine.run(workflow))
    except WorkflowError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"Workflow '{workflow.name}' finished: {workflow.status.value}")
    for step in workflow.steps:
        line = f"  {step.id:<20} {step.status.value}"
        if step.error:
            line += f"  ({step.error})"
        print(line)

    if args.output:
        _write_result(workflow.to_dict(), args.output)
    if workflow.status.value != "completed":
        sys.exit(1)


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        prog="riskvanguard",
        description="RiskVanguard CLI - Analyze documents and run review workflows",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--log-level",
        default="warning",
        choices=["debug", "info", "warning", "error"],
        help="Log level (default: warning)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Analyze command
    analyze_parser = subparsers.add_parser("analyze", help="Analyze a document")
    analyze_parser.add_argument("file", help="Path to the document text ('-' for stdin)")
    analyze_parser.add_argument(
        "--vertical",
        "-v",
        required=True,
        help="Business vertical or alias (energy, government, insurance, ...)",
    )
    analyze_parser.add_argument(
        "--type",
        "-t",
        required=True,
        help="Document type (lease, contract, policy, claim, ...)",
    )
    analyze_parser.add_argument(
        "--meta",
        "-m",
        action="append",
        metavar="KEY=VALUE",
        help="Metadata entry; overrides values extracted from the text",
    )
    analyze_parser.add_argument(
        "--context",
        "-c",
        action="append",
        metavar="KEY=VALUE",
        help="Context entry (state, jurisdiction, region, ...)",
    )
    analyze_parser.add_argument("--json", action="store_true", help="Print the full record as JSON")
    analyze_parser.add_argument("--output", "-o", help="Save result to JSON file")
    analyze_parser.set_defaults(func=cmd_analyze)

    # Agents command
    agents_parser = subparsers.add_parser("agents", help="List domain agents")
    agents_parser.set_defaults(func=cmd_agents)

    # Validate command
    validate_parser = subparsers.add_parser("validate", help="Validate a workflow YAML")
    validate_parser.add_argument("workflow", help="Path to workflow YAML file")
    validate_parser.set_defaults(func=cmd_validate)

    # Templates command
    templates_parser = subparsers.add_parser("templates", help="List workflow templates")
    templates_parser.set_defaults(func=cmd_templates)

    # Run command
    run_parser = subparsers.add_parser("run", help="Run a workflow YAML or template")
    run_parser.add_argument("workflow", help="Workflow YAML path or template name")
    run_parser.add_argument("--document", "-d", help="Document text file for analysis steps")
    run_parser.add_argument(
        "--var",
        action="append",
        metavar="KEY=VALUE",
        help="Workflow variable",
    )
    run_parser.add_argument(
        "--approve",
        action="append",
        metavar="STEP",
        help="Record an approval for a review or approval step",
    )
    run_parser.add_argument("--output", "-o", help="Save the final workflow to JSON file")
    run_parser.set_defaults(func=cmd_run)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    configure_logging(args.log_level)
    args.func(args)


if __name__ == "__main__":
    main()
