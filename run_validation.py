# /run_validation.py

import argparse
import json
import sys
from dotenv import load_dotenv

from kitbuild.validator import validate_graph

def main(argv=None) -> int:
    """
    Validates a goal map stored as JSON ({"nodes": [...], "edges": [...]}) and
    prints the findings. Exit status is 0 when valid, 1 when invalid and 2 when
    the file cannot be read.
    """
    load_dotenv()

    parser = argparse.ArgumentParser(description="Validate a KitBuild goal map file.")
    parser.add_argument("path", help="Path to the goal map JSON file.")
    parser.add_argument("--json", action="store_true", help="Print the full result as JSON.")
    args = parser.parse_args(argv)

    try:
        with open(args.path, "r", encoding="utf-8") as f:
            document = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        print(f"Error: could not read {args.path}: {e}", file=sys.stderr)
        return 2

    if not isinstance(document, dict):
        print(f"Error: {args.path} must contain a JSON object with nodes and edges.", file=sys.stderr)
        return 2

    result = validate_graph(document.get("nodes", []), document.get("edges", []))

    if args.json:
        print(result.model_dump_json(indent=2))
    else:
        print(f"Valid: {result.is_valid}")
        for error in result.errors:
            print(f"  ERROR   {error}")
        for warning in result.warnings:
            print(f"  WARNING {warning}")
        print(f"Propositions: {len(result.propositions)}")
        for prop in result.propositions:
            print(f"  {prop.source_id} -[{prop.link_id}]-> {prop.target_id}")

    return 0 if result.is_valid else 1


if __name__ == '__main__':
    sys.exit(main())
