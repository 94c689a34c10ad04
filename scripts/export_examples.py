#!/usr/bin/env python3
"""
Static Example Export Script

Renders the documentation examples of every badge service from hand-made
values - no upstream API is contacted - and writes them as JSON:

    [{"service": "ChocolateyVersion", "category": "version",
      "examples": [{"title": ..., "example_url": ..., "preview": {...}}]}]
"""

import json
import os
import sys
from pathlib import Path

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "functions"))

from pipeline.service import prepare_examples  # noqa: E402
from services import all_services  # noqa: E402


def export_examples() -> list[dict]:
    return [
        {
            "service": service.name,
            "category": service.category,
            "examples": prepare_examples(service),
        }
        for service in all_services()
        if service.examples
    ]


def main():
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(description="Export static badge examples")
    parser.add_argument(
        "--output", type=Path, default=None, help="Output file (default: stdout)"
    )
    args = parser.parse_args()

    examples = export_examples()
    output = json.dumps(examples, indent=2, ensure_ascii=False)

    if args.output:
        args.output.write_text(output + "\n", encoding="utf-8")
        print(f"Wrote {sum(len(s['examples']) for s in examples)} examples to {args.output}")
    else:
        print(output)


if __name__ == "__main__":
    main()
