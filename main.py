"""Extreme Research - autonomous web research

Simple CLI for running research prompts.
"""

import argparse
import asyncio
import json
import sys

from extreme_search.agents.orchestrator import ResearchOrchestrator


async def run_research(prompt: str, model: str | None = None, as_json: bool = False) -> int:
    """Run research on the given prompt and print progress as it arrives."""
    print(f"Research prompt: {prompt}")
    print("-" * 50)

    orchestrator = ResearchOrchestrator(model=model)

    async for event in orchestrator.research(prompt):
        event_type = event.event.value
        data = event.data

        if event_type == "status":
            plan = data.get("plan")
            if plan:
                print(f"\n[*] Research Plan ({len(plan)} sections):")
                for i, section in enumerate(plan, 1):
                    print(f"  {i}. {section.get('title', '')}")
                    for query in section.get("queries", []):
                        print(f"     - {query}")
            elif data.get("type") == "code":
                print(f"\n[~] Running code: {data.get('title')}")
            elif data.get("type") == "result":
                print(f"  [+] Code result: {str(data.get('result', ''))[:200]}")
            else:
                print(f"\n[~] {data.get('title')}")

        elif event_type == "thinking":
            print(f"  ... {data.get('content')}")

        elif event_type == "source":
            print(f"  [+] {data.get('title')} <{data.get('url')}>")

        elif event_type == "research_complete":
            if as_json:
                print(json.dumps(data, indent=2))
                continue
            print(f"\n\n[*] Research Complete!")
            print(f"   Sources: {len(data.get('sources', []))}")
            print(f"   Tool calls: {len(data.get('tool_results', []))}")
            print(f"   Charts: {len(data.get('charts', []))}")
            if data.get("degraded_stages"):
                print(f"   Degraded stages: {', '.join(data['degraded_stages'])}")
            print(f"\n{'='*50}")
            print("REPORT:")
            print(f"{'='*50}")
            print(data.get("text", ""))

        elif event_type == "error":
            print(f"\n[!] Error: {data.get('message', 'Unknown error')}")
            return 1
    return 0


def main():
    parser = argparse.ArgumentParser(description="Extreme Research CLI")
    parser.add_argument("--prompt", "-p", required=True, help="Research prompt")
    parser.add_argument("--model", "-m", help="Model to use (default: from config)")
    parser.add_argument("--json", action="store_true", help="Print the final report as JSON")

    args = parser.parse_args()

    sys.exit(asyncio.run(run_research(args.prompt, args.model, args.json)))


if __name__ == "__main__":
    main()
