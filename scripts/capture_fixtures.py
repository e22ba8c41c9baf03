"""
Capture real agent server responses and save them as test fixtures.

Run this script on a machine that can reach the agent servers:

    python scripts/capture_fixtures.py USERNAME [--agent NAME]

Agent URLs come from AGENT_SERVER_URLS (environment or .env), exactly as the
sync service reads them.

Outputs (overwrite tests/fixtures/):
    agent_<name>.json   body of a JSON response
    agent_<name>.txt    body of a plain-text transcript response

Bodies are saved verbatim so the parser and fetcher tests run against real
response shapes, not hand-crafted guesses. Scrub phone numbers and speech
before committing.
"""
import argparse
import json
import sys
from pathlib import Path

import httpx

# Allow running from repo root without installing the package
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from calllog.config import get_settings


FIXTURES_DIR = Path(__file__).parent.parent / "tests" / "fixtures"


def _fixture_name(agent: str, body: str) -> str:
    slug = agent.lower().replace(" ", "_")
    try:
        json.loads(body)
    except ValueError:
        return f"agent_{slug}.txt"
    return f"agent_{slug}.json"


def main() -> None:
    parser = argparse.ArgumentParser(description="Capture real agent server fixtures")
    parser.add_argument("username", help="Username to request logs for")
    parser.add_argument("--agent", help="Only capture this agent (default: all)")
    args = parser.parse_args()

    agents = get_settings().agent_server_urls
    if args.agent:
        agents = {k: v for k, v in agents.items() if k == args.agent}
    if not agents:
        print("❌ No agent servers configured. Set AGENT_SERVER_URLS.")
        sys.exit(1)

    FIXTURES_DIR.mkdir(parents=True, exist_ok=True)
    with httpx.Client(timeout=30.0) as client:
        for agent, base_url in agents.items():
            url = f"{base_url.rstrip('/')}/get-log/{args.username}"
            print(f"🔍 {agent}: {url}")
            try:
                resp = client.get(url, headers={"Accept": "application/json"})
                resp.raise_for_status()
            except httpx.HTTPError as exc:
                print(f"  ⚠️  Skipped: {exc}")
                continue

            if not resp.text.strip():
                print("  ⚠️  Empty body, nothing saved")
                continue

            path = FIXTURES_DIR / _fixture_name(agent, resp.text)
            path.write_text(resp.text)
            print(f"  ✅ Saved {path} ({path.stat().st_size} bytes)")


if __name__ == "__main__":
    main()
