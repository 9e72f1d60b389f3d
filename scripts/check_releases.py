#!/usr/bin/env python3
"""
Check release queries and webhook delivery for local development.

Lists the most recent releases of each configured repository and, with
--notify, posts the newest one to the configured Slack webhook.
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add the src directory to the path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from release_notifier.config import Settings
from release_notifier.exceptions import DeliveryError, QueryError
from release_notifier.github_client import GitHubClient
from release_notifier.notifier import SlackNotifier
from release_notifier.repositories import load_repositories


async def check_releases(repositories: list[str], notify: bool) -> bool:
    """Query every repository once and optionally send a test notification."""
    settings = Settings()
    client = GitHubClient(settings)
    notifier = SlackNotifier(settings.slack_config)
    ok = True

    print("📋 Configuration:")
    print(f"   GitHub API: {settings.github_api_url}")
    print(f"   Token configured: {bool(settings.github_token)}")
    print(f"   Webhook configured: {settings.has_delivery_target}")

    try:
        for repo_name in repositories:
            print(f"\n🔍 {repo_name}")
            try:
                releases = await client.get_releases(repo_name)
            except QueryError as e:
                print(f"   ❌ {e}")
                ok = False
                continue

            if not releases:
                print("   ℹ️  No published releases")
                continue

            for release in releases:
                print(f"   - {release.tag} ({release.published_at:%Y-%m-%d}) {release.title}")

            if notify:
                try:
                    await notifier.send(releases[0])
                    print(f"   ✅ Sent {releases[0].tag} to webhook")
                except DeliveryError as e:
                    print(f"   ❌ Delivery failed: {e}")
                    ok = False
    finally:
        await notifier.close()
        client.close()

    return ok


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("repositories", nargs="*", help="Repositories (owner/name)")
    parser.add_argument("-f", "--file", help="File listing one repository per line")
    parser.add_argument(
        "--notify", action="store_true", help="Send the newest release to the webhook"
    )
    args = parser.parse_args()

    repositories = load_repositories(args.repositories, args.file)
    if not repositories:
        print("❌ No repositories given")
        return 1

    return 0 if asyncio.run(check_releases(repositories, args.notify)) else 1


if __name__ == "__main__":
    sys.exit(main())
