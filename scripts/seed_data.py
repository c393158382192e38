#!/usr/bin/env python3
"""
Seed script — creates a small community for trying the feed.

Creates:
  • 10 users
  • A follow graph (each user follows 3 others)
  • 6 games
  • 2-4 reviews per user, some left as drafts

Run against a running API:
  python scripts/seed_data.py --api-url http://localhost:8000

All IDs are printed so you can use them in curl commands.
"""
import argparse
import json
import random
import time
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Optional


BASE_USERS = [
    ("ada_plays", "Ada Lovelace"),
    ("boss_rush", "Bruno Silva"),
    ("coop_cleo", "Cleo Park"),
    ("dps_dev", "Dev Patel"),
    ("eight_bit_em", "Emma Novak"),
    ("frame_perfect", "Felix Wong"),
    ("glitchless_gia", "Gia Rossi"),
    ("hundred_pct", "Hana Sato"),
    ("idle_ivan", "Ivan Petrov"),
    ("jrpg_jules", "Jules Martin"),
]

GAMES = [
    ("Hollow Knight", "hollow-knight"),
    ("Celeste", "celeste"),
    ("Outer Wilds", "outer-wilds"),
    ("Hades", "hades"),
    ("Stardew Valley", "stardew-valley"),
    ("Disco Elysium", "disco-elysium"),
]

SAMPLE_REVIEWS = [
    "Every room hides something; exploration never stops paying off.",
    "Tough but fair, and the soundtrack carries the hard sections.",
    "The ending reframed everything I had done up to that point.",
    "Tight combat loop, I kept saying one more run until 3am.",
    "Cozy, generous and far deeper than it first looks.",
    "The writing is the gameplay, and it is brilliant writing.",
    "Great first ten hours, then the pacing drags noticeably.",
    "Gorgeous art direction, slightly clunky controls on pad.",
]


@dataclass
class ApiClient:
    base_url: str

    def request(self, method: str, path: str, data: Optional[dict] = None, user_id: Optional[str] = None) -> dict:
        url = f"{self.base_url}{path}"
        headers = {"Content-Type": "application/json"}
        if user_id:
            headers["X-User-Id"] = user_id
        body = json.dumps(data).encode() if data is not None else None
        req = urllib.request.Request(url, data=body, headers=headers, method=method)
        try:
            with urllib.request.urlopen(req, timeout=10) as resp:
                raw = resp.read()
                return json.loads(raw) if raw else {}
        except urllib.error.HTTPError as e:
            print(f"  HTTP {e.code} on {method} {path}: {e.read().decode()}")
            return {}

    def post(self, path: str, data: Optional[dict] = None, user_id: Optional[str] = None) -> dict:
        return self.request("POST", path, data, user_id)

    def get(self, path: str) -> dict:
        return self.request("GET", path)


def wait_for_api(client: ApiClient, retries: int = 15) -> None:
    print(f"Waiting for API at {client.base_url} ...")
    for _ in range(retries):
        try:
            if client.get("/health").get("status") == "ok":
                print("  API is ready!\n")
                return
        except urllib.error.URLError:
            pass
        time.sleep(3)
    raise RuntimeError(f"API not reachable at {client.base_url} after {retries} retries")


def main(api_url: str) -> None:
    client = ApiClient(api_url)
    wait_for_api(client)

    # ── Create users ─────────────────────────────────────────────────────
    print("Creating users...")
    user_ids: list[str] = []
    for username, display_name in BASE_USERS:
        uid = client.post("/users/", {"username": username, "display_name": display_name}).get("id", "")
        if uid:
            user_ids.append(uid)
            print(f"  ✓ {username} ({uid})")
        else:
            print(f"  ✗ Failed to create {username}")

    if not user_ids:
        print("No users created — aborting")
        return

    # ── Create games ─────────────────────────────────────────────────────
    print("\nCreating games...")
    game_ids: list[str] = []
    for title, slug in GAMES:
        gid = client.post("/games/", {"title": title, "slug": slug}).get("id", "")
        if gid:
            game_ids.append(gid)
    print(f"  ✓ {len(game_ids)} games created")

    # ── Create follow graph ───────────────────────────────────────────────
    print("\nCreating follow relationships...")
    for follower_id in user_ids:
        for target_id in random.sample([u for u in user_ids if u != follower_id], k=min(3, len(user_ids) - 1)):
            client.post(f"/social/follow/{target_id}", user_id=follower_id)
    print("  ✓ Follow graph created")

    # ── Create reviews ────────────────────────────────────────────────────
    print("\nWriting reviews...")
    written = 0
    for user_id in user_ids:
        for game_id in random.sample(game_ids, k=random.randint(2, min(4, len(game_ids)))):
            result = client.post(
                "/reviews/",
                {
                    "game_id": game_id,
                    "content": random.choice(SAMPLE_REVIEWS),
                    "rating": round(random.uniform(4, 10), 1),
                    "is_published": random.random() > 0.15,
                },
                user_id=user_id,
            )
            if result.get("id"):
                written += 1
    print(f"  ✓ {written} reviews written")

    # ── Print summary ─────────────────────────────────────────────────────
    print("\n" + "=" * 60)
    print("Seed complete! Here are some commands to try:\n")
    u = user_ids[0]
    print(f"# Activity feed for '{BASE_USERS[0][0]}':")
    print(f"  curl -s -H 'X-User-Id: {u}' '{api_url}/social/feed?limit=10' | python3 -m json.tool\n")
    print(f"# Who should '{BASE_USERS[0][0]}' follow next?")
    print(f"  curl -s -H 'X-User-Id: {u}' '{api_url}/social/suggestions' | python3 -m json.tool\n")
    if game_ids:
        print("# A game's rating aggregate:")
        print(f"  curl -s '{api_url}/games/{game_ids[0]}' | python3 -m json.tool\n")
    print("# Check Jaeger traces: http://localhost:16686")
    print(f"# Prometheus metrics: {api_url}/metrics")
    print("=" * 60)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the game feed service")
    parser.add_argument("--api-url", default="http://localhost:8000", help="API base URL")
    args = parser.parse_args()
    main(args.api_url)
