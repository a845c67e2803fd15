import argparse
import random
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from app import repo
from app.auth.security import create_access_token

CATEGORIES = ["PC", "PS5", "PS4", "Xbox Series", "Switch"]
TITLES = [
    "Elden Ring",
    "Hades",
    "Zelda: Tears of the Kingdom",
    "Forza Horizon 5",
    "Baldur's Gate 3",
    "Spider-Man 2",
    "Hollow Knight",
    "Stardew Valley",
]


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed demo swap users and items")
    parser.add_argument("--n-users", type=int, default=10)
    parser.add_argument("--items-per-user", type=int, default=3)
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--print-tokens", action="store_true")
    args = parser.parse_args()

    rng = random.Random(args.seed)
    created = []
    for n in range(args.n_users):
        prefs = {"preferred_categories": rng.sample(CATEGORIES, k=rng.randint(0, 2))}
        user = repo.create_user(display_name=f"Player {n + 1}", username=f"player{n + 1}", preferences=prefs)
        for _ in range(args.items_per_user):
            repo.create_item(user["id"], title=rng.choice(TITLES), category=rng.choice(CATEGORIES), condition="good")
        created.append(user)

    print(f"Seed complete: users={len(created)} items={len(created) * args.items_per_user}")
    if args.print_tokens:
        for user in created:
            print(f"{user['username']}\t{user['id']}\t{create_access_token(user['id'])}")


if __name__ == "__main__":
    main()
