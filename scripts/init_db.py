#!/usr/bin/env python3
"""
MongoDB Database Initialization Script for Tubely.

Connects with the application's settings, creates the ``videos`` collection
indexes, and optionally seeds a video record owned by a given user so the
upload endpoints can be exercised locally. Safe to run repeatedly.

Usage:
    python scripts/init_db.py [options]

Options:
    --drop              Drop the videos collection first (WARNING: destructive)
    --seed-user UUID    Insert a video owned by this user id
    --title TEXT        Title of the seeded video
    --verbose           Display detailed operation logs

Configuration comes from the same environment variables / .env file as
the API (MONGODB_URI, MONGODB_DB_NAME, ...).
"""

import argparse
import asyncio
import logging
import sys

from uuid import UUID

from tubely.config import get_settings
from tubely.core.database import VIDEOS_COLLECTION, MongoVideoStore, close_db, init_db
from tubely.models.video import Video
from tubely.utils.logger import setup_logging


logger = logging.getLogger("tubely.scripts.init_db")


def parse_arguments() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Initialize MongoDB for the Tubely upload service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/init_db.py
  python scripts/init_db.py --seed-user 7c9e6679-7425-40de-944b-e07fc1f90ae7
  python scripts/init_db.py --drop --verbose
        """,
    )
    parser.add_argument(
        "--drop",
        action="store_true",
        help="Drop the videos collection before creating indexes (WARNING: destructive)",
    )
    parser.add_argument("--seed-user", type=UUID, help="Owner id of a video record to insert")
    parser.add_argument("--title", default="Sample video", help="Title of the seeded video")
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Display detailed operation logs"
    )
    return parser.parse_args()


async def initialize(args: argparse.Namespace) -> int:
    settings = get_settings()

    if args.drop:
        confirmation = input(
            "\nWARNING: This will DELETE ALL video records.\nType 'yes' to confirm: "
        )
        if confirmation.lower() != "yes":
            print("Operation cancelled.")
            return 0

    client = await init_db(settings)
    try:
        if args.drop:
            await client.get_database().drop_collection(VIDEOS_COLLECTION)
            await client.create_indexes()
            logger.info("Dropped and re-indexed videos collection")

        if args.seed_user is not None:
            store = MongoVideoStore(client.get_videos_collection())
            video = await store.create_video(Video(user_id=args.seed_user, title=args.title))
            print(f"Seeded video {video.id} owned by {video.user_id}")
    finally:
        await close_db()

    return 0


def main() -> int:
    args = parse_arguments()
    setup_logging(log_level="DEBUG" if args.verbose else "INFO", json_logs=False)

    print("\n" + "=" * 60)
    print("Tubely - MongoDB Database Initialization")
    print("=" * 60 + "\n")

    try:
        return asyncio.run(initialize(args))
    except KeyboardInterrupt:
        print("\n\nInitialization interrupted by user.")
        return 130
    except RuntimeError as e:
        print(f"\nInitialization failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
