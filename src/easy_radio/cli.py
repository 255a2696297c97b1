"""
Command-line interface for the podcast client.
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from tqdm import tqdm

from .config import Settings
from .downloader import load_rss_from_file
from .factory import create_client
from .manager import RadioClient
from .models import Episode, PlaybackSnapshot, PlaybackStatus
from .utils import format_time


def build_parser() -> argparse.ArgumentParser:
    """Argument parser for the easy-radio command."""
    parser = argparse.ArgumentParser(
        description="Browse, favorite and play podcast episodes"
    )
    parser.add_argument(
        "--data-dir",
        help="Directory for the feed cache and player state "
        "(default: $EASY_RADIO_DATA_DIRECTORY or ./data)",
    )
    parser.add_argument("--feed-url", help="URL of the podcast RSS feed")
    parser.add_argument(
        "--feed-file", help="Read the RSS feed from a local file instead"
    )
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Use the last fetched feed without going to the network",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )

    commands = parser.add_subparsers(dest="command", required=True)

    list_parser = commands.add_parser("list", help="List episodes")
    list_parser.add_argument(
        "--favorites", action="store_true", help="Only list favorites"
    )
    list_parser.add_argument(
        "--search", help="Only list episodes mentioning this text"
    )

    favorite_parser = commands.add_parser(
        "favorite", help="Toggle the favorite flag of an episode"
    )
    favorite_parser.add_argument("number", type=int, help="Episode number")

    play_parser = commands.add_parser("play", help="Play an episode")
    play_parser.add_argument("number", type=int, help="Episode number")
    play_parser.add_argument(
        "--no-progress", action="store_true", help="Disable progress bar"
    )

    forget_parser = commands.add_parser(
        "forget", help="Forget the saved position of an episode"
    )
    forget_parser.add_argument("number", type=int, help="Episode number")

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """CLI entry point for the podcast client."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    settings = Settings.from_env()
    if args.data_dir:
        settings.data_dir = args.data_dir
    if args.feed_url:
        settings.feed_url = args.feed_url
    if args.feed_file:
        settings.feed_url = args.feed_file

    try:
        exit_code = asyncio.run(_run(args, settings))
    except KeyboardInterrupt:
        print("\nPlayback interrupted by user", file=sys.stderr)
        sys.exit(130)
    except Exception as e:  # pylint: disable=broad-except
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if exit_code:
        sys.exit(exit_code)


async def _run(args: argparse.Namespace, settings: Settings) -> int:
    fetcher = load_rss_from_file if args.feed_file else None
    client = create_client(settings, fetcher=fetcher)
    try:
        result = await client.refresh(offline=args.offline)
        if not result.episodes:
            print(
                f"Error: no episodes available ({result.error})",
                file=sys.stderr,
            )
            return 1
        if result.from_cache:
            print("Using cached feed", file=sys.stderr)

        if args.command == "list":
            _list_episodes(client, args.favorites, args.search)
            return 0

        episode = _select(client, args.number)
        if episode is None:
            return 1

        if args.command == "favorite":
            is_favorite = client.library.toggle_favorite(episode.id)
            state = "Added to" if is_favorite else "Removed from"
            print(f"{state} favorites: {episode.title}")
            return 0

        if args.command == "forget":
            if not client.forget_position(episode.id):
                print("Error: could not update player state", file=sys.stderr)
                return 1
            print(f"Forgot saved position: {episode.title}")
            return 0

        return await _play(client, episode, not args.no_progress)
    finally:
        client.close()


def _list_episodes(
    client: RadioClient, favorites_only: bool, search: Optional[str]
) -> None:
    match_ids = None
    if search:
        match_ids = {episode.id for episode in client.library.search(search)}

    shown = 0
    for i, episode in enumerate(client.library.episodes, 1):
        if favorites_only and not episode.is_favorite:
            continue
        if match_ids is not None and episode.id not in match_ids:
            continue
        marker = "*" if episode.is_favorite else " "
        print(f"{i:4d}. {marker} {episode.title}")
        shown += 1

    if not shown:
        print("No matching episodes")


def _select(client: RadioClient, number: int) -> Optional[Episode]:
    episodes = client.library.episodes
    if not 1 <= number <= len(episodes):
        print(
            f"Error: episode number must be between 1 and {len(episodes)}",
            file=sys.stderr,
        )
        return None
    return episodes[number - 1]


async def _play(
    client: RadioClient, episode: Episode, show_progress: bool
) -> int:
    print(f"Loading: {episode.title}")
    result = await client.play_episode(episode.id)
    if not result.success or result.snapshot is None:
        print(f"Error: {result.error}", file=sys.stderr)
        return 1

    duration = result.snapshot.duration_seconds
    if result.restored_position:
        print(f"Resuming at {format_time(result.restored_position)}")

    finished = asyncio.Event()
    progress = tqdm(
        total=int(duration),
        unit="s",
        desc=episode.title[:40],
        disable=not show_progress,
    )

    def on_snapshot(snapshot: PlaybackSnapshot) -> None:
        if snapshot.status is PlaybackStatus.STOPPED:
            progress.n = progress.total
        else:
            progress.n = int(snapshot.position_seconds)
        progress.set_postfix_str(
            f"{format_time(snapshot.position_seconds)}"
            f"/{format_time(snapshot.duration_seconds)}"
        )
        if not snapshot.status.is_active:
            finished.set()

    unsubscribe = client.controller.subscribe(on_snapshot)
    try:
        await finished.wait()
    finally:
        unsubscribe()
        progress.close()

    if client.controller.state.status is PlaybackStatus.FAILED:
        print(f"Error: {client.controller.last_error}", file=sys.stderr)
        return 1
    print("Playback finished")
    return 0


if __name__ == "__main__":
    main()
