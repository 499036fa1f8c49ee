# =============================================================================
# stackdigger/cli/stacks.py -- Stack CLI (build, browse, delete, maintain)
# =============================================================================
#
# Runs the same components as the API server, as a one-shot script against
# the local exposure database:
#
#   python -m stackdigger.cli.stacks build --track "Bonobo" --genre house:House
#   python -m stackdigger.cli.stacks build --dj "Ben UFO" --json
#   python -m stackdigger.cli.stacks build --track "Four Tet - Baby" --dry-run
#   python -m stackdigger.cli.stacks history
#   python -m stackdigger.cli.stacks show 1718000000000-1a2b3c4d
#   python -m stackdigger.cli.stacks delete 1718000000000-1a2b3c4d
#   python -m stackdigger.cli.stacks seen /shows/floating-points/episodes/x
#   python -m stackdigger.cli.stacks stats
#   python -m stackdigger.cli.stacks clear --yes
#
# Seeds keep the order they were given on the command line, mixing
# --track, --genre and --dj freely.  Log lines go to stderr; stdout carries
# only the command output.
# =============================================================================

"""Command-line interface for building and managing stacks."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any

from pydantic import ValidationError

from stackdigger.models.seeds import GenreSeed, SetSeed, TrackSeed
from stackdigger.models.stack import Stack
from stackdigger.utils.errors import NoNewContentError, StackDiggerError

_EXIT_OK = 0
_EXIT_ERROR = 1
_EXIT_NOTHING_NEW = 3


# ---------------------------------------------------------------------------
# Seed argument parsing
# ---------------------------------------------------------------------------


def parse_track_arg(value: str) -> TrackSeed:
    """``"Artist - Title"`` or just ``"Artist"``."""
    artist, sep, title = value.partition(" - ")
    if not sep:
        artist, title = value, ""
    seed = TrackSeed(artist=artist.strip(), title=title.strip())
    if seed.is_blank:
        raise argparse.ArgumentTypeError(f"invalid track seed {value!r}")
    return seed


def parse_genre_arg(value: str) -> GenreSeed:
    """``"genre-id"`` or ``"genre-id:Display Name"``."""
    genre_id, _, name = value.partition(":")
    try:
        return GenreSeed(genre_id=genre_id.strip(), name=name.strip() or None)
    except ValidationError as exc:
        raise argparse.ArgumentTypeError(f"invalid genre seed {value!r}") from exc


def parse_dj_arg(value: str) -> SetSeed:
    try:
        return SetSeed(artist=value.strip())
    except ValidationError as exc:
        raise argparse.ArgumentTypeError(f"invalid DJ seed {value!r}") from exc


# ---------------------------------------------------------------------------
# Output formatting
# ---------------------------------------------------------------------------


def format_stack(stack: Stack) -> str:
    lines = [
        f"{stack.name}  [{stack.id}]",
        stack.summary,
        "",
    ]
    for number, track in enumerate(stack.tracks, start=1):
        line = f"{number:3d}. {track.artist} - {track.title}"
        if track.playback_url:
            line += f"  <{track.playback_url}>"
        lines.append(line)
        lines.append(f"     from {track.container_title or track.container_id}")
    return "\n".join(lines)


def format_history(stacks: list[Stack]) -> str:
    if not stacks:
        return "No stacks yet."
    return "\n".join(
        f"{s.id}  {s.created_at:%Y-%m-%d %H:%M}  {s.name} ({len(s.tracks)} tracks)"
        for s in stacks
    )


def _dump(payload: Any) -> str:
    return json.dumps(payload, indent=2, default=str)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def _run(args: argparse.Namespace) -> int:
    # Deferred import: stackdigger.main loads settings and wires providers.
    from stackdigger.main import _build_all, settings
    from stackdigger.utils.logging import configure_logging

    configure_logging(
        log_level="WARNING" if args.quiet else settings.log_level,
        stream=sys.stderr,
    )

    app_settings = settings
    if args.db:
        app_settings = settings.model_copy(update={"exposure_db_path": args.db})

    components = _build_all(app_settings)
    service = components["stack_service"]
    await components["exposure_store"].initialize()

    try:
        return await _dispatch(args, service)
    except NoNewContentError as exc:
        print(f"Nothing new: {exc.message}", file=sys.stderr)
        return _EXIT_NOTHING_NEW
    except StackDiggerError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return _EXIT_ERROR
    finally:
        await components["http_client"].aclose()


async def _dispatch(args: argparse.Namespace, service: Any) -> int:  # noqa: PLR0911
    if args.command == "build":
        seeds = args.seeds or []
        if args.dry_run:
            result = await service.build_stateless(
                seeds,
                seen_containers=await service.store.get_seen_containers(),
                referenced_tracks=await service.store.get_referenced_tracks(),
                max_per_seed=args.max_per_seed,
            )
        else:
            result = await service.create_stack(seeds, max_per_seed=args.max_per_seed)
        print(_dump(result.model_dump(mode="json")) if args.json_output else format_stack(result.stack))
        return _EXIT_OK

    if args.command == "history":
        stacks = await service.list_stacks()
        if args.json_output:
            print(_dump([s.model_dump(mode="json") for s in stacks]))
        else:
            print(format_history(stacks))
        return _EXIT_OK

    if args.command == "show":
        stack = await service.get_stack(args.stack_id)
        if stack is None:
            print(f"Stack not found: {args.stack_id}", file=sys.stderr)
            return _EXIT_ERROR
        print(_dump(stack.model_dump(mode="json")) if args.json_output else format_stack(stack))
        return _EXIT_OK

    if args.command == "delete":
        if not await service.delete_stack(args.stack_id):
            print(f"Stack not found: {args.stack_id}", file=sys.stderr)
            return _EXIT_ERROR
        print(f"Deleted {args.stack_id}")
        return _EXIT_OK

    if args.command == "seen":
        marked = await service.mark_seen(args.container_ids)
        print(f"Marked {marked} container(s) as seen")
        return _EXIT_OK

    if args.command == "stats":
        stats = await service.get_stats()
        if args.json_output:
            print(_dump(stats.model_dump()))
        else:
            print(
                f"Seen containers:   {stats.seen_containers}\n"
                f"Referenced tracks: {stats.referenced_tracks}\n"
                f"Stacks in history: {stats.stacks_created}"
            )
        return _EXIT_OK

    if args.command == "clear":
        if not args.yes:
            print("Refusing to clear exposure state without --yes", file=sys.stderr)
            return _EXIT_ERROR
        await service.clear()
        print("Exposure state cleared")
        return _EXIT_OK

    raise ValueError(f"Unknown command: {args.command}")


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m stackdigger.cli.stacks",
        description="Build non-repeating stacks of tracks and manage exposure history.",
    )
    parser.add_argument("--db", default=None, help="Exposure database path (overrides settings).")
    parser.add_argument("--quiet", "-q", action="store_true", help="Only log warnings and errors.")
    sub = parser.add_subparsers(dest="command", required=True)

    build = sub.add_parser("build", help="Build a stack and record it.")
    build.add_argument(
        "--track", dest="seeds", action="append", type=parse_track_arg,
        metavar='"ARTIST - TITLE"', help="Track seed; artist alone is allowed.",
    )
    build.add_argument(
        "--genre", dest="seeds", action="append", type=parse_genre_arg,
        metavar="ID[:NAME]", help="Genre seed, e.g. electronica-downtempo:Downtempo.",
    )
    build.add_argument(
        "--dj", dest="seeds", action="append", type=parse_dj_arg,
        metavar="NAME", help="DJ-set seed (1001Tracklists).",
    )
    build.add_argument("--max-per-seed", type=int, default=None, help="Containers per seed.")
    build.add_argument("--dry-run", action="store_true", help="Build without recording anything.")
    build.add_argument("--json", action="store_true", dest="json_output", help="Print JSON.")

    history = sub.add_parser("history", help="List stacks, newest first.")
    history.add_argument("--json", action="store_true", dest="json_output", help="Print JSON.")

    show = sub.add_parser("show", help="Print one stack.")
    show.add_argument("stack_id")
    show.add_argument("--json", action="store_true", dest="json_output", help="Print JSON.")

    delete = sub.add_parser("delete", help="Delete a stack and release its tracks.")
    delete.add_argument("stack_id")

    seen = sub.add_parser("seen", help="Mark episodes or sets as already seen.")
    seen.add_argument("container_ids", nargs="+")

    stats = sub.add_parser("stats", help="Show exposure state sizes.")
    stats.add_argument("--json", action="store_true", dest="json_output", help="Print JSON.")

    clear = sub.add_parser("clear", help="Forget all exposure state.")
    clear.add_argument("--yes", action="store_true", help="Confirm the reset.")

    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    sys.exit(asyncio.run(_run(args)))


if __name__ == "__main__":
    main()
