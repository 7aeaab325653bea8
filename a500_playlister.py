#!/usr/bin/env python3
"""Generate .m3u playlists for multi-disk Amiga titles.

This script scans the given directory (and its sub directories) for ADF
images, groups "(Disk N of M)" images of the same title and writes one
playlist per title into the root directory, ready for the THEA500 Mini.

Prefix a file or directory name with ``.`` to skip it. Previous playlists in
the root directory are deleted before generating new ones unless
``--keep-existing-m3u`` is given; mark a playlist read-only to protect it.
"""
import os
import sys
import stat
import glob
import argparse
from dataclasses import dataclass, field
from typing import Optional, Iterable

import pandas as pd
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.progress import track

from disk_sets import (
    RootDirectoryError,
    check_root_directory,
    find_disk_set,
    is_hidden,
    normalize_root,
    split_extension,
    to_relative_slash,
)

APP_NAME = 'THEA500 MINI PLAYLISTER'
APP_VERSION = '0.1'
DEFAULT_EXTENSION = 'adf'
M3U_EXTENSION = 'm3u'
LINE_BREAK = '\n'

STATUS_CREATED = 'created'
STATUS_SKIPPED = 'skipped'
STATUS_FAILED = 'failed'

REPORT_COLUMNS = ['Title', 'Playlist', 'Disks', 'Status']

APP_INFO = """\
This app will automatically generate
M3U playlist files from all ADF files
found in current and sub directories.

Add . as a prefix to the directory name
to skip it.

Just run it and wait for finish.

This app will delete all your previous
M3U files so use with CAUTION. Set a specific
M3U file as read-only so it will not be deleted.
"""


def full_app_name() -> str:
    return f"{APP_NAME} v{APP_VERSION}"


def script_dir() -> str:
    """Return the directory of the running script or console entry point."""
    return os.path.dirname(os.path.abspath(sys.argv[0]))


class ProcessedSet:
    """Images already claimed by a playlist during one run."""

    def __init__(self, paths: Iterable[str] = ()):
        self._paths: set[str] = set(paths)

    def is_claimed(self, path: str) -> bool:
        return path in self._paths

    def claim(self, paths: Iterable[str]) -> None:
        self._paths.update(paths)

    def __contains__(self, path: str) -> bool:
        return self.is_claimed(path)

    def __len__(self) -> int:
        return len(self._paths)


@dataclass
class PlaylistResult:
    title: str
    playlist: str
    disks: int
    status: str


@dataclass
class ScanSession:
    """State of one playlist generation run.

    ``root`` must already be normalised with ``normalize_root``."""

    root: str
    keep_existing: bool = False
    extension: str = DEFAULT_EXTENSION
    console: Console = field(default_factory=Console)
    processed: ProcessedSet = field(default_factory=ProcessedSet)
    results: list[PlaylistResult] = field(default_factory=list)

    @property
    def image_pattern(self) -> str:
        return '*.' + self.extension.lstrip('.')

    @property
    def m3u_pattern(self) -> str:
        return '*.' + M3U_EXTENSION


def iter_progress(session: ScanSession, seq, description: str):
    """Iterate with a progress bar if the console is a terminal."""
    if session.console.is_terminal:
        return track(seq, description=description, console=session.console)
    return seq


# --- Playlist files ---------------------------------------------------------

def can_write(path: str) -> bool:
    """Return ``False`` if ``path`` exists and is read-only.

    The write bit of the file mode is checked first so a playlist marked
    read-only stays protected even for privileged users."""

    try:
        mode = os.stat(path).st_mode
    except FileNotFoundError:
        return True
    if not mode & stat.S_IWUSR:
        return False
    return os.access(path, os.W_OK)


def unique_pathname(pathname: str) -> str:
    """Return ``pathname`` or the first free ``name(N).ext`` variant, N >= 2."""

    if not os.path.exists(pathname):
        return pathname
    stem, extension = split_extension(pathname)
    i = 2
    while True:
        candidate = f"{stem}({i}){extension}"
        if not os.path.exists(candidate):
            return candidate
        i += 1


def write_playlist(pathname: str, entries: Iterable[str]) -> None:
    """Write ``entries`` to ``pathname``, one per line, always using ``/``."""

    with open(pathname, 'w', encoding='utf-8', newline='') as f:
        for entry in entries:
            f.write(entry.replace(os.sep, '/') + LINE_BREAK)


def delete_playlists(session: ScanSession) -> int:
    """Delete previous playlists directly inside the root directory.

    Hidden and read-only playlists are kept. Returns the number of deleted
    files."""

    console = session.console
    console.print(f"Deleting previous {session.m3u_pattern} files...")
    console.print(f"Searching for {session.m3u_pattern} files in {escape(session.root)} ...")

    deleted = 0
    for path in sorted(glob.glob(os.path.join(glob.escape(session.root), session.m3u_pattern))):
        if is_hidden(to_relative_slash(session.root, path)):
            continue
        try:
            writable = can_write(path)
        except OSError as exc:
            console.print(f"[bold yellow]Warning:[/] Cannot check {escape(path)}: {escape(str(exc))}")
            continue
        if not writable:
            console.print(f"Skipping read-only {escape(path)}")
            continue

        console.print(f"Deleting {escape(path)}")
        try:
            os.remove(path)
        except OSError as exc:
            console.print(f"[bold red]Error deleting {escape(path)}: {escape(str(exc))}[/]")
            continue
        deleted += 1
    return deleted


# --- Grouping ---------------------------------------------------------------

def scan_images(session: ScanSession) -> list[str]:
    """Return every image under the root directory sorted by full pathname."""

    session.console.print(f"Searching for {session.image_pattern} files in {escape(session.root)} ...")
    pattern = os.path.join(glob.escape(session.root), '**', session.image_pattern)
    return sorted(glob.glob(pattern, recursive=True))


def print_playlist(session: ScanSession, pathname: str, entries: list[str]) -> None:
    session.console.print(f"Creating {escape(pathname)}")
    for entry in entries:
        session.console.print(f"\t {escape(entry)}")


def create_playlists(session: ScanSession) -> list[PlaylistResult]:
    """Group the images of ``session.root`` and write one playlist per title."""

    console = session.console
    console.print(
        f"Generating {session.m3u_pattern} files from {session.image_pattern} files..."
    )
    images = scan_images(session)

    for image in iter_progress(session, images, "Generating playlists"):
        if is_hidden(to_relative_slash(session.root, image)):
            continue
        if session.processed.is_claimed(image):
            continue

        group = find_disk_set(image)
        title = group.title
        if not title:
            # no "(Disk N of M)" marker, the image name is the title
            title, _ = split_extension(os.path.basename(group.members[0]))

        title = os.path.basename(title)
        pathname = session.root + title + '.' + M3U_EXTENSION

        if session.keep_existing:
            if os.path.exists(pathname):
                console.print(f"Skipping existing {escape(pathname)}")
                session.processed.claim(group.members)
                session.results.append(
                    PlaylistResult(title, pathname, len(group.members), STATUS_SKIPPED)
                )
                continue
        else:
            pathname = unique_pathname(pathname)

        session.processed.claim(group.members)
        entries = [to_relative_slash(session.root, member) for member in group.members]

        print_playlist(session, pathname, entries)
        try:
            write_playlist(pathname, entries)
        except OSError as exc:
            console.print(f"[bold red]Error writing {escape(pathname)}: {escape(str(exc))}[/]")
            status = STATUS_FAILED
        else:
            status = STATUS_CREATED
        session.results.append(PlaylistResult(title, pathname, len(entries), status))

    return session.results


def run(session: ScanSession) -> list[PlaylistResult]:
    """Validate the root directory, purge old playlists if needed, regenerate."""

    check_root_directory(session.root)
    if not session.keep_existing:
        delete_playlists(session)
    return create_playlists(session)


# --- Output -----------------------------------------------------------------

def print_app_name(console: Console) -> None:
    console.print(f"[bold cyan]{full_app_name()}[/]")
    console.print()
    console.print("THEA500 MINI playlist generator.")
    console.print()


def print_summary(session: ScanSession) -> None:
    """Pretty-print the playlist results using rich."""
    if not session.results:
        session.console.print("[bold yellow]No playlists generated.[/]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    for col in REPORT_COLUMNS:
        table.add_column(col)
    for result in session.results:
        table.add_row(
            escape(result.title),
            escape(os.path.basename(result.playlist)),
            str(result.disks),
            result.status,
        )
    session.console.print(table)

    created = sum(1 for r in session.results if r.status == STATUS_CREATED)
    failed = sum(1 for r in session.results if r.status == STATUS_FAILED)
    session.console.print(f"[bold green]Created {created} playlist(s).[/]")
    if failed:
        session.console.print(f"[bold yellow]{failed} playlist(s) failed. See messages above for details.[/]")


def results_to_frame(results: Iterable[PlaylistResult]) -> pd.DataFrame:
    rows = [
        {'Title': r.title, 'Playlist': r.playlist, 'Disks': r.disks, 'Status': r.status}
        for r in results
    ]
    return pd.DataFrame(rows, columns=REPORT_COLUMNS)


def write_report(results: Iterable[PlaylistResult], path: str) -> None:
    results_to_frame(results).to_csv(path, index=False)


# --- Command line -----------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=os.path.basename(sys.argv[0]) or 'a500-playlister',
        description='Generate M3U playlists for multi-disk ADF images.',
        add_help=False,
    )
    parser.add_argument('-h', '--help', action='store_true',
                        help='show this help')
    parser.add_argument('-d', '--directory', default=None,
                        help='use DIRECTORY instead of current app directory')
    parser.add_argument('-k', '--keep-existing-m3u', action='store_true',
                        help='keep existing M3U files and skip titles that already have one')
    parser.add_argument('-e', '--extension', default=DEFAULT_EXTENSION,
                        help=f'disk image extension (default: {DEFAULT_EXTENSION})')
    parser.add_argument('-r', '--report', default=None,
                        help='write a CSV report of the generated playlists to REPORT')
    return parser


def main(argv: Optional[list[str]] = None, console: Optional[Console] = None) -> int:
    console = console or Console()
    parser = build_parser()
    args = parser.parse_args(argv)

    print_app_name(console)
    if args.help:
        console.print(APP_INFO, markup=False)
        console.print(parser.format_help(), markup=False)
        return 1

    try:
        root = normalize_root(args.directory or script_dir())
        session = ScanSession(
            root=root,
            keep_existing=args.keep_existing_m3u,
            extension=args.extension,
            console=console,
        )
        run(session)
    except RootDirectoryError as exc:
        console.print(f"[bold red]Error:[/] {escape(str(exc))}")
        return 1

    print_summary(session)
    if args.report:
        try:
            write_report(session.results, args.report)
        except OSError as exc:
            console.print(f"[bold red]Error writing report {escape(args.report)}: {escape(str(exc))}[/]")
        else:
            console.print(f"CSV report saved to {escape(args.report)}")
    return 0


def cli() -> None:
    # relative --directory values are resolved from the app directory
    os.chdir(script_dir())
    sys.exit(main())


if __name__ == '__main__':
    cli()
