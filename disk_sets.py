"""Disk-set detection for multi-disk Amiga titles.

Pure helpers used by ``a500_playlister.py``: path normalisation and the
``(Disk N of M)`` marker matching that clusters images into titles.
"""
import os
import re
import glob
from dataclasses import dataclass
from typing import Optional, Iterable


class PlaylisterError(Exception):
    """Base error for the playlister."""


class RootDirectoryError(PlaylisterError):
    """Raised when the root directory cannot be used for a scan."""


# --- Path helpers -----------------------------------------------------------

def normalize_root(path: str) -> str:
    """Return ``path`` as an absolute directory path ending with a separator."""

    try:
        root = os.path.abspath(path.replace('/', os.sep))
    except (OSError, ValueError) as exc:
        raise RootDirectoryError(f"Cannot resolve {path}: {exc}") from exc
    if not root.endswith(os.sep):
        root += os.sep
    return root


def check_root_directory(root: str) -> None:
    if not os.path.isdir(root):
        raise RootDirectoryError(f"{root} does not exist")


def to_relative_slash(root: str, path: str) -> str:
    """Return ``path`` relative to ``root`` using ``/`` separators.

    Paths outside ``root`` (or on another drive) are returned unchanged apart
    from the separator rewrite."""

    try:
        rel = os.path.relpath(path, root)
    except ValueError:
        rel = path
    if rel == os.pardir or rel.startswith(os.pardir + os.sep):
        rel = path
    return rel.replace(os.sep, '/')


def is_hidden(rel_path: str) -> bool:
    """Return ``True`` if any component of ``rel_path`` starts with a dot."""

    parts = rel_path.replace('\\', '/').split('/')
    return any(part.startswith('.') and part not in {'.', '..'} for part in parts)


def split_extension(name: str) -> tuple[str, str]:
    return os.path.splitext(name)


# --- Multi-disk helpers -----------------------------------------------------
DISK_MARKER_RE = re.compile(r'\(Disk (\d) of (\d)\)', re.ASCII)


@dataclass(frozen=True)
class DiskMarker:
    ordinal: int
    total: int
    title: str


@dataclass(frozen=True)
class DiskGroup:
    """All images of one title, sorted by full pathname.

    ``title`` is empty when the seed image carried no usable disk marker."""

    title: str
    members: tuple[str, ...]


def strip_disk_marker(filename: str) -> tuple[str, str]:
    """Return ``filename`` without its disk marker, split into stem and extension.

    The extension comes from ``filename`` itself, so a name made only of a
    marker such as ``(Disk 1 of 2).adf`` gives ``('', '.adf')``."""

    _, extension = split_extension(filename)
    name = DISK_MARKER_RE.sub('', filename)
    if extension and name.endswith(extension):
        return name[:-len(extension)], extension
    return split_extension(name)


def parse_disk_marker(filename: str) -> Optional[DiskMarker]:
    """Return the disk marker of ``filename`` or ``None``.

    Only names with exactly one ``(Disk N of M)`` marker qualify, e.g.
    ``Superfrog (1993)(Team 17)[cr CSL][a](Disk 1 of 4).adf`` gives
    ``DiskMarker(1, 4, 'Superfrog (1993)(Team 17)[cr CSL][a]')``."""

    matches = DISK_MARKER_RE.findall(filename)
    if len(matches) != 1:
        return None
    ordinal, total = matches[0]
    stem, _ = strip_disk_marker(filename)
    return DiskMarker(int(ordinal), int(total), stem.strip())


def select_disk_set(seed: str, candidates: Iterable[str]) -> DiskGroup:
    """Return the disk group of ``seed`` chosen from ``candidates``.

    ``candidates`` are full pathnames from the seed's directory; no
    filesystem access happens here."""

    marker = parse_disk_marker(os.path.basename(seed))
    if marker is None:
        return DiskGroup('', (seed,))

    _, extension = strip_disk_marker(os.path.basename(seed))
    similar = {seed}
    for candidate in candidates:
        name = os.path.basename(candidate)
        if not name.startswith(marker.title) or not name.endswith(extension):
            continue
        # a shared prefix alone is not enough, the candidate must be a disk too
        if parse_disk_marker(name) is None:
            continue
        similar.add(candidate)

    return DiskGroup(marker.title, tuple(sorted(similar)))


def find_disk_set(image_path: str) -> DiskGroup:
    """Return every image in the directory of ``image_path`` of the same title."""

    basename = os.path.basename(image_path)
    if parse_disk_marker(basename) is None:
        return DiskGroup('', (image_path,))
    _, extension = strip_disk_marker(basename)
    dirname = os.path.dirname(image_path)
    candidates = glob.glob(os.path.join(glob.escape(dirname), '*' + extension))
    return select_disk_set(image_path, candidates)
