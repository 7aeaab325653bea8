import os

import pytest

from disk_sets import (
    DiskGroup,
    DiskMarker,
    RootDirectoryError,
    check_root_directory,
    find_disk_set,
    is_hidden,
    normalize_root,
    parse_disk_marker,
    select_disk_set,
    to_relative_slash,
)


def touch(path):
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, 'wb'):
        pass
    return str(path)


def test_parse_disk_marker_single():
    marker = parse_disk_marker('Superfrog (1993)(Team 17)[cr CSL][a](Disk 1 of 4).adf')
    assert marker == DiskMarker(1, 4, 'Superfrog (1993)(Team 17)[cr CSL][a]')


def test_parse_disk_marker_trims_title():
    assert parse_disk_marker('Title (Disk 2 of 3).adf').title == 'Title'


def test_parse_disk_marker_missing_or_repeated():
    assert parse_disk_marker('Solo.adf') is None
    assert parse_disk_marker('Odd (Disk 1 of 2)(Disk 2 of 2).adf') is None
    # only single digits form a marker
    assert parse_disk_marker('Big (Disk 10 of 12).adf') is None
    assert parse_disk_marker('Title (disk 1 of 2).adf') is None


def test_select_disk_set_without_marker_is_singleton():
    group = select_disk_set('/roms/Solo.adf', ['/roms/Solo.adf', '/roms/Other.adf'])
    assert group == DiskGroup('', ('/roms/Solo.adf',))


def test_select_disk_set_sorts_and_dedupes():
    seed = '/roms/Title (Disk 2 of 3).adf'
    candidates = [
        '/roms/Title (Disk 3 of 3).adf',
        '/roms/Title (Disk 1 of 3).adf',
        seed,
        '/roms/Title (Disk 1 of 3).adf',
    ]
    group = select_disk_set(seed, candidates)
    assert group.title == 'Title'
    assert group.members == (
        '/roms/Title (Disk 1 of 3).adf',
        '/roms/Title (Disk 2 of 3).adf',
        '/roms/Title (Disk 3 of 3).adf',
    )


def test_select_disk_set_ignores_unmarked_prefix_matches():
    seed = '/roms/Title (Disk 1 of 2).adf'
    candidates = [
        seed,
        '/roms/Title (Disk 2 of 2).adf',
        '/roms/Title Editor.adf',
        '/roms/Other (Disk 1 of 2).adf',
    ]
    group = select_disk_set(seed, candidates)
    assert group.members == (seed, '/roms/Title (Disk 2 of 2).adf')


def test_select_disk_set_always_keeps_seed():
    seed = '/roms/Title (Disk 1 of 2).adf'
    assert select_disk_set(seed, []).members == (seed,)


def test_find_disk_set_reads_directory(tmp_path):
    disks = [touch(tmp_path / f'Game (Disk {n} of 3).adf') for n in (3, 1, 2)]
    touch(tmp_path / 'Game (Disk 1 of 3).txt')
    touch(tmp_path / 'sub' / 'Game (Disk 1 of 3).adf')

    group = find_disk_set(disks[0])

    assert group.title == 'Game'
    assert group.members == tuple(sorted(disks))


def test_find_disk_set_handles_brackets_in_directory(tmp_path):
    folder = tmp_path / 'Amiga [AGA]'
    first = touch(folder / 'Game (Disk 1 of 2).adf')
    second = touch(folder / 'Game (Disk 2 of 2).adf')

    assert find_disk_set(second).members == (first, second)


def test_normalize_root_appends_separator(tmp_path):
    root = normalize_root(str(tmp_path))
    assert root == str(tmp_path) + os.sep
    assert normalize_root(root) == root


def test_normalize_root_makes_relative_paths_absolute(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert normalize_root('roms') == os.path.join(str(tmp_path), 'roms') + os.sep


def test_check_root_directory_missing(tmp_path):
    with pytest.raises(RootDirectoryError):
        check_root_directory(str(tmp_path / 'missing'))


def test_to_relative_slash():
    root = normalize_root('/roms')
    path = os.path.join(root, 'Amiga', 'Game.adf')
    assert to_relative_slash(root, path) == 'Amiga/Game.adf'


def test_to_relative_slash_outside_root_is_unchanged():
    assert to_relative_slash('/roms/', '/other/Game.adf') == '/other/Game.adf'


def test_is_hidden():
    assert is_hidden('.backup/Game.adf')
    assert is_hidden('Amiga/.old/Game.adf')
    assert is_hidden('.Game.adf')
    assert not is_hidden('Amiga/Game.adf')


def test_parse_disk_marker_requires_ascii_digits():
    assert parse_disk_marker('Game (Disk ١ of ٢).adf') is None


def test_parse_disk_marker_without_title():
    assert parse_disk_marker('(Disk 1 of 2).adf') == DiskMarker(1, 2, '')


def test_select_disk_set_without_title_keeps_all_disks():
    seed = '/roms/(Disk 2 of 2).adf'
    candidates = ['/roms/(Disk 1 of 2).adf', seed, '/roms/Solo.adf']
    group = select_disk_set(seed, candidates)
    assert group == DiskGroup('', ('/roms/(Disk 1 of 2).adf', seed))


def test_find_disk_set_without_title(tmp_path):
    first = touch(tmp_path / '(Disk 1 of 2).adf')
    second = touch(tmp_path / '(Disk 2 of 2).adf')

    group = find_disk_set(first)

    assert group.title == ''
    assert group.members == (first, second)
