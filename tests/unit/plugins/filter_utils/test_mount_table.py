# vim: ts=4:sw=4:sts=4:et:ft=python
# -*- mode: python; tab-width: 4; indent-tabs-mode: nil; -*-
#
# GNU General Public License v3.0+
# SPDX-License-Identifier: GPL-3.0-or-later
# (see COPYING or https://www.gnu.org/licenses/gpl-3.0.txt)
#
# Copyright (c) 2025 oØ.o (@o0-o)
#
# This file is part of the o0_o.jail Ansible Collection.

from __future__ import annotations

import json
import threading
from unittest.mock import MagicMock

import pytest

from ansible_collections.o0_o.jail.plugins.filter_utils import (
    MntinfoError,
    MountRecord,
    MountTable,
    MountTableParser,
    jc_base,
)


@pytest.fixture
def parser() -> MountTableParser:
    """Create a MountTableParser instance for testing."""
    return MountTableParser()


@pytest.fixture
def mock_jc(monkeypatch) -> MagicMock:
    """Mock the jc method."""
    mock = MagicMock()
    monkeypatch.setattr(MountTableParser, "jc", mock)
    return mock


def records(table: MountTable):
    with table.traverse() as it:
        return list(it)


def test_record_from_report_keys() -> None:
    """Test building a record from report keys."""
    record = MountRecord.from_dict(
        {
            "fstype": "ufs",
            "special": "/dev/ada0p2",
            "node": "/",
            "fsid": "0100000002000000",
        }
    )
    assert record == MountRecord("ufs", "/dev/ada0p2", "/", (1, 2))


def test_record_from_jc_keys() -> None:
    """Test building a record from jc mount keys."""
    record = MountRecord.from_dict(
        {
            "filesystem": "/dev/sda1",
            "mount_point": "/",
            "type": "ext4",
            "options": ["rw"],
        }
    )
    assert record == MountRecord("ext4", "/dev/sda1", "/", (0, 0))


def test_record_fsid_pair() -> None:
    """Test that an fsid given as a pair is kept."""
    record = MountRecord.from_dict({"node": "/", "fsid": [3, "4"]})
    assert record.fsid == (3, 4)


@pytest.mark.parametrize(
    "entry",
    [
        {"fstype": "ufs"},
        {"node": "/", "fsid": "nothex"},
        {"node": "/", "fsid": [1]},
        "not a dict",
    ],
)
def test_record_rejects_bad_entries(entry) -> None:
    """Test that unusable entries raise MntinfoError."""
    with pytest.raises(MntinfoError):
        MountRecord.from_dict(entry)


def test_table_mutations() -> None:
    """Test append, remove and replace."""
    table = MountTable([MountRecord("ufs", "/dev/a", "/")])
    table.append(MountRecord("tmpfs", "tmpfs", "/tmp"))
    table.append(MountRecord("nullfs", "/data", "/tmp"))
    assert len(table) == 3

    # The most recent mount on a path goes first
    assert table.remove("/tmp") is True
    assert [r.fstype for r in records(table)] == ["ufs", "tmpfs"]
    assert table.remove("/missing") is False

    table.replace([])
    assert len(table) == 0


def test_traversal_blocks_writers() -> None:
    """Test that writers wait for an ongoing traversal."""
    table = MountTable([MountRecord("ufs", "/dev/a", "/")])
    writer_done = threading.Event()

    def writer() -> None:
        table.append(MountRecord("tmpfs", "tmpfs", "/tmp"))
        writer_done.set()

    with table.traverse() as it:
        thread = threading.Thread(target=writer)
        thread.start()
        assert not writer_done.wait(0.1)
        assert [r.mount_point for r in it] == ["/"]

    thread.join(timeout=5)
    assert writer_done.is_set()
    assert len(table) == 2


def test_parse_libxo(parser: MountTableParser) -> None:
    """Test parsing FreeBSD mount --libxo json -v output."""
    output = json.dumps(
        {
            "mount": {
                "mounted": [
                    {
                        "fstype": "ufs",
                        "special": "/dev/ada0p2",
                        "node": "/",
                        "opts": ["local", "soft-updates"],
                        "fsid": "0100000002000000",
                    },
                    {"fstype": "devfs", "special": "devfs", "node": "/dev"},
                ]
            }
        }
    )

    table = parser.parse_libxo({"rc": 0, "stdout": output})

    assert records(table) == [
        MountRecord("ufs", "/dev/ada0p2", "/", (1, 2)),
        MountRecord("devfs", "devfs", "/dev", (0, 0)),
    ]


@pytest.mark.parametrize("output", ["not json", '{"mounted": []}'])
def test_parse_libxo_errors(parser: MountTableParser, output: str) -> None:
    """Test that non-libxo documents raise MntinfoError."""
    with pytest.raises(MntinfoError):
        parser.parse_libxo(output)


def test_parse_mntinfo(parser: MountTableParser) -> None:
    """Test parsing a sysctl mount report."""
    table = parser.parse_mntinfo(
        '{"mounted":[{"fstype":"nullfs","special":"/data",'
        '"node":"/data","fsid":"0a00000000000080"}]}'
    )
    assert records(table) == [
        MountRecord("nullfs", "/data", "/data", (10, 0x80000000))
    ]


def test_parse_mountinfo(parser: MountTableParser, mock_jc: MagicMock) -> None:
    """Test mapping jc proc_pid_mountinfo output to records."""
    mock_jc.return_value = [
        {
            "mount_id": 24,
            "parent_id": 1,
            "maj": 8,
            "min": 1,
            "root": "/",
            "mount_point": "/",
            "mount_options": ["rw", "relatime"],
            "fs_type": "ext4",
            "mount_source": "/dev/sda1",
            "super_options": ["rw"],
        },
        {
            "mount_id": 31,
            "parent_id": 24,
            "maj": 0,
            "min": 300,
            "root": "/",
            "mount_point": "/mnt/my\\040disk",
            "mount_options": ["rw"],
            "fs_type": "fuse.sshfs",
            "mount_source": "user@host:/srv\\040data",
            "super_options": ["rw"],
        },
    ]

    table = parser.parse_mountinfo("ignored")

    mock_jc.assert_called_once_with("ignored", "proc_pid_mountinfo")
    assert records(table) == [
        MountRecord("ext4", "/dev/sda1", "/", (0x801, 24)),
        MountRecord(
            "fuse.sshfs",
            "user@host:/srv data",
            "/mnt/my disk",
            ((300 & 0xFF) | ((300 & ~0xFF) << 12), 31),
        ),
    ]


def test_parse_mount_bsd_type_from_options(
    parser: MountTableParser, mock_jc: MagicMock
) -> None:
    """Test that the first option is the type on BSD style output."""
    mock_jc.return_value = [
        {
            "filesystem": "/dev/ada0p2",
            "mount_point": "/",
            "options": ["ufs", "local", "soft-updates"],
        },
        {"filesystem": "tmpfs", "mount_point": "/tmp", "type": "tmpfs"},
        {"filesystem": "broken"},
    ]

    table = parser.parse_mount("ignored")

    assert records(table) == [
        MountRecord("ufs", "/dev/ada0p2", "/"),
        MountRecord("tmpfs", "tmpfs", "/tmp"),
    ]


def test_jc_missing(monkeypatch, parser: MountTableParser) -> None:
    """Test the install hint when jc is not available."""
    monkeypatch.setattr(jc_base, "HAS_JC", False)
    with pytest.raises(MntinfoError, match="pip install jc"):
        parser.parse_mount("/dev/sda1 on / type ext4 (rw)")


def test_jc_unknown_parser(parser: MountTableParser) -> None:
    """Test that unknown jc parsers are reported."""
    with pytest.raises(MntinfoError, match="not found"):
        parser.jc("", "no_such_parser")


def test_extract_output_variants(parser: MountTableParser) -> None:
    """Test the accepted input formats."""
    assert parser._extract_output({"stdout": "a\nb"}) == "a\nb"
    assert parser._extract_output({"stdout_lines": ["a", "b"]}) == "a\nb"
    assert parser._extract_output(["a", "b"]) == "a\nb"
    assert parser._extract_output(None) == ""
