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

"""Mount records, the guarded mount table and its loaders."""

from __future__ import annotations

import json
import re
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Tuple, Union

from ansible.utils.display import Display
from ansible_collections.o0_o.jail.plugins.filter_utils.errors import (
    MntinfoError,
)
from ansible_collections.o0_o.jail.plugins.filter_utils.fsid import (
    decode_fsid,
)
from ansible_collections.o0_o.jail.plugins.filter_utils.jc_base import JCBase

display = Display()

# Octal escapes used by the kernel for blanks in /proc/*/mountinfo
_MANGLED_RE = re.compile(r"\\([0-7]{3})")


@dataclass(frozen=True)
class MountRecord:
    """One mounted filesystem as reported by the mount table."""

    fstype: str
    special: str
    mount_point: str
    fsid: Tuple[int, int] = (0, 0)

    @classmethod
    def from_dict(cls, entry: Dict[str, Any]) -> "MountRecord":
        """Build a record from a mount dict.

        Accepts the keys of this collection's own report (``fstype``,
        ``special``, ``node``, ``fsid``) as well as the jc ``mount``
        parser keys (``type``, ``filesystem``, ``mount_point``).

        :param entry: Mount dictionary
        :returns: MountRecord
        :raises MntinfoError: If no mount point is present
        """
        if not isinstance(entry, dict):
            raise MntinfoError(f"Mount entry must be a dict, got {entry!r}")

        mount_point = entry.get("node", entry.get("mount_point"))
        if not mount_point:
            raise MntinfoError(f"Mount entry has no mount point: {entry!r}")

        fsid = entry.get("fsid")
        if fsid is None:
            fsid = (0, 0)
        elif isinstance(fsid, str):
            fsid = decode_fsid(fsid)
        else:
            try:
                val0, val1 = fsid
                fsid = (int(val0), int(val1))
            except (TypeError, ValueError) as e:
                raise MntinfoError(f"Invalid fsid: {fsid!r}", orig_exc=e)

        return cls(
            fstype=str(entry.get("fstype", entry.get("type", ""))),
            special=str(
                entry.get(
                    "special", entry.get("filesystem", entry.get("source", ""))
                )
            ),
            mount_point=str(mount_point),
            fsid=fsid,
        )


class MountTable:
    """Mount table guarded for consistent traversal.

    Readers call :meth:`traverse` and iterate while the guard is held;
    writers go through :meth:`replace`, :meth:`append` and
    :meth:`remove`, which take the same guard, so a traversal never
    observes a record being inserted, removed or changed.
    """

    def __init__(self, records: Iterable[MountRecord] = ()) -> None:
        self._lock = threading.Lock()
        self._records: Tuple[MountRecord, ...] = tuple(records)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    @contextmanager
    def traverse(self) -> Iterator[Iterator[MountRecord]]:
        """Hold the table guard and yield an iterator over the records."""
        with self._lock:
            yield iter(self._records)

    def replace(self, records: Iterable[MountRecord]) -> None:
        records = tuple(records)
        with self._lock:
            self._records = records

    def append(self, record: MountRecord) -> None:
        with self._lock:
            self._records = self._records + (record,)

    def remove(self, mount_point: str) -> bool:
        """Remove the most recent mount at ``mount_point``.

        :param mount_point: Absolute mount point path
        :returns: True if a record was removed
        """
        with self._lock:
            for idx in range(len(self._records) - 1, -1, -1):
                if self._records[idx].mount_point == mount_point:
                    self._records = (
                        self._records[:idx] + self._records[idx + 1:]
                    )
                    return True
        return False


class MountTableParser(JCBase):
    """Build mount tables from command output collected on a host."""

    def parse_libxo(self, data: Union[str, Dict[str, Any]]) -> MountTable:
        """Parse FreeBSD ``mount --libxo json -v`` output.

        :param data: JSON text or command result
        :returns: MountTable in output order
        :raises MntinfoError: If the document is not libxo mount output
        """
        doc = self._load_json(data)
        try:
            mounted = doc["mount"]["mounted"]
        except (KeyError, TypeError) as e:
            raise MntinfoError(
                "libxo output has no mount.mounted list", orig_exc=e
            )
        return self._from_entries(mounted)

    def parse_mntinfo(self, data: Union[str, Dict[str, Any]]) -> MountTable:
        """Parse a ``{"mounted": [...]}`` report back into a table."""
        doc = self._load_json(data)
        if not isinstance(doc, dict) or not isinstance(
            doc.get("mounted"), list
        ):
            raise MntinfoError("mntinfo document has no mounted list")
        return self._from_entries(doc["mounted"])

    def parse_mountinfo(
        self, data: Union[str, List[str], Dict[str, Any]]
    ) -> MountTable:
        """Parse Linux ``/proc/self/mountinfo`` with jc.

        The device number and the mount id become the fsid pair.

        :param data: File content or command result
        :returns: MountTable in file order
        """
        parsed = self.jc(data, "proc_pid_mountinfo")
        records = []
        for entry in parsed:
            dev = _encode_dev(
                int(entry.get("maj") or 0), int(entry.get("min") or 0)
            )
            records.append(
                MountRecord(
                    fstype=entry.get("fs_type", ""),
                    special=_unmangle(entry.get("mount_source", "")),
                    mount_point=_unmangle(entry["mount_point"]),
                    fsid=(dev, int(entry.get("mount_id") or 0)),
                )
            )
        return MountTable(records)

    def parse_mount(
        self, data: Union[str, List[str], Dict[str, Any]]
    ) -> MountTable:
        """Parse plain ``mount`` output with jc.

        No identifiers are available from ``mount`` so every fsid is
        ``(0, 0)``.
        """
        parsed = self.jc(data, "mount")
        records = []
        for entry in parsed:
            mount_point = entry.get("mount_point")
            if not mount_point:
                continue
            fstype = entry.get("type")
            if not fstype and entry.get("options"):
                # On macOS and FreeBSD, type is the first option
                fstype = entry["options"][0]
            records.append(
                MountRecord(
                    fstype=fstype or "",
                    special=entry.get("filesystem", ""),
                    mount_point=mount_point,
                )
            )
        return MountTable(records)

    def _load_json(self, data: Union[str, Dict[str, Any]]) -> Any:
        if isinstance(data, dict) and "stdout" in data:
            data = data["stdout"]
        if not isinstance(data, str):
            return data
        try:
            return json.loads(data)
        except ValueError as e:
            raise MntinfoError(f"Invalid JSON mount data: {e}", orig_exc=e)

    def _from_entries(self, entries: Any) -> MountTable:
        if not isinstance(entries, list):
            raise MntinfoError("Mount list must be a JSON array")
        display.vvvv(f"Loaded {len(entries)} mount entries")
        return MountTable(MountRecord.from_dict(e) for e in entries)


def _unmangle(value: str) -> str:
    return _MANGLED_RE.sub(lambda m: chr(int(m.group(1), 8)), value)


def _encode_dev(major: int, minor: int) -> int:
    # Linux new_encode_dev()
    return (
        (minor & 0xFF) | ((major & 0xFFF) << 8) | ((minor & ~0xFF) << 12)
    ) & 0xFFFFFFFF
