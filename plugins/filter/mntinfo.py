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

from typing import Any, Dict, List, Sequence, Union

from ansible.errors import AnsibleFilterError
from ansible_collections.o0_o.jail.plugins.filter_utils import (
    CallerContext,
    EnforcementLevel,
    MntinfoError,
    MountRecord,
    MountTable,
    can_see_mount,
    decode_fsid,
    dumps,
    encode_fsid,
    fsid_decimal,
    parse_report,
    see_all,
)

DOCUMENTATION = r"""
---
name: mntinfo_json
short_description: Render mounts as a jail scoped JSON mount report
version_added: "1.0.0"
description:
  - Render a list of mounts as the JSON document served by the
    C(security.jail.mntinfojson) sysctl
  - Mount points below the jail root are reported relative to it when
    O(enforce_statfs) is 1
  - With O(enforce_statfs=2) the report is always empty
options:
  _input:
    description:
      - List of mount dicts using either report keys (C(fstype),
        C(special), C(node), C(fsid)) or jc C(mount) keys (C(type),
        C(filesystem), C(mount_point)), or the C(mounts) dict returned
        by the o0_o.posix.mounts module
    type: raw
    required: true
  jail_root:
    description:
      - Absolute path of the jail root, empty for the host
    type: str
    default: ""
  enforce_statfs:
    description:
      - Jail C(enforce_statfs) level (0, 1 or 2)
    type: int
    default: 0
  scope_visibility:
    description:
      - If True, drop mounts outside O(jail_root) the way the kernel
        does for jailed processes
    type: bool
    default: false
author:
  - oØ.o (@o0-o)
"""

EXAMPLES = r"""
- name: Render the host mount table
  ansible.builtin.debug:
    msg: "{{ mounts | o0_o.jail.mntinfo_json }}"

- name: Render the view of a jail rooted at /jails/www
  ansible.builtin.set_fact:
    www_mounts: >-
      {{ mounts | o0_o.jail.mntinfo_json(jail_root='/jails/www',
                                         enforce_statfs=1,
                                         scope_visibility=true) }}

- name: Read a report back
  ansible.builtin.debug:
    msg: "{{ (www_mounts | o0_o.jail.mntinfo)[0].node }}"

- name: Unmount by fsid
  ansible.builtin.command:
    cmd: "umount {{ '0100000002000000' | o0_o.jail.fsid_decimal }}"
"""

RETURN = r"""
_value:
  description: Mount report document
  type: str
  returned: always
  sample: >-
    {"mounted":[{"fstype":"ufs","special":"/dev/ada0p2","node":"/",
    "fsid":"0100000002000000"}]}
"""


class FilterModule:
    """Filters for building and reading jail mount reports."""

    def filters(self) -> Dict[str, Any]:
        """Return the filter functions."""
        return {
            "mntinfo_json": self.mntinfo_json,
            "mntinfo": self.mntinfo,
            "fsid_decode": self.fsid_decode,
            "fsid_encode": self.fsid_encode,
            "fsid_decimal": self.fsid_decimal,
        }

    def _to_records(
        self, mounts: Union[List[Dict[str, Any]], Dict[str, Any]]
    ) -> List[MountRecord]:
        """Convert filter input into mount records.

        :param mounts: List of mount dicts, or mount facts keyed by
            mount point
        :returns: Records in input order
        """
        if isinstance(mounts, dict):
            # o0_o.posix.mounts facts: filesystem is the type there
            mounts = [
                {
                    "node": mount_point,
                    "fstype": info.get("filesystem") or "",
                    "special": info.get("source") or info.get("device")
                    or info.get("filesystem") or "",
                    "fsid": info.get("fsid"),
                }
                for mount_point, info in mounts.items()
            ]
        if not isinstance(mounts, list):
            raise AnsibleFilterError(
                f"mntinfo_json expects a list or dict, got "
                f"{type(mounts).__name__}"
            )
        return [MountRecord.from_dict(entry) for entry in mounts]

    def mntinfo_json(
        self,
        mounts: Union[List[Dict[str, Any]], Dict[str, Any]],
        jail_root: str = "",
        enforce_statfs: int = 0,
        scope_visibility: bool = False,
    ) -> str:
        """Render mounts as a mount report document.

        :param mounts: Mounts to report
        :param jail_root: Jail root path, empty for the host
        :param enforce_statfs: Enforcement level 0, 1 or 2
        :param scope_visibility: Drop mounts outside the jail root
        :returns: JSON document
        """
        try:
            enforcement = EnforcementLevel(int(enforce_statfs))
        except (TypeError, ValueError) as e:
            raise AnsibleFilterError(
                f"enforce_statfs must be 0, 1 or 2, got {enforce_statfs!r}",
                orig_exc=e,
            )

        visible = see_all
        if scope_visibility:
            visible = can_see_mount(jail_root, enforcement)

        try:
            table = MountTable(self._to_records(mounts))
        except MntinfoError as e:
            raise AnsibleFilterError(str(e), orig_exc=e)

        context = CallerContext(
            jail_root=jail_root or "",
            enforcement=enforcement,
            visible=visible,
        )
        return dumps(table, context)

    def mntinfo(self, data: Union[str, Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Parse a mount report into a list of mounts.

        :param data: Report text or command result with ``stdout``
        :returns: List of mount dicts
        """
        if isinstance(data, dict):
            data = data.get("stdout", "")
        try:
            return parse_report(data)
        except MntinfoError as e:
            raise AnsibleFilterError(str(e), orig_exc=e)

    def fsid_decode(self, token: str) -> List[int]:
        """Decode a 16 character fsid token into ``[val0, val1]``."""
        try:
            return list(decode_fsid(token))
        except MntinfoError as e:
            raise AnsibleFilterError(str(e), orig_exc=e)

    def fsid_encode(self, fsid: Sequence[int]) -> str:
        """Encode ``[val0, val1]`` as a 16 character fsid token."""
        try:
            val0, val1 = fsid
            return encode_fsid((int(val0), int(val1)))
        except (TypeError, ValueError) as e:
            raise AnsibleFilterError(
                f"fsid must be a pair of integers, got {fsid!r}", orig_exc=e
            )

    def fsid_decimal(self, fsid: Union[str, Sequence[int]]) -> str:
        """Format an fsid as ``FSID:<val0>:<val1>``."""
        try:
            return fsid_decimal(fsid)
        except (MntinfoError, TypeError) as e:
            raise AnsibleFilterError(str(e), orig_exc=e)
