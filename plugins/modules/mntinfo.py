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


DOCUMENTATION = r"""
---
module: mntinfo
short_description: Report the mounts visible to a jail as JSON
version_added: "1.0.0"
description:
  - Reads the mount table of the target host and renders the mounts
    visible to a jail as a C({"mounted":[...]}) JSON document, the same
    document served by the C(security.jail.mntinfojson) sysctl.
  - Mount points below the jail root are reported relative to it when
    the jail's C(enforce_statfs) is 1.
  - Supports the two step protocol of the sysctl, first asking for the
    size of the report and then fetching at most a given number of
    bytes.
  - Does not require Python on the target host.
options:
  source:
    description:
      - Where to read the mount table from.
      - C(libxo) runs C(mount --libxo json -v) (FreeBSD, includes fsid).
      - C(mountinfo) reads C(/proc/self/mountinfo) (Linux).
      - C(mount) parses plain C(mount) output (no fsid).
      - C(sysctl) reads an existing C(security.jail.mntinfojson) report.
      - C(auto) tries C(libxo), C(mountinfo) and C(mount) in that order.
    type: str
    choices: [auto, libxo, mountinfo, mount, sysctl]
    default: auto
  jail:
    description:
      - Name or jid of the jail to report for. Its C(path) and
        C(enforce_statfs) are read with C(jls).
      - If the jail cannot be found the report is empty.
      - Mutually exclusive with O(jail_root) and O(enforce_statfs).
    type: str
  jail_root:
    description:
      - Jail root path to scope the report to, when O(jail) is not
        used.
    type: str
  enforce_statfs:
    description:
      - Enforcement level to apply with O(jail_root).
      - C(0) reports every mount unchanged, C(1) reports mounts at or
        below the jail root relative to it, C(2) reports nothing.
      - Defaults to C(1) when O(jail_root) is set, C(0) otherwise.
    type: int
    choices: [0, 1, 2]
  size_only:
    description:
      - Only compute the size of the report.
    type: bool
    default: false
  max_length:
    description:
      - Maximum number of bytes of the report to return. A shorter
        value returns a truncated report together with the size
        needed.
    type: int
author:
  - oØ.o (@o0-o)
notes:
  - The size of the last report is remembered per controller process
    and used to pre-size the buffer of the next one.
attributes:
  check_mode:
    description: This module supports check mode.
    support: full
  async:
    description: This module does not support async operation.
    support: none
  platform:
    description: Only POSIX platforms are supported.
    support: full
    platforms: posix
"""

EXAMPLES = r"""
- name: Report the mounts of the host
  o0_o.jail.mntinfo:
  register: host_mounts

- name: Report the mounts visible to the www jail
  o0_o.jail.mntinfo:
    jail: www
  register: www_mounts

- name: Show the jail relative mount points
  ansible.builtin.debug:
    msg: "{{ www_mounts.mounted | map(attribute='node') | list }}"

- name: Ask for the report size first
  o0_o.jail.mntinfo:
    jail_root: /jails/www
    enforce_statfs: 1
    size_only: true
  register: size

- name: Fetch at most that many bytes
  o0_o.jail.mntinfo:
    jail_root: /jails/www
    enforce_statfs: 1
    max_length: "{{ size.needed }}"
  register: report
"""

RETURN = r"""
needed:
  description: Length of the complete report in bytes
  returned: always
  type: int
  sample: 87
length:
  description: Number of bytes returned in RV(mntinfo), 0 for size_only
  returned: always
  type: int
  sample: 87
truncated:
  description: Whether RV(mntinfo) is shorter than the complete report
  returned: unless size_only
  type: bool
  sample: false
mntinfo:
  description: The report document, possibly truncated
  returned: unless size_only
  type: str
  sample: >-
    {"mounted":[{"fstype":"ufs","special":"/dev/ada0p2","node":"/",
    "fsid":"0100000002000000"}]}
mounted:
  description: Parsed report
  returned: unless size_only or truncated
  type: list
  elements: dict
  contains:
    fstype:
      description: Filesystem type
      type: str
      sample: ufs
    special:
      description: Device or source the filesystem was mounted from
      type: str
      sample: /dev/ada0p2
    node:
      description: Mount point, relative to the jail root when scoped
      type: str
      sample: /
    fsid:
      description: Filesystem id, 16 hex characters
      type: str
      sample: "0100000002000000"
    fsid_decimal:
      description: Filesystem id as accepted by unmount by fsid
      type: str
      sample: "FSID:1:2"
changed:
  description: Always false as this is an information gathering module
  returned: always
  type: bool
  sample: false
"""
