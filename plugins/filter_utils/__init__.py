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

"""Shared mount report helpers for the o0_o.jail collection."""

from __future__ import annotations

from ansible_collections.o0_o.jail.plugins.filter_utils.context import (
    CallerContext,
    EnforcementLevel,
    can_see_mount,
    resolve_context,
    see_all,
)
from ansible_collections.o0_o.jail.plugins.filter_utils.errors import (
    MntinfoError,
)
from ansible_collections.o0_o.jail.plugins.filter_utils.fsid import (
    decode_fsid,
    encode_fsid,
    encode_hex,
    fsid_decimal,
)
from ansible_collections.o0_o.jail.plugins.filter_utils.jc_base import (
    JCBase,
)
from ansible_collections.o0_o.jail.plugins.filter_utils.mntinfo import (
    build_json,
    dumps,
    escape_json,
    parse_report,
    scope_node,
)
from ansible_collections.o0_o.jail.plugins.filter_utils.mount_table import (
    MountRecord,
    MountTable,
    MountTableParser,
)
from ansible_collections.o0_o.jail.plugins.filter_utils.retrieval import (
    SHARED_HINT,
    BufferSink,
    CountingSink,
    MntinfoHandler,
    MntinfoResult,
    SizeHint,
)

__all__ = [
    "BufferSink",
    "CallerContext",
    "CountingSink",
    "EnforcementLevel",
    "JCBase",
    "MntinfoError",
    "MntinfoHandler",
    "MntinfoResult",
    "MountRecord",
    "MountTable",
    "MountTableParser",
    "SHARED_HINT",
    "SizeHint",
    "build_json",
    "can_see_mount",
    "decode_fsid",
    "dumps",
    "encode_fsid",
    "encode_hex",
    "escape_json",
    "fsid_decimal",
    "parse_report",
    "resolve_context",
    "scope_node",
    "see_all",
]
