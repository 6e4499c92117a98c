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

"""
Mount table snapshot serializer.

Renders the mounts visible to a caller as a single JSON object::

    {"mounted":[{"fstype":"ufs","special":"/dev/ada0p2","node":"/",
                 "fsid":"0100000002000000"}]}

Text fields are escaped by :func:`escape_json`, fsid halves are
encoded by :func:`encode_hex` and mount points of jailed callers are
rewritten relative to the jail root by :func:`scope_node`.
"""

from __future__ import annotations

import io
import json
from typing import Any, Dict, List, Optional, Protocol

from ansible_collections.o0_o.jail.plugins.filter_utils.context import (
    CallerContext,
    EnforcementLevel,
)
from ansible_collections.o0_o.jail.plugins.filter_utils.errors import (
    MntinfoError,
)
from ansible_collections.o0_o.jail.plugins.filter_utils.fsid import (
    FSID_RE,
    encode_hex,
    fsid_decimal,
)
from ansible_collections.o0_o.jail.plugins.filter_utils.mount_table import (
    MountRecord,
    MountTable,
)

_ESCAPES = str.maketrans(
    {
        '"': '\\"',
        "\\": "\\\\",
        "\b": "\\b",
        "\f": "\\f",
        "\n": "\\n",
        "\r": "\\r",
        "\t": "\\t",
    }
)


class Sink(Protocol):
    def write(self, text: str) -> Any: ...


def escape_json(text: str) -> str:
    """Escape text for use inside a JSON string literal.

    Only quotes, backslashes and the six short-form control characters
    are escaped; everything else passes through unchanged.
    """
    return text.translate(_ESCAPES)


def scope_node(record: MountRecord, context: CallerContext) -> Optional[str]:
    """Decide whether a mount is reported and under which path.

    :param record: Mount record from the table
    :param context: Caller context
    :returns: The path to report, or None if the mount is not visible
    """
    if not context.visible(record):
        return None

    node = record.mount_point
    jail_root = context.jail_root
    if context.enforcement == EnforcementLevel.UNCONFINED or not jail_root:
        return node

    root_len = len(jail_root)
    if (
        len(node) > root_len
        and node[root_len] == "/"
        and node.startswith(jail_root)
    ):
        return node[root_len:]
    return node


def build_json(sink: Sink, context: CallerContext, table: MountTable) -> None:
    """Write the mount report for ``context`` to ``sink``.

    The table guard is held only while records are visited; escaping
    and formatting happen afterwards.

    :param sink: Object with a ``write(str)`` method
    :param context: Caller context
    :param table: Mount table to snapshot
    """
    sink.write('{"mounted":[')

    visible = []
    if context.enforcement < EnforcementLevel.NO_ACCESS:
        with table.traverse() as records:
            for record in records:
                node = scope_node(record, context)
                if node is not None:
                    visible.append((record, node))

    for idx, (record, node) in enumerate(visible):
        if idx:
            sink.write(",")
        sink.write('{"fstype":"')
        sink.write(escape_json(record.fstype))
        sink.write('","special":"')
        sink.write(escape_json(record.special))
        sink.write('","node":"')
        sink.write(escape_json(node))
        sink.write('","fsid":"')
        sink.write(encode_hex(record.fsid[0]))
        sink.write(encode_hex(record.fsid[1]))
        sink.write('"}')

    sink.write("]}")


def dumps(table: MountTable, context: Optional[CallerContext] = None) -> str:
    """Return the mount report as a string."""
    buf = io.StringIO()
    build_json(buf, context or CallerContext(), table)
    return buf.getvalue()


def parse_report(text: str) -> List[Dict[str, Any]]:
    """Read a mount report back into a list of mount dicts.

    Each mount whose fsid decodes also gets an ``fsid_decimal`` entry.

    :param text: Report document
    :returns: List of mount dictionaries in report order
    :raises MntinfoError: If the document does not have the report shape
    """
    try:
        doc = json.loads(text, strict=False)
    except (TypeError, ValueError) as e:
        raise MntinfoError(f"Invalid mntinfo document: {e}", orig_exc=e)

    if not isinstance(doc, dict) or not isinstance(doc.get("mounted"), list):
        raise MntinfoError("mntinfo document has no mounted list")

    mounts = []
    for entry in doc["mounted"]:
        if not isinstance(entry, dict):
            raise MntinfoError(f"Invalid mount entry: {entry!r}")
        mount = dict(entry)
        fsid = entry.get("fsid")
        if isinstance(fsid, str) and FSID_RE.match(fsid):
            mount["fsid_decimal"] = fsid_decimal(fsid)
        mounts.append(mount)
    return mounts
