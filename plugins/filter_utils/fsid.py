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

"""Encoding helpers for filesystem identifiers (fsid)."""

from __future__ import annotations

import re
import struct
from typing import Sequence, Tuple, Union

from ansible_collections.o0_o.jail.plugins.filter_utils.errors import (
    MntinfoError,
)

FSID_RE = re.compile(r"^[0-9a-fA-F]{16}$")


def encode_hex(value: int) -> str:
    """Render a 32-bit value as 8 hex digits, least significant byte first.

    Values outside the unsigned 32-bit range are reduced modulo 2**32,
    so a signed kernel value of -1 becomes ``ffffffff``.

    :param value: Integer to encode
    :returns: Exactly 8 lowercase hex characters
    """
    return struct.pack("<I", value & 0xFFFFFFFF).hex()


def encode_fsid(fsid: Sequence[int]) -> str:
    """Encode both halves of an fsid pair as a 16 character token."""
    return encode_hex(fsid[0]) + encode_hex(fsid[1])


def decode_fsid(token: str) -> Tuple[int, int]:
    """Decode a 16 character fsid token back into its two halves.

    :param token: Token produced by :func:`encode_fsid`
    :returns: Tuple of two unsigned 32-bit integers
    :raises MntinfoError: If the token is not 16 hex characters
    """
    if not isinstance(token, str) or not FSID_RE.match(token):
        raise MntinfoError(f"Invalid fsid token: {token!r}")
    return struct.unpack("<II", bytes.fromhex(token))


def fsid_decimal(fsid: Union[str, Sequence[int]]) -> str:
    """Format an fsid the way FreeBSD ``unmount(2)`` accepts it by id.

    Both halves are printed as signed 32-bit integers, e.g.
    ``FSID:1:-16777216``.

    :param fsid: Token or pair of integers
    :returns: ``FSID:<val0>:<val1>`` string
    """
    if isinstance(fsid, str):
        fsid = decode_fsid(fsid)
    if len(fsid) != 2:
        raise MntinfoError(f"fsid must have exactly two values: {fsid!r}")
    val0, val1 = struct.unpack(
        "<ii", struct.pack("<II", fsid[0] & 0xFFFFFFFF, fsid[1] & 0xFFFFFFFF)
    )
    return f"FSID:{val0}:{val1}"
