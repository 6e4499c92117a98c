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

"""Caller context: jail root, enforcement level and mount visibility."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Callable, Dict, Optional

from ansible_collections.o0_o.jail.plugins.filter_utils.errors import (
    MntinfoError,
)
from ansible_collections.o0_o.jail.plugins.filter_utils.mount_table import (
    MountRecord,
)


class EnforcementLevel(IntEnum):
    """Reporting policy, numbered like the ``enforce_statfs`` parameter."""

    UNCONFINED = 0
    PATH_SCOPED = 1
    NO_ACCESS = 2


def see_all(record: MountRecord) -> bool:
    return True


def can_see_mount(
    jail_root: str, enforcement: EnforcementLevel
) -> Callable[[MountRecord], bool]:
    """Return a predicate with ``prison_canseemount`` semantics.

    - unconfined callers see every mount
    - path scoped callers see mounts at or below ``jail_root``
    - callers without access see nothing

    :param jail_root: Absolute path of the jail root
    :param enforcement: Enforcement level of the caller
    :returns: Predicate over MountRecord
    """
    if enforcement >= EnforcementLevel.NO_ACCESS:
        return lambda record: False
    root = jail_root.rstrip("/")
    if enforcement == EnforcementLevel.UNCONFINED or not root:
        return see_all

    def visible(record: MountRecord) -> bool:
        mount_point = record.mount_point
        return mount_point == root or mount_point.startswith(root + "/")

    return visible


@dataclass(frozen=True)
class CallerContext:
    """Who is asking for the mount report.

    ``jail_root`` is empty when the caller is not confined to a
    subtree.
    """

    jail_root: str = ""
    enforcement: EnforcementLevel = EnforcementLevel.UNCONFINED
    visible: Callable[[MountRecord], bool] = see_all


def resolve_context(
    jail: Optional[Dict[str, Any]] = None,
    credential: bool = True,
    visible: Optional[Callable[[MountRecord], bool]] = None,
) -> CallerContext:
    """Derive the caller context from jail parameters.

    :param jail: Jail parameters with ``path`` and ``enforce_statfs``
        (as reported by ``jls``), or None for a caller outside any jail
    :param credential: False when the caller's credential is unknown
    :param visible: Visibility predicate, defaults to
        :func:`can_see_mount` for the resolved root and level
    :returns: CallerContext
    :raises MntinfoError: If ``enforce_statfs`` is not an integer
    """
    if not credential:
        return CallerContext(
            enforcement=EnforcementLevel.NO_ACCESS,
            visible=visible or can_see_mount("", EnforcementLevel.NO_ACCESS),
        )

    if jail is None:
        return CallerContext(visible=visible or see_all)

    jail_root = jail.get("path") or ""
    raw_level = jail.get("enforce_statfs", 0)
    try:
        level = int(raw_level)
    except (TypeError, ValueError) as e:
        raise MntinfoError(
            f"Invalid enforce_statfs value: {raw_level!r}", orig_exc=e
        )
    enforcement = EnforcementLevel(
        min(max(level, 0), EnforcementLevel.NO_ACCESS)
    )

    return CallerContext(
        jail_root=jail_root,
        enforcement=enforcement,
        visible=visible or can_see_mount(jail_root, enforcement),
    )
