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

import pytest

from ansible_collections.o0_o.jail.plugins.filter_utils import (
    CallerContext,
    EnforcementLevel,
    MntinfoError,
    MountRecord,
    can_see_mount,
    resolve_context,
    see_all,
)

ROOT = MountRecord("ufs", "/dev/ada0p2", "/")
JAIL_ROOT = MountRecord("zfs", "zroot/jails/a", "/jails/a")
IN_JAIL = MountRecord("nullfs", "/var/log", "/jails/a/var/log")
SIBLING = MountRecord("nullfs", "/var/log", "/jails/ab/var/log")


def test_default_context_is_unconfined() -> None:
    """Test the host context."""
    context = CallerContext()
    assert context.jail_root == ""
    assert context.enforcement is EnforcementLevel.UNCONFINED
    assert context.visible(ROOT) is True


def test_enforcement_matches_enforce_statfs() -> None:
    """Test the numbering of enforcement levels."""
    assert [int(level) for level in EnforcementLevel] == [0, 1, 2]


def test_can_see_mount_unconfined() -> None:
    """Test that unconfined callers see everything."""
    visible = can_see_mount("/jails/a", EnforcementLevel.UNCONFINED)
    assert all(visible(r) for r in (ROOT, JAIL_ROOT, IN_JAIL, SIBLING))


def test_can_see_mount_path_scoped() -> None:
    """Test that scoped callers only see mounts inside their root."""
    visible = can_see_mount("/jails/a/", EnforcementLevel.PATH_SCOPED)
    assert visible(JAIL_ROOT) is True
    assert visible(IN_JAIL) is True
    assert visible(ROOT) is False
    assert visible(SIBLING) is False


def test_can_see_mount_root_jail() -> None:
    """Test that a jail rooted at / sees every mount."""
    visible = can_see_mount("/", EnforcementLevel.PATH_SCOPED)
    assert visible is see_all


def test_can_see_mount_no_access() -> None:
    """Test that no access hides every mount."""
    visible = can_see_mount("/jails/a", EnforcementLevel.NO_ACCESS)
    assert not any(visible(r) for r in (ROOT, JAIL_ROOT, IN_JAIL))


def test_resolve_context_host() -> None:
    """Test a caller outside any jail."""
    context = resolve_context()
    assert context == CallerContext()


def test_resolve_context_no_credential() -> None:
    """Test that a missing credential means no access."""
    context = resolve_context(credential=False)
    assert context.enforcement is EnforcementLevel.NO_ACCESS
    assert context.jail_root == ""
    assert context.visible(ROOT) is False


def test_resolve_context_jail() -> None:
    """Test a jail with enforce_statfs=1 as reported by jls."""
    context = resolve_context(
        {"jid": 3, "name": "a", "path": "/jails/a", "enforce_statfs": "1"}
    )
    assert context.jail_root == "/jails/a"
    assert context.enforcement is EnforcementLevel.PATH_SCOPED
    assert context.visible(IN_JAIL) is True
    assert context.visible(ROOT) is False


@pytest.mark.parametrize(
    "raw, expected",
    [
        (0, EnforcementLevel.UNCONFINED),
        (2, EnforcementLevel.NO_ACCESS),
        (7, EnforcementLevel.NO_ACCESS),
        (-1, EnforcementLevel.UNCONFINED),
    ],
)
def test_resolve_context_clamps_level(raw, expected) -> None:
    """Test that out of range levels are clamped."""
    context = resolve_context({"path": "/jails/a", "enforce_statfs": raw})
    assert context.enforcement is expected


def test_resolve_context_custom_predicate() -> None:
    """Test that an explicit predicate wins."""
    context = resolve_context(
        {"path": "/jails/a", "enforce_statfs": 1}, visible=see_all
    )
    assert context.visible(ROOT) is True


def test_resolve_context_bad_level() -> None:
    """Test that a non integer level raises MntinfoError."""
    with pytest.raises(MntinfoError):
        resolve_context({"path": "/jails/a", "enforce_statfs": "strict"})
