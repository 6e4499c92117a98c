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
Shared helpers for action plugins that inspect jails on a target.

Commands are run with the connection's raw shell, so the target needs
no Python interpreter.
"""

from __future__ import annotations

import json
import shlex
from typing import Any, Dict, List, Optional, Union

from ansible.errors import AnsibleActionFail
from ansible.module_utils.common.text.converters import to_text
from ansible.plugins.action import ActionBase


class JailBase(ActionBase):
    """
    Base class for o0_o.jail action plugins.

    Provides raw command execution and jail parameter lookup on the
    target host.

    Usage:
        class ActionModule(JailBase):
            def run(self, tmp=None, task_vars=None):
                ...
    """

    def run(
        self,
        tmp: Optional[str] = None,
        task_vars: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Base run method that initializes the result structure.

        :param Optional[str] tmp: Temporary path (unused in modern
            Ansible)
        :param Optional[Dict[str, Any]] task_vars: Task variables
            dictionary
        :returns Dict[str, Any]: Initial result dictionary
        """
        return super().run(tmp, task_vars)

    def _cmd(
        self,
        cmd: Union[str, List[str]],
        stdin: Optional[str] = None,
        task_vars: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Run a command on the target through the raw shell.

        :param Union[str, List[str]] cmd: Command to execute. Can be a
            shell string or a list of arguments
        :param Optional[str] stdin: Optional standard input to pass to
            the command
        :param Optional[dict] task_vars: Dictionary of task variables
            from the calling task
        :returns dict: Result with rc, stdout, stderr and the
            corresponding line lists
        """
        if isinstance(cmd, list):
            cmd_str = " ".join(shlex.quote(arg) for arg in cmd)
        elif isinstance(cmd, str):
            cmd_str = cmd
        else:
            raise TypeError(
                f"Expected cmd to be str or list, got {type(cmd).__name__}"
            )

        self._display.vvv(f"Running: {cmd_str}")
        result = self._low_level_execute_command(cmd_str, in_data=stdin)

        stdout = to_text(result.get("stdout", ""), errors="surrogate_or_strict")
        stderr = to_text(result.get("stderr", ""), errors="surrogate_or_strict")
        return {
            "rc": result.get("rc"),
            "stdout": stdout,
            "stderr": stderr,
            "stdout_lines": stdout.splitlines(),
            "stderr_lines": stderr.splitlines(),
            "cmd": cmd,
        }

    def _jail_params(
        self, jail: str, task_vars: Optional[Dict[str, Any]] = None
    ) -> Optional[Dict[str, Any]]:
        """
        Look up the parameters of a jail with ``jls``.

        :param str jail: Jail name or jid
        :param Optional[dict] task_vars: Dictionary of task variables
        :returns dict: Jail parameters (path, enforce_statfs, ...), or
            None if the jail cannot be found
        :raises AnsibleActionFail: If jls returns unexpected output
        """
        cmd_result = self._cmd(
            ["jls", "--libxo", "json", "-n", "-j", jail], task_vars=task_vars
        )
        if cmd_result["rc"] != 0:
            self._display.vvv(
                f"jls failed for jail {jail}: {cmd_result['stderr'].strip()}"
            )
            return None

        try:
            doc = json.loads(cmd_result["stdout"])
            jails = doc["jail-information"]["jail"]
        except (ValueError, KeyError, TypeError) as e:
            raise AnsibleActionFail(f"Unexpected jls output: {e}")

        if not jails:
            return None
        return jails[0]
