# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Paths and command lines for the in-container process supervisor.

The supervisor lives on its own volume, mounted into the container that runs
the devfile run command. It launches the run command as the ``devrun``
program, which lets a push restart the run command without recreating the
container.
"""
from typing import List, Optional

SUPERVISOR_MOUNT_PATH = "/opt/devpush"
SUPERVISOR_BINARY_PATH = "/opt/devpush/bin/supervisord"
SUPERVISOR_CONF_FILE = "/opt/devpush/conf/devfile-supervisor.conf"
SUPERVISOR_CTL_SUBCOMMAND = "ctl"
DEVRUN_PROGRAM = "devrun"

ENV_COMMAND_RUN = "DEVPUSH_COMMAND_RUN"
ENV_COMMAND_RUN_WORKING_DIR = "DEVPUSH_COMMAND_RUN_WORKING_DIR"

PROJECT_SOURCE_MOUNT_PATH = "/projects"
ENV_PROJECTS_ROOT = "CHE_PROJECTS_ROOT"


def entrypoint() -> List[str]:
    return [SUPERVISOR_BINARY_PATH]


def entrypoint_args() -> List[str]:
    return ["-c", SUPERVISOR_CONF_FILE]


def daemon_command() -> List[str]:
    """
    Starts the supervisor as a daemon in a container whose entrypoint is something else.
    """
    return [SUPERVISOR_BINARY_PATH, "-c", SUPERVISOR_CONF_FILE, "-d"]


def ctl_command(action: str, program: str) -> List[str]:
    return [SUPERVISOR_BINARY_PATH, SUPERVISOR_CTL_SUBCOMMAND, action, program]


def is_supervised(container_command: str) -> bool:
    """
    Checks whether a container's command line already runs the supervisor.
    """
    return SUPERVISOR_BINARY_PATH in container_command


def shell_command(command_line: str, working_dir: Optional[str] = None) -> List[str]:
    """
    Wraps a devfile command line in a shell invocation.
    """
    if working_dir:
        command_line = f"cd {working_dir} && {command_line}"
    return ["/bin/sh", "-c", command_line]
