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
Execution of the devfile init, build and run commands inside the component's containers.
"""
import logging
from enum import Enum
from typing import Callable, List, Tuple
from ..MODELS.command import Command, CommandGroup
from ..MODELS.container_config import LiveContainer
from ..MODELS.push_context import PushContext
from ..RUNTIME.runtime_client import runtime_call
from ..UTILS import supervisor
from ..UTILS.errors import CommandExecError, ConfigurationError, error_context
from ..UTILS.progress import progress

logger = logging.getLogger(__name__)


class RunMode(str, Enum):
    """
    How the run command is (re)started by the supervisor.
    """
    RESTART = "restart"
    NO_RESTART = "no-restart"


class CommandPipeline:
    """
    Runs the selected commands in the fixed order init, build, run.

    Init only runs when containers were just created. Each command blocks until
    it exits, and the first failure stops the pipeline.
    """
    def __init__(self):
        self._stages: List[Tuple[CommandGroup, Callable[..., None]]] = [
            (CommandGroup.INIT, self._run_init),
            (CommandGroup.BUILD, self._run_build),
            (CommandGroup.RUN, self._run_run),
        ]

    def execute(self,
                context: PushContext,
                component_exists: bool,
                containers: List[LiveContainer]) -> List[str]:
        """
        Executes the push commands.

        :param context: The push context holding the selected commands.
        :param component_exists: False when any container was created or recreated by this push.
        :param containers: The live containers of the component.
        :return: The steps that were executed, e.g. ["init:install", "build:compile"].
        :raises ConfigurationError: If no command was selected.
        :raises CommandExecError: If a command fails. Later commands are not attempted.
        """
        commands = context.commands
        if commands.is_empty():
            raise ConfigurationError("Error executing devfile commands - there should be at least 1 command",
                                     component=context.component_name)

        steps: List[str] = []
        for group, stage in self._stages:
            command = getattr(commands, group.value)
            if command is None:
                continue
            with error_context(context.component_name, command.component):
                stage(context, command, component_exists, containers, steps)
        return steps

    def _run_init(self, context, command, component_exists, containers, steps):
        if component_exists:
            logger.debug("Skipping init command %s, the component already exists", command.id)
            return
        self._exec_action(context, command, containers)
        steps.append(f"init:{command.id}")

    def _run_build(self, context, command, component_exists, containers, steps):
        self._exec_action(context, command, containers)
        steps.append(f"build:{command.id}")

    def _run_run(self, context, command, component_exists, containers, steps):
        logger.debug("Executing devfile command %s", command.id)
        if not component_exists:
            for alias in self.init_supervisor(context, command.component, containers):
                steps.append(f"supervisor:{alias}")

        mode = RunMode.RESTART
        if component_exists and not command.restart:
            logger.debug("restart:false, not restarting run command %s", command.id)
            mode = RunMode.NO_RESTART
        self.exec_run(context, command, containers, mode)
        steps.append(f"run:{command.id}:{mode.value}")

    def init_supervisor(self, context: PushContext, alias: str, containers: List[LiveContainer]) -> List[str]:
        """
        Starts the supervisor in the run containers whose entrypoint is not the supervisor.

        :return: The aliases of the containers where the supervisor was started.
        """
        started = []
        for container in containers:
            if container.alias != alias or supervisor.is_supervised(container.command):
                continue
            with progress(f"Starting supervisor in container {alias}"):
                self._exec(context, container.id, supervisor.daemon_command(), "supervisor-init")
            started.append(alias)
        return started

    def exec_run(self,
                 context: PushContext,
                 command: Command,
                 containers: List[LiveContainer],
                 mode: RunMode):
        """
        Has the supervisor start the run program, stopping it first in restart mode.
        """
        container_id = self._container_id(command, containers)
        with progress(f"Executing {command.id} command \"{command.command_line}\""):
            if mode is RunMode.RESTART:
                self._exec(context, container_id, supervisor.ctl_command("stop", "all"), command.id)
            self._exec(context, container_id,
                       supervisor.ctl_command("start", supervisor.DEVRUN_PROGRAM), command.id)

    def _exec_action(self, context: PushContext, command: Command, containers: List[LiveContainer]):
        container_id = self._container_id(command, containers)
        argv = supervisor.shell_command(command.command_line, command.working_dir)
        with progress(f"Executing {command.id} command \"{command.command_line}\""):
            self._exec(context, container_id, argv, command.id)

    def _exec(self, context: PushContext, container_id: str, argv: List[str], command_id: str):
        context.check_cancelled()
        with runtime_call(f"execute command {command_id}"):
            result = context.client.exec(container_id, argv, context.show_log)
        if not result.succeeded:
            raise CommandExecError(command_id, result.exit_code, self._tail(result.output))

    @staticmethod
    def _container_id(command: Command, containers: List[LiveContainer]) -> str:
        for container in containers:
            if container.alias == command.component:
                return container.id
        raise ConfigurationError(
            f"Command {command.id} targets container {command.component}, which is not running"
        )

    @staticmethod
    def _tail(output: str, lines: int = 20) -> str:
        return "\n".join(output.splitlines()[-lines:])
