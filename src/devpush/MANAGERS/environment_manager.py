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
Managers for merging declared and injected container environment variables.
"""
from typing import Dict, Optional
from ..MODELS.command import Command
from ..MODELS.component_spec import ComponentSpec
from ..UTILS import supervisor


class EnvironmentManager:
    """
    Builds the final environment of a container from its declaration.
    """
    def get_merged_environment(self,
                               spec: ComponentSpec,
                               run_command: Optional[Command] = None) -> Dict[str, str]:
        """
        Merges the declared environment with the variables a push injects.

        Injected variables never override a declared one:

        1. CHE_PROJECTS_ROOT, when the container mounts the project sources.
        2. The run command line (and its working directory), when the container
           is the run command's target.

        :param spec: The container declaration.
        :param run_command: The run command selected for the push, if any.
        :return: The environment, declared variables first.
        """
        env = {var.name: var.value for var in spec.env}

        if spec.mount_sources:
            env.setdefault(supervisor.ENV_PROJECTS_ROOT, supervisor.PROJECT_SOURCE_MOUNT_PATH)

        if run_command is not None and run_command.component == spec.name:
            env.setdefault(supervisor.ENV_COMMAND_RUN, run_command.command_line)
            if run_command.working_dir:
                env.setdefault(supervisor.ENV_COMMAND_RUN_WORKING_DIR, run_command.working_dir)

        return env
