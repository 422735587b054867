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
Builders for turning a devfile container declaration into the container
configuration a push wants to see running.
"""
import logging
from typing import List
from ..MANAGERS.environment_manager import EnvironmentManager
from ..MANAGERS.network_manager import NetworkManager
from ..MODELS.component_spec import ComponentSpec
from ..MODELS.container_config import ContainerConfig, MountSpec
from ..MODELS.push_context import PushContext
from ..UTILS import labels, supervisor
from ..UTILS.errors import ConfigurationError

logger = logging.getLogger(__name__)


class ContainerBuilder:
    """
    Assembles the desired ContainerConfig of one container.
    Building has no side effects and never modifies the ComponentSpec.
    """
    def __init__(self):
        self.env_manager = EnvironmentManager()
        self.network_manager = NetworkManager()

    def build(self, component_name: str, spec: ComponentSpec, context: PushContext) -> ContainerConfig:
        """
        Builds the configuration for a container of the component.

        :param component_name: The component the container belongs to.
        :param spec: The container declaration.
        :param context: The push context holding resolved volumes, URLs and commands.
        :return: The desired container configuration.
        """
        bindings, names = self.network_manager.map_ports(spec.endpoints, context.exposed_urls)

        command = list(spec.command)
        args = list(spec.args)
        run_command = context.run_command
        runs_devfile_command = run_command is not None and run_command.component == spec.name

        # The supervisor launches the run command so it can be restarted in place
        if runs_devfile_command and not command and not args:
            logger.debug("Updating container %s entrypoint with the supervisor", spec.name)
            command = supervisor.entrypoint()
            args = supervisor.entrypoint_args()

        container_labels = labels.container_labels(component_name, spec.name)
        container_labels.update(self.network_manager.port_labels(names))

        return ContainerConfig(
            image=spec.image,
            command=command,
            args=args,
            env=self.env_manager.get_merged_environment(spec, run_command),
            labels=container_labels,
            mounts=self._mounts(spec, context, runs_devfile_command),
            port_bindings=bindings,
        )

    def _mounts(self, spec: ComponentSpec, context: PushContext, runs_devfile_command: bool) -> List[MountSpec]:
        mounts = []
        for volume_mount in spec.volume_mounts:
            runtime_name = context.storage_volumes.get(volume_mount.name)
            if runtime_name is None:
                raise ConfigurationError(
                    f"Volume {volume_mount.name} is mounted but not declared in the devfile",
                    alias=spec.name,
                )
            mounts.append(MountSpec(source=runtime_name, target=volume_mount.path))

        if spec.mount_sources:
            if context.project_volume is None:
                raise ConfigurationError("No project source volume was resolved", alias=spec.name)
            mounts.append(MountSpec(source=context.project_volume,
                                    target=supervisor.PROJECT_SOURCE_MOUNT_PATH))

        if runs_devfile_command and context.supervisor_volume is not None:
            mounts.append(MountSpec(source=context.supervisor_volume,
                                    target=supervisor.SUPERVISOR_MOUNT_PATH))
        return mounts
