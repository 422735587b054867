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
Models for container configurations and the runtime resources they produce.

The same ContainerConfig model describes both the configuration a component
wants and the configuration read back from a live container, so the two can
be compared directly.
"""
from typing import Dict, FrozenSet, List, Optional, Tuple
from pydantic import BaseModel, ConfigDict


class MountSpec(BaseModel):
    """
    A named runtime volume mounted at a path inside a container.
    """
    model_config = ConfigDict(frozen=True)

    source: str
    target: str


class PortBinding(BaseModel):
    """
    Publishes a container port on a host address.
    """
    model_config = ConfigDict(frozen=True)

    container_port: int
    host_ip: str
    host_port: int
    name: Optional[str] = None


class ContainerConfig(BaseModel):
    """
    Everything needed to create a container, and everything compared when
    deciding whether a live container is still up to date.
    """
    image: str
    command: List[str] = []
    args: List[str] = []
    env: Dict[str, str] = {}
    labels: Dict[str, str] = {}
    mounts: List[MountSpec] = []
    port_bindings: List[PortBinding] = []

    def env_set(self) -> FrozenSet[Tuple[str, str]]:
        return frozenset(self.env.items())

    def mount_set(self) -> FrozenSet[Tuple[str, str]]:
        return frozenset((mount.source, mount.target) for mount in self.mounts)

    def port_binding_set(self) -> FrozenSet[Tuple[int, str, int]]:
        return frozenset(
            (binding.container_port, binding.host_ip, binding.host_port)
            for binding in self.port_bindings
        )

    def env_list(self) -> List[str]:
        """
        Returns the environment in the NAME=value form used by container engines.
        """
        return [f"{name}={value}" for name, value in self.env.items()]


class VolumeRecord(BaseModel):
    """
    A runtime volume, identified only by its name and labels.
    """
    name: str
    labels: Dict[str, str] = {}


class LiveContainer(BaseModel):
    """
    A container found in the runtime by label.
    """
    id: str
    labels: Dict[str, str] = {}
    command: str = ""

    @property
    def alias(self) -> Optional[str]:
        return self.labels.get("alias")


class ExecResult(BaseModel):
    """
    Outcome of a command executed inside a container.
    """
    exit_code: Optional[int] = None
    output: str = ""

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0
