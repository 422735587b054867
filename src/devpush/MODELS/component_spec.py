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
Models for the components declared by a devfile: containers, their endpoints,
environment and volume mounts.
"""
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, field_validator


class EnvVar(BaseModel):
    """
    A single environment variable declared on a container.
    """
    model_config = ConfigDict(frozen=True)

    name: str
    value: str = ""


class Endpoint(BaseModel):
    """
    A port the container listens on.
    """
    model_config = ConfigDict(frozen=True)

    name: str
    target_port: int


class VolumeMount(BaseModel):
    """
    Mounts a devfile volume, by name, at a path inside the container.
    """
    model_config = ConfigDict(frozen=True)

    name: str
    path: str


class VolumeComponent(BaseModel):
    """
    A named volume declared at the top level of the devfile.
    """
    model_config = ConfigDict(frozen=True)

    name: str
    size: Optional[str] = None


class ComponentSpec(BaseModel):
    """
    The desired state of one container of the component.

    ``name`` is the container alias. The spec is immutable for the whole push.
    """
    model_config = ConfigDict(frozen=True)

    name: str
    image: str

    # Execution
    command: List[str] = []
    args: List[str] = []

    # Environment, in declaration order
    env: List[EnvVar] = []

    # Networking
    endpoints: List[Endpoint] = []

    # Storage
    volume_mounts: List[VolumeMount] = []
    mount_sources: bool = True

    @field_validator("env")
    @classmethod
    def _unique_env_names(cls, env: List[EnvVar]) -> List[EnvVar]:
        seen = set()
        for var in env:
            if var.name in seen:
                raise ValueError(f"Environment variable {var.name} is declared more than once")
            seen.add(var.name)
        return env

    def has_env(self, name: str) -> bool:
        """
        Checks whether the container declares an environment variable.
        """
        return any(var.name == name for var in self.env)

    def has_port(self, port: int) -> bool:
        """
        Checks whether any declared endpoint targets ``port``.
        """
        return any(endpoint.target_port == port for endpoint in self.endpoints)


class ExposedURL(BaseModel):
    """
    A persisted URL record exposing a container port on the host.
    """
    name: str
    port: int
    exposed_port: int = 0
