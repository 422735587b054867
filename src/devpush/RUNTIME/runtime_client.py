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
The capabilities a push needs from a container runtime.
"""
from contextlib import contextmanager
from typing import Dict, Iterator, List, Protocol, runtime_checkable
from ..MODELS.container_config import ContainerConfig, ExecResult, LiveContainer, VolumeRecord
from ..UTILS.errors import DevPushError, RuntimeCallError


@runtime_checkable
class RuntimeClient(Protocol):
    """
    Volume and container operations of a container engine.

    Every method blocks until the engine has answered and raises
    RuntimeCallError on failure.
    """

    def list_volumes_by_label(self, labels: Dict[str, str]) -> List[VolumeRecord]:
        ...

    def create_volume(self, name: str, labels: Dict[str, str]) -> VolumeRecord:
        ...

    def remove_volume(self, name: str) -> None:
        ...

    def pull_image(self, image: str) -> None:
        ...

    def create_and_start_container(self, config: ContainerConfig) -> str:
        """Creates and starts a container, returning its id."""
        ...

    def remove_container(self, container_id: str) -> None:
        ...

    def list_containers_by_label(self, labels: Dict[str, str]) -> List[LiveContainer]:
        ...

    def inspect_container_config(self, container_id: str) -> ContainerConfig:
        """Reads back the configuration of a live container, without image defaults."""
        ...

    def exec(self, container_id: str, argv: List[str], attach_output: bool = False) -> ExecResult:
        """Runs ``argv`` inside a container and returns its exit code and output."""
        ...


@contextmanager
def runtime_call(operation: str) -> Iterator[None]:
    """
    Turns any failure of a runtime call into a RuntimeCallError naming the operation.
    """
    try:
        yield
    except DevPushError:
        raise
    except Exception as err:
        raise RuntimeCallError(operation, str(err)) from err
