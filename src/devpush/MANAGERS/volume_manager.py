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
Volume management for components: the project source volume, the supervisor
volume and the storage volumes declared in the devfile.

Runtime volumes have no identity beyond their labels, so each one is found
with a label lookup that must return at most one volume.
"""
import logging
import random
import string
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List
from ..MODELS.component_spec import VolumeComponent
from ..MODELS.container_config import ContainerConfig, MountSpec, VolumeRecord
from ..RUNTIME.runtime_client import RuntimeClient, runtime_call
from ..UTILS import labels, supervisor
from ..UTILS.errors import ConflictError, DevPushError
from ..UTILS.progress import progress

logger = logging.getLogger(__name__)


class Lookup(str, Enum):
    """
    Outcome of looking up a resource that should be unique.
    """
    NONE = "none"
    ONE = "one"
    MANY = "many"


@dataclass
class LookupResult:
    """
    The resources matching a label set, classified as none, one or many.
    """
    matches: list

    @property
    def outcome(self) -> Lookup:
        if not self.matches:
            return Lookup.NONE
        if len(self.matches) == 1:
            return Lookup.ONE
        return Lookup.MANY

    @property
    def single(self):
        """
        The only match. Only valid when the outcome is Lookup.ONE.
        """
        return self.matches[0]


def generate_volume_name(prefix: str, component_name: str) -> str:
    """
    Builds a volume name unique enough for parallel instances of the same component.
    """
    suffix = "".join(random.choices(string.ascii_lowercase, k=4))
    return f"{prefix}-{component_name}-{suffix}"


class VolumeManager:
    """
    Gets or creates the runtime volumes a component needs.
    """
    def __init__(self, client: RuntimeClient, name_prefix: str = "devpush"):
        """
        Initializes the volume manager.

        :param client: The runtime holding the volumes.
        :param name_prefix: Prefix for generated volume names.
        """
        self.client = client
        self.name_prefix = name_prefix

    def lookup(self, volume_labels: Dict[str, str]) -> LookupResult:
        with runtime_call("list volumes"):
            return LookupResult(self.client.list_volumes_by_label(volume_labels))

    def resolve_project_volume(self, component_name: str) -> VolumeRecord:
        """
        Returns the project source volume of a component, creating it on first use.

        :param component_name: The component identity.
        :return: The volume. An existing volume is returned unchanged.
        :raises ConflictError: If more than one project source volume exists.
        """
        return self._get_or_create(
            labels.project_volume_labels(component_name),
            f"{self.name_prefix}-project-source",
            component_name,
            "source volumes",
        )

    def resolve_supervisor_volume(self, component_name: str, image: str) -> VolumeRecord:
        """
        Returns the volume holding the supervisor binaries, creating and filling it on first use.

        A new volume is filled by mounting it into a throwaway container of the
        supervisor image: the engine copies the image content at the mount
        path into an empty named volume. A volume whose initialization fails
        is removed again, so the next push starts over.
        """
        volume_labels = labels.supervisor_volume_labels(component_name)
        result = self.lookup(volume_labels)
        if result.outcome is Lookup.ONE:
            return result.single
        if result.outcome is Lookup.MANY:
            raise ConflictError(
                f"Found {len(result.matches)} supervisor volumes for component {component_name}",
                component=component_name,
            )

        volume = self._create(f"{self.name_prefix}-supervisord", component_name, volume_labels)
        try:
            with progress(f"Initializing supervisor volume from {image}"):
                with runtime_call(f"pull image {image}"):
                    self.client.pull_image(image)
                config = ContainerConfig(
                    image=image,
                    labels=labels.component_labels(component_name),
                    mounts=[MountSpec(source=volume.name, target=supervisor.SUPERVISOR_MOUNT_PATH)],
                )
                with runtime_call("initialize the supervisor volume"):
                    container_id = self.client.create_and_start_container(config)
                    self.client.remove_container(container_id)
        except BaseException:
            self._discard(volume)
            raise
        return volume

    def resolve_storage_volumes(self,
                                component_name: str,
                                volumes: List[VolumeComponent]) -> Dict[str, str]:
        """
        Gets or creates one runtime volume per devfile volume.

        :return: Mapping of devfile volume name to runtime volume name.
        """
        resolved = {}
        for volume in volumes:
            record = self._get_or_create(
                labels.storage_volume_labels(component_name, volume.name),
                f"{self.name_prefix}-{volume.name}",
                component_name,
                f"volumes for storage {volume.name}",
            )
            resolved[volume.name] = record.name
        return resolved

    def _get_or_create(self,
                       volume_labels: Dict[str, str],
                       prefix: str,
                       component_name: str,
                       what: str) -> VolumeRecord:
        result = self.lookup(volume_labels)
        if result.outcome is Lookup.ONE:
            logger.debug("Using existing volume %s", result.single.name)
            return result.single
        if result.outcome is Lookup.MANY:
            raise ConflictError(
                f"Found {len(result.matches)} {what} for component {component_name}, expected at most one",
                component=component_name,
            )
        return self._create(prefix, component_name, volume_labels)

    def _create(self, prefix: str, component_name: str, volume_labels: Dict[str, str]) -> VolumeRecord:
        name = generate_volume_name(prefix, component_name)
        logger.info("Creating volume %s", name)
        with runtime_call(f"create volume {name}"):
            return self.client.create_volume(name, volume_labels)

    def _discard(self, volume: VolumeRecord) -> None:
        logger.debug("Removing uninitialized volume %s", volume.name)
        try:
            with runtime_call(f"remove volume {volume.name}"):
                self.client.remove_volume(volume.name)
        except DevPushError as err:
            logger.warning("Could not remove volume %s: %s", volume.name, err)
