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
Reconciliation of the declared containers against the containers running in
the runtime.

Each declared container is looked up by its component and alias labels:

* no match: the container is created;
* one match: the live configuration is compared with the desired one, and the
  container is removed and created again when they differ;
* several matches: the push is refused, the duplicates must be cleaned up by hand.

A live container is never patched in place.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Set
from ..BUILDERS.container_builder import ContainerBuilder
from ..MANAGERS.volume_manager import Lookup, LookupResult
from ..MODELS.component_spec import ComponentSpec
from ..MODELS.container_config import ContainerConfig
from ..MODELS.push_context import PushContext
from ..RUNTIME.runtime_client import runtime_call
from ..UTILS import labels
from ..UTILS.errors import ConfigurationError, ConflictError, error_context
from ..UTILS.progress import progress

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    """
    What reconciliation did to one container.
    """
    CREATED = "created"
    RECREATED = "recreated"
    UNCHANGED = "unchanged"


@dataclass
class ReconcileResult:
    """
    Per-alias outcomes of a reconciliation pass, in declaration order.
    """
    outcomes: Dict[str, Outcome] = field(default_factory=dict)

    @property
    def changed(self) -> Set[str]:
        return {alias for alias, outcome in self.outcomes.items() if outcome is not Outcome.UNCHANGED}

    @property
    def component_exists(self) -> bool:
        """
        True when every container was already running with the desired configuration.
        """
        return not self.changed


def config_differences(desired: ContainerConfig, actual: ContainerConfig) -> List[str]:
    """
    Lists the fields on which a live container differs from the desired configuration.

    Environment, mounts and port bindings are compared as sets, so declaration
    order never matters.
    """
    differences = []
    if desired.image != actual.image:
        differences.append("image")
    if desired.command != actual.command or desired.args != actual.args:
        differences.append("command")
    if desired.env_set() != actual.env_set():
        differences.append("env")
    if desired.mount_set() != actual.mount_set():
        differences.append("mounts")
    if desired.port_binding_set() != actual.port_binding_set():
        differences.append("ports")
    return differences


def configs_match(desired: ContainerConfig, actual: ContainerConfig) -> bool:
    return not config_differences(desired, actual)


class Reconciler:
    """
    Brings the containers of a component in line with its devfile.
    """
    def __init__(self, builder: Optional[ContainerBuilder] = None):
        self.builder = builder or ContainerBuilder()

    def reconcile(self, context: PushContext) -> ReconcileResult:
        """
        Reconciles every declared container, one after the other, in declaration order.

        :param context: The push context.
        :return: The outcome for each container alias.
        :raises ConfigurationError: If the devfile declares no containers.
        :raises ConflictError: If a container alias matches several live containers.
            Containers reconciled before the conflict are left as they are.
        """
        if not context.components:
            raise ConfigurationError("No valid components found in the devfile",
                                     component=context.component_name)

        result = ReconcileResult()
        for spec in context.components:
            with error_context(context.component_name, spec.name):
                result.outcomes[spec.name] = self.reconcile_container(context, spec)

        logger.debug("Reconciled component %s: %s", context.component_name,
                     {alias: outcome.value for alias, outcome in result.outcomes.items()})
        return result

    def reconcile_container(self, context: PushContext, spec: ComponentSpec) -> Outcome:
        client = context.client
        context.check_cancelled()
        with runtime_call("list containers"):
            live = LookupResult(client.list_containers_by_label(
                labels.container_labels(context.component_name, spec.name)))

        if live.outcome is Lookup.MANY:
            raise ConflictError(
                f"Found {len(live.matches)} running containers for devfile component {spec.name} "
                "and cannot push changes"
            )

        desired = self.builder.build(context.component_name, spec, context)

        if live.outcome is Lookup.NONE:
            logger.info("Creating container %s for component %s", spec.name, context.component_name)
            self._pull_and_start(context, desired)
            return Outcome.CREATED

        container_id = live.single.id
        context.check_cancelled()
        with runtime_call(f"get the configuration of container {container_id}"):
            actual = client.inspect_container_config(container_id)

        differences = config_differences(desired, actual)
        if not differences:
            logger.debug("Container %s is up to date", spec.name)
            return Outcome.UNCHANGED

        logger.info("Updating container %s, changed: %s", spec.name, ", ".join(differences))
        context.check_cancelled()
        with progress(f"Removing container {spec.name}"):
            with runtime_call(f"remove container {container_id}"):
                client.remove_container(container_id)
        self._pull_and_start(context, desired)
        return Outcome.RECREATED

    def _pull_and_start(self, context: PushContext, desired: ContainerConfig) -> str:
        client = context.client
        context.check_cancelled()
        with progress(f"Pulling image {desired.image}"):
            with runtime_call(f"pull image {desired.image}"):
                client.pull_image(desired.image)

        context.check_cancelled()
        with progress(f"Starting container for {desired.image}"):
            with runtime_call(f"start container for {desired.image}"):
                container_id = client.create_and_start_container(desired)
        logger.debug("Started container %s from %s", container_id, desired.image)
        return container_id
