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
Orchestration of a push: volumes, container reconciliation and devfile commands.
"""
import logging
import threading
import weakref
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set
from ..MODELS.command import PushCommands
from ..MODELS.component_spec import ExposedURL
from ..MODELS.container_config import LiveContainer
from ..MODELS.devfile import Devfile
from ..MODELS.push_context import PushContext
from ..RUNNERS.command_pipeline import CommandPipeline
from ..RUNNERS.reconciler import Outcome, Reconciler
from ..RUNTIME.runtime_client import RuntimeClient, runtime_call
from ..UTILS import labels
from ..UTILS.errors import ConfigurationError, PushCancelledError, error_context
from ..UTILS.settings import Settings
from .volume_manager import VolumeManager

logger = logging.getLogger(__name__)


class ComponentLock:
    """
    A lock for one component. Unlike a bare threading.Lock it can be weakly referenced.
    """
    def __init__(self):
        self._lock = threading.Lock()

    def __enter__(self):
        self._lock.acquire()
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self._lock.release()

    def locked(self) -> bool:
        return self._lock.locked()


# Entries disappear once no push holds or waits for the lock.
_component_locks: "weakref.WeakValueDictionary[str, ComponentLock]" = weakref.WeakValueDictionary()
_component_locks_guard = threading.Lock()


def component_lock(component_name: str) -> ComponentLock:
    """
    Returns the lock serializing pushes of one component within this process.
    """
    with _component_locks_guard:
        lock = _component_locks.get(component_name)
        if lock is None:
            lock = ComponentLock()
            _component_locks[component_name] = lock
        return lock


@dataclass
class PushResult:
    """
    What a push changed and which commands it ran.
    """
    outcomes: Dict[str, Outcome] = field(default_factory=dict)
    steps: List[str] = field(default_factory=list)

    @property
    def changed(self) -> Set[str]:
        return {alias for alias, outcome in self.outcomes.items() if outcome is not Outcome.UNCHANGED}


class ComponentOrchestrator:
    """
    Pushes a devfile component to a container runtime.
    """
    def __init__(self, client: RuntimeClient, settings: Optional[Settings] = None):
        """
        Initializes the orchestrator.

        :param client: The container runtime.
        :param settings: Push settings, defaults to Settings().
        """
        self.client = client
        self.settings = settings or Settings()
        self.volume_manager = VolumeManager(client, self.settings.volume_name_prefix)
        self.reconciler = Reconciler()
        self.pipeline = CommandPipeline()

    def push(self,
             component_name: str,
             devfile: Devfile,
             commands: PushCommands,
             exposed_urls: Optional[List[ExposedURL]] = None,
             cancel_event: Optional[threading.Event] = None) -> PushResult:
        """
        Reconciles the component's containers, then runs its commands.

        Pushes of the same component are serialized. A failure leaves the
        containers reconciled so far as they are.

        :param component_name: The component identity used in every label.
        :param devfile: The parsed devfile.
        :param commands: The init, build and run commands to execute.
        :param exposed_urls: URL records of the component.
        :param cancel_event: Set it to stop the push before its next runtime call.
        :return: The outcome of every container and the executed steps.
        """
        with component_lock(component_name), error_context(component_name):
            if not devfile.components:
                raise ConfigurationError("No valid components found in the devfile")
            if commands.is_empty():
                raise ConfigurationError("Error executing devfile commands - there should be at least 1 command")
            if cancel_event is not None and cancel_event.is_set():
                raise PushCancelledError("Push cancelled")

            logger.info("Pushing component %s", component_name)
            context = self.prepare_context(component_name, devfile, commands, exposed_urls or [], cancel_event)

            reconciled = self.reconciler.reconcile(context)
            containers = self.list_containers(component_name)
            steps = self.pipeline.execute(context, reconciled.component_exists, containers)

        logger.info("Pushed component %s", component_name)
        return PushResult(outcomes=reconciled.outcomes, steps=steps)

    def prepare_context(self,
                        component_name: str,
                        devfile: Devfile,
                        commands: PushCommands,
                        exposed_urls: List[ExposedURL],
                        cancel_event: Optional[threading.Event] = None) -> PushContext:
        """
        Resolves the component's volumes and freezes everything a push needs into one context.
        """
        project_volume = None
        if any(component.mount_sources for component in devfile.components):
            project_volume = self.volume_manager.resolve_project_volume(component_name).name

        supervisor_volume = None
        if commands.run is not None:
            supervisor_volume = self.volume_manager.resolve_supervisor_volume(
                component_name, self.settings.supervisor_image).name

        storage_volumes = self.volume_manager.resolve_storage_volumes(component_name, devfile.volumes)

        return PushContext(
            component_name=component_name,
            client=self.client,
            components=devfile.components,
            commands=commands,
            exposed_urls=exposed_urls,
            project_volume=project_volume,
            supervisor_volume=supervisor_volume,
            storage_volumes=storage_volumes,
            settings=self.settings,
            cancel_event=cancel_event,
        )

    def list_containers(self, component_name: str) -> List[LiveContainer]:
        """
        Lists every live container of the component.
        """
        with runtime_call("list containers"):
            return self.client.list_containers_by_label(labels.component_labels(component_name))
