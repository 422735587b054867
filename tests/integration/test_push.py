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
End to end pushes against the in-memory runtime.
"""
import gc
import threading
import pytest
from devpush.BUILDERS.container_builder import ContainerBuilder
from devpush.MANAGERS import component_orchestrator
from devpush.MANAGERS.component_orchestrator import ComponentOrchestrator, component_lock
from devpush.MODELS.command import PushCommands
from devpush.MODELS.component_spec import ExposedURL
from devpush.MODELS.devfile import Devfile
from devpush.RUNNERS.reconciler import Outcome
from devpush.UTILS import labels
from devpush.UTILS.errors import (
    CommandExecError,
    ConfigurationError,
    ConflictError,
    PortMappingError,
    PushCancelledError,
)
from devpush.UTILS.settings import Settings


@pytest.fixture
def devfile(runtime_spec, push_commands):
    return Devfile(name="nodejs", components=[runtime_spec], commands=push_commands.all())


def _runtime_containers(client):
    return [config for config, _ in client.containers.values() if config.labels.get("alias") == "runtime"]


class TestPush:
    """Tests for ComponentOrchestrator.push."""

    def test_first_push(self, fake_client, devfile, push_commands):
        """Test that a first push creates volumes and the container, then runs every command."""
        result = ComponentOrchestrator(fake_client).push("nodejs", devfile, push_commands)

        assert result.outcomes == {"runtime": Outcome.CREATED}
        assert result.changed == {"runtime"}
        assert result.steps == ["init:setup", "build:install", "supervisor:runtime", "run:start:restart"]

        volume_labels = [volume.labels for volume in fake_client.volumes]
        assert labels.project_volume_labels("nodejs") in volume_labels
        assert labels.supervisor_volume_labels("nodejs") in volume_labels

        (config,) = _runtime_containers(fake_client)
        assert config.env["DEVPUSH_COMMAND_RUN"] == "npm start"
        assert len(fake_client.containers) == 1

    def test_second_push_is_incremental(self, fake_client, devfile, push_commands):
        """Test that pushing an unchanged devfile again only rebuilds and restarts."""
        orchestrator = ComponentOrchestrator(fake_client)
        orchestrator.push("nodejs", devfile, push_commands)
        creates = fake_client.count("create_container")
        fake_client.execs.clear()

        result = orchestrator.push("nodejs", devfile, push_commands)
        assert result.outcomes == {"runtime": Outcome.UNCHANGED}
        assert result.steps == ["build:install", "run:start:restart"]
        assert fake_client.count("create_container") == creates
        assert fake_client.count("remove_container") == 1  # throwaway supervisor container, first push
        assert fake_client.count("create_volume") == 2

    def test_changed_devfile_recreates(self, fake_client, devfile, push_commands, runtime_spec):
        """Test that a changed image recreates the container and runs init again."""
        orchestrator = ComponentOrchestrator(fake_client)
        orchestrator.push("nodejs", devfile, push_commands)

        updated = devfile.model_copy(update={"components": [runtime_spec.model_copy(update={"image": "node:20"})]})
        result = orchestrator.push("nodejs", updated, push_commands)
        assert result.outcomes == {"runtime": Outcome.RECREATED}
        assert result.steps[0] == "init:setup"
        (config,) = _runtime_containers(fake_client)
        assert config.image == "node:20"

    def test_duplicate_containers_execute_nothing(self, fake_client, devfile, push_commands, make_context,
                                                  runtime_spec):
        """Test that a duplicated container stops the push before any command runs."""
        desired = ContainerBuilder().build("nodejs", runtime_spec, make_context())
        fake_client.seed_container(desired)
        fake_client.seed_container(desired)

        with pytest.raises(ConflictError) as exc_info:
            ComponentOrchestrator(fake_client).push("nodejs", devfile, push_commands)
        assert exc_info.value.component == "nodejs"
        assert fake_client.execs == []
        assert len(fake_client.containers) == 2

    def test_stale_url_fails_before_mutation(self, fake_client, devfile, push_commands):
        """Test that a URL on an undeclared port stops the push before containers are created."""
        urls = [ExposedURL(name="old", port=9090, exposed_port=20001)]
        with pytest.raises(PortMappingError):
            ComponentOrchestrator(fake_client).push("nodejs", devfile, push_commands, urls)
        assert _runtime_containers(fake_client) == []

    def test_exposed_url_is_bound(self, fake_client, devfile, push_commands):
        """Test that exposed URLs are published on localhost."""
        urls = [ExposedURL(name="app", port=8080, exposed_port=20001)]
        ComponentOrchestrator(fake_client).push("nodejs", devfile, push_commands, urls)
        (config,) = _runtime_containers(fake_client)
        assert config.port_binding_set() == {(8080, "127.0.0.1", 20001)}
        assert config.labels["8080"] == "app"

    def test_empty_devfile_is_rejected(self, fake_client, push_commands):
        """Test that nothing is touched for a devfile without containers."""
        with pytest.raises(ConfigurationError):
            ComponentOrchestrator(fake_client).push("nodejs", Devfile(), push_commands)
        assert fake_client.calls == []

    def test_no_commands_is_rejected(self, fake_client, devfile):
        """Test that nothing is touched for a push without commands."""
        with pytest.raises(ConfigurationError):
            ComponentOrchestrator(fake_client).push("nodejs", devfile, PushCommands())
        assert fake_client.calls == []

    def test_failed_build_keeps_containers(self, fake_client, devfile, push_commands):
        """Test that a failed command leaves the reconciled containers in place."""
        fake_client.failing.add("npm install")
        with pytest.raises(CommandExecError):
            ComponentOrchestrator(fake_client).push("nodejs", devfile, push_commands)
        assert len(_runtime_containers(fake_client)) == 1

    def test_cancelled_push(self, fake_client, devfile, push_commands):
        """Test that a cancelled push creates no container."""
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(PushCancelledError):
            ComponentOrchestrator(fake_client).push("nodejs", devfile, push_commands, cancel_event=cancel)
        assert fake_client.calls == []

    def test_volume_prefix_setting(self, fake_client, devfile, push_commands):
        """Test that volume names use the configured prefix."""
        settings = Settings(volume_name_prefix="ci")
        ComponentOrchestrator(fake_client, settings).push("nodejs", devfile, push_commands)
        assert all(volume.name.startswith("ci-") for volume in fake_client.volumes)

    def test_list_containers(self, fake_client, devfile, push_commands):
        """Test listing the containers of a component."""
        orchestrator = ComponentOrchestrator(fake_client)
        orchestrator.push("nodejs", devfile, push_commands)
        assert [c.alias for c in orchestrator.list_containers("nodejs")] == ["runtime"]
        assert orchestrator.list_containers("python") == []


class TestComponentLock:
    """Tests for the per-component lock registry."""

    def test_same_lock_while_held(self):
        """Test that pushes of one component share a lock while any of them holds it."""
        lock = component_lock("nodejs")
        with lock:
            assert component_lock("nodejs") is lock
            assert lock.locked()
            assert component_lock("python") is not lock
        assert not lock.locked()

    def test_registry_does_not_grow(self, fake_client, devfile, push_commands):
        """Test that locks of finished pushes are dropped from the registry."""
        orchestrator = ComponentOrchestrator(fake_client)
        for i in range(50):
            orchestrator.push(f"component-{i}", devfile, push_commands)
        gc.collect()
        assert not any(name.startswith("component-") for name in component_orchestrator._component_locks)
