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
Shared fixtures: an in-memory container runtime that records every call.
"""
import threading
import pytest
from devpush.MODELS.command import Command, CommandGroup, PushCommands
from devpush.MODELS.component_spec import ComponentSpec, Endpoint, EnvVar
from devpush.MODELS.container_config import ExecResult, LiveContainer, VolumeRecord
from devpush.MODELS.push_context import PushContext
from devpush.UTILS.errors import RuntimeCallError


class FakeRuntimeClient:
    """
    Runtime client keeping volumes and containers in memory.
    """

    def __init__(self):
        self.volumes = []
        self.containers = {}  # id -> (ContainerConfig, command line)
        self.calls = []
        self.execs = []
        self.failing = set()  # substrings of argv that make exec fail
        self.broken_images = set()
        self._next_id = 0
        self._lock = threading.Lock()

    def count(self, operation):
        return sum(1 for call in self.calls if call[0] == operation)

    def seed_container(self, config, command=""):
        with self._lock:
            self._next_id += 1
            container_id = f"seeded{self._next_id}"
            self.containers[container_id] = (config, command)
        return container_id

    def list_volumes_by_label(self, labels):
        self.calls.append(("list_volumes", dict(labels)))
        with self._lock:
            volumes = list(self.volumes)
        return [v for v in volumes if labels.items() <= v.labels.items()]

    def create_volume(self, name, labels):
        self.calls.append(("create_volume", name))
        volume = VolumeRecord(name=name, labels=dict(labels))
        with self._lock:
            self.volumes.append(volume)
        return volume

    def remove_volume(self, name):
        self.calls.append(("remove_volume", name))
        with self._lock:
            self.volumes = [volume for volume in self.volumes if volume.name != name]

    def pull_image(self, image):
        self.calls.append(("pull_image", image))
        if image in self.broken_images:
            raise RuntimeCallError(f"pull image {image}", "manifest unknown")

    def create_and_start_container(self, config):
        self.calls.append(("create_container", config.image))
        with self._lock:
            self._next_id += 1
            container_id = f"container{self._next_id}"
            self.containers[container_id] = (config, " ".join(config.command + config.args))
        return container_id

    def remove_container(self, container_id):
        self.calls.append(("remove_container", container_id))
        with self._lock:
            del self.containers[container_id]

    def list_containers_by_label(self, labels):
        self.calls.append(("list_containers", dict(labels)))
        with self._lock:
            items = list(self.containers.items())
        return [
            LiveContainer(id=container_id, labels=dict(config.labels), command=command)
            for container_id, (config, command) in items
            if labels.items() <= config.labels.items()
        ]

    def inspect_container_config(self, container_id):
        self.calls.append(("inspect_container", container_id))
        return self.containers[container_id][0].model_copy(deep=True)

    def exec(self, container_id, argv, attach_output=False):
        self.calls.append(("exec", container_id))
        self.execs.append((container_id, list(argv)))
        line = " ".join(argv)
        if any(marker in line for marker in self.failing):
            return ExecResult(exit_code=1, output="boom")
        return ExecResult(exit_code=0, output="")

    def exec_lines(self):
        return [" ".join(argv) for _, argv in self.execs]


@pytest.fixture
def fake_client():
    return FakeRuntimeClient()


@pytest.fixture
def runtime_spec():
    return ComponentSpec(
        name="runtime",
        image="node:18",
        command=["tail"],
        args=["-f", "/dev/null"],
        env=[EnvVar(name="DEBUG", value="true")],
        endpoints=[Endpoint(name="http", target_port=8080)],
    )


@pytest.fixture
def push_commands():
    return PushCommands(
        init=Command(id="setup", component="runtime", command_line="npm ci", group=CommandGroup.INIT),
        build=Command(id="install", component="runtime", command_line="npm install",
                      working_dir="/projects", group=CommandGroup.BUILD),
        run=Command(id="start", component="runtime", command_line="npm start",
                    working_dir="/projects", group=CommandGroup.RUN),
    )


@pytest.fixture
def make_context(fake_client, runtime_spec, push_commands):
    """
    Builds a PushContext with resolved volume names, overridable per test.
    """
    def _make(**overrides):
        fields = dict(
            component_name="nodejs",
            client=fake_client,
            components=[runtime_spec],
            commands=push_commands,
            exposed_urls=[],
            project_volume="devpush-project-source-nodejs-abcd",
            supervisor_volume="devpush-supervisord-nodejs-efgh",
        )
        fields.update(overrides)
        return PushContext(**fields)
    return _make
