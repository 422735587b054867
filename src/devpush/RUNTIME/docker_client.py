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
Runtime client backed by a local Docker engine.
Talks to the engine through the Docker SDK for Python.
"""
import json
import logging
from typing import Any, Dict, List, Optional

import docker
from docker.errors import DockerException, ImageNotFound
from docker.types import Mount
from docker.utils import parse_repository_tag

from ..MODELS.container_config import (
    ContainerConfig,
    ExecResult,
    LiveContainer,
    MountSpec,
    PortBinding,
    VolumeRecord,
)
from ..UTILS.errors import RuntimeCallError

logger = logging.getLogger(__name__)

DEFAULT_TAG = "latest"

# Lists what a container was created with, as opposed to what its image supplies.
DECLARED_LABEL = "devpush.declared"


def _label_filters(labels: Dict[str, str]) -> Dict[str, List[str]]:
    return {"label": [f"{key}={value}" for key, value in labels.items()]}


def _declared(config: ContainerConfig) -> str:
    return json.dumps({
        "env": sorted(config.env),
        "mounts": sorted(mount.target for mount in config.mounts),
        "entrypoint": bool(config.command),
        "cmd": bool(config.args),
    }, sort_keys=True)


def _parse_declared(value: Optional[str]) -> Optional[Dict[str, Any]]:
    if not value:
        return None
    try:
        declared = json.loads(value)
    except ValueError:
        logger.warning("Ignoring malformed %s label: %r", DECLARED_LABEL, value)
        return None
    return declared if isinstance(declared, dict) else None


class DockerRuntimeClient:
    """
    Implements the RuntimeClient protocol on top of ``docker.DockerClient``.
    """

    def __init__(self,
                 base_url: Optional[str] = None,
                 timeout: float = 120.0,
                 client: Optional[docker.DockerClient] = None):
        """
        Connects to the Docker engine.

        Args:
            base_url: Engine address, e.g. unix://var/run/docker.sock. Defaults to DOCKER_HOST.
            timeout: Seconds to wait for any single engine call.
            client: An already configured SDK client, used as is.
        """
        if client is not None:
            self.client = client
            return
        try:
            if base_url:
                self.client = docker.DockerClient(base_url=base_url, timeout=int(timeout))
            else:
                self.client = docker.from_env(timeout=int(timeout))
        except DockerException as err:
            raise RuntimeCallError("connect to the Docker engine", str(err)) from err

    def list_volumes_by_label(self, labels: Dict[str, str]) -> List[VolumeRecord]:
        try:
            volumes = self.client.volumes.list(filters=_label_filters(labels))
        except DockerException as err:
            raise RuntimeCallError("list volumes", str(err)) from err
        return [VolumeRecord(name=vol.name, labels=vol.attrs.get("Labels") or {}) for vol in volumes]

    def create_volume(self, name: str, labels: Dict[str, str]) -> VolumeRecord:
        logger.debug("Creating volume %s with labels %s", name, labels)
        try:
            volume = self.client.volumes.create(name=name, labels=labels)
        except DockerException as err:
            raise RuntimeCallError(f"create volume {name}", str(err)) from err
        return VolumeRecord(name=volume.name, labels=volume.attrs.get("Labels") or labels)

    def remove_volume(self, name: str) -> None:
        logger.debug("Removing volume %s", name)
        try:
            self.client.volumes.get(name).remove(force=True)
        except DockerException as err:
            raise RuntimeCallError(f"remove volume {name}", str(err)) from err

    def pull_image(self, image: str) -> None:
        repository, tag = parse_repository_tag(image)
        logger.debug("Pulling %s (tag %s)", repository, tag or DEFAULT_TAG)
        try:
            self.client.images.pull(repository, tag=tag or DEFAULT_TAG)
        except DockerException as err:
            raise RuntimeCallError(f"pull image {image}", str(err)) from err

    def create_and_start_container(self, config: ContainerConfig) -> str:
        """
        Creates and starts a container.
        A container that was created but failed to start is removed again.
        """
        ports = {
            f"{binding.container_port}/tcp": (binding.host_ip, binding.host_port)
            for binding in config.port_bindings
        }
        mounts = [Mount(target=mount.target, source=mount.source, type="volume") for mount in config.mounts]
        try:
            container = self.client.containers.create(
                config.image,
                entrypoint=config.command or None,
                command=config.args or None,
                environment=config.env_list(),
                labels={**config.labels, DECLARED_LABEL: _declared(config)},
                ports=ports,
                mounts=mounts,
            )
        except DockerException as err:
            raise RuntimeCallError(f"create container from {config.image}", str(err)) from err

        try:
            container.start()
        except DockerException as err:
            logger.debug("Removing container %s after failed start", container.id)
            try:
                container.remove(force=True)
            except DockerException as cleanup_err:
                logger.warning("Could not remove container %s: %s", container.id, cleanup_err)
            raise RuntimeCallError(f"start container from {config.image}", str(err)) from err
        return container.id

    def remove_container(self, container_id: str) -> None:
        logger.debug("Removing container %s", container_id)
        try:
            self.client.containers.get(container_id).remove(force=True)
        except DockerException as err:
            raise RuntimeCallError(f"remove container {container_id}", str(err)) from err

    def list_containers_by_label(self, labels: Dict[str, str]) -> List[LiveContainer]:
        try:
            containers = self.client.containers.list(all=True, filters=_label_filters(labels))
        except DockerException as err:
            raise RuntimeCallError("list containers", str(err)) from err
        return [
            LiveContainer(id=c.id, labels=c.labels or {}, command=self._command_line(c.attrs))
            for c in containers
        ]

    def inspect_container_config(self, container_id: str) -> ContainerConfig:
        """
        Reads back a container's configuration.

        Only what was set when the container was created is reported. The
        ``devpush.declared`` label written by create_and_start_container
        names those env entries, mounts, entrypoint and cmd, even where they
        equal the image's own values. Containers without the label fall back
        to leaving out whatever matches the image: its env entries, its
        entrypoint and cmd, and the anonymous volumes of its VOLUME paths.
        """
        try:
            attrs = self.client.containers.get(container_id).attrs
        except DockerException as err:
            raise RuntimeCallError(f"inspect container {container_id}", str(err)) from err

        config = attrs.get("Config") or {}
        host_config = attrs.get("HostConfig") or {}
        labels = dict(config.get("Labels") or {})
        declared = _parse_declared(labels.pop(DECLARED_LABEL, None))

        entries = [entry.partition("=") for entry in config.get("Env") or []]
        command = config.get("Entrypoint") or []
        args = config.get("Cmd") or []
        mounts = []
        for mount in attrs.get("Mounts") or []:
            source = mount.get("Name") if mount.get("Type") == "volume" else mount.get("Source")
            mounts.append(MountSpec(source=source or "", target=mount.get("Destination", "")))

        if declared is not None:
            env_names = set(declared.get("env") or [])
            targets = set(declared.get("mounts") or [])
            env = {name: value for name, _, value in entries if name in env_names}
            mounts = [mount for mount in mounts if mount.target in targets]
            if not declared.get("entrypoint"):
                command = []
            if not declared.get("cmd"):
                args = []
        else:
            image_config = self._image_config(config.get("Image", ""))
            image_env = set(image_config.get("Env") or [])
            env = {name: value for name, sep, value in entries if f"{name}{sep}{value}" not in image_env}
            if command == (image_config.get("Entrypoint") or []):
                command = []
            if args == (image_config.get("Cmd") or []):
                args = []
            image_volumes = image_config.get("Volumes") or {}
            mounts = [mount for mount in mounts if mount.target not in image_volumes]

        bindings = []
        for port, host_bindings in (host_config.get("PortBindings") or {}).items():
            container_port = int(port.split("/")[0])
            for host_binding in host_bindings or []:
                bindings.append(PortBinding(
                    container_port=container_port,
                    host_ip=host_binding.get("HostIp", ""),
                    host_port=int(host_binding.get("HostPort") or 0),
                ))

        return ContainerConfig(
            image=config.get("Image", ""),
            command=list(command),
            args=list(args),
            env=env,
            labels=labels,
            mounts=mounts,
            port_bindings=bindings,
        )

    def exec(self, container_id: str, argv: List[str], attach_output: bool = False) -> ExecResult:
        """
        Runs a command inside a container and waits for it to finish.
        With ``attach_output`` every output line is logged as it arrives.
        """
        api = self.client.api
        lines = []
        try:
            exec_id = api.exec_create(container_id, argv)["Id"]
            pending = ""
            for chunk in api.exec_start(exec_id, stream=True):
                pending += chunk.decode("utf-8", errors="replace")
                *complete, pending = pending.split("\n")
                for line in complete:
                    lines.append(line)
                    if attach_output:
                        logger.info("%s", line)
            if pending:
                lines.append(pending)
                if attach_output:
                    logger.info("%s", pending)
            exit_code = api.exec_inspect(exec_id).get("ExitCode")
        except DockerException as err:
            raise RuntimeCallError(f"execute {' '.join(argv)} in container {container_id}", str(err)) from err
        return ExecResult(exit_code=exit_code, output="\n".join(lines))

    def _image_config(self, image: str) -> Dict[str, Any]:
        if not image:
            return {}
        try:
            return self.client.images.get(image).attrs.get("Config") or {}
        except ImageNotFound:
            return {}
        except DockerException as err:
            raise RuntimeCallError(f"inspect image {image}", str(err)) from err

    @staticmethod
    def _command_line(attrs: Dict[str, Any]) -> str:
        path = attrs.get("Path") or ""
        args = attrs.get("Args") or []
        return " ".join([path] + list(args)).strip()
