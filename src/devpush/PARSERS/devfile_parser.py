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
Parsers for devfile YAML files, and selection of the commands a push runs.
"""
import logging
from typing import Any, Dict, List, Optional
import yaml
from pydantic import ValidationError
from ..MODELS.command import Command, CommandGroup, PushCommands
from ..MODELS.component_spec import ComponentSpec, Endpoint, EnvVar, VolumeComponent, VolumeMount
from ..MODELS.devfile import Devfile
from ..UTILS.errors import ConfigurationError

logger = logging.getLogger(__name__)


class DevfileParser:
    """
    Parser for devfile.yaml files (container and volume components, exec commands).
    """
    def parse(self, devfile_path: str) -> Devfile:
        """
        Parses a devfile from a path.

        :param devfile_path: Path to the devfile.
        :return: Parsed devfile.
        :raises ConfigurationError: If the file is missing or invalid.
        """
        try:
            with open(devfile_path, 'r') as f:
                content = f.read()
        except OSError as err:
            raise ConfigurationError(f"Unable to read devfile {devfile_path}: {err}") from err
        return self.parse_from_string(content)

    def parse_from_string(self, content: str) -> Devfile:
        """
        Parses a devfile from a string.

        :param content: YAML content of the devfile.
        :return: Parsed devfile.
        """
        try:
            data = yaml.safe_load(content)
        except (yaml.YAMLError, ValueError) as err:
            raise ConfigurationError(f"Devfile is not valid YAML: {err}") from err
        if not data:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError("Devfile must be a mapping")

        try:
            components = []
            volumes = []
            for entry in data.get('components') or []:
                if 'container' in entry:
                    components.append(self._parse_container(entry['container']))
                elif 'volume' in entry:
                    volumes.append(VolumeComponent(**self._volume_fields(entry['volume'])))
                else:
                    logger.debug("Ignoring unsupported component %s", entry)

            commands = []
            for entry in data.get('commands') or []:
                if 'exec' in entry:
                    commands.append(self._parse_exec(entry['exec']))
                else:
                    logger.debug("Ignoring unsupported command %s", entry)

            devfile = Devfile(
                name=(data.get('metadata') or {}).get('name'),
                schema_version=data.get('schemaVersion'),
                components=components,
                volumes=volumes,
                commands=commands,
            )
        except (ValidationError, ValueError, KeyError, TypeError, AttributeError) as err:
            raise ConfigurationError(f"Invalid devfile: {err}") from err

        self._validate(devfile)
        return devfile

    def _parse_container(self, spec: Dict[str, Any]) -> ComponentSpec:
        """
        Parses a container component.

        :param spec: The container mapping.
        :return: A ComponentSpec instance.
        """
        return ComponentSpec(
            name=spec['name'],
            image=spec['image'],
            command=self._to_list(spec.get('command')),
            args=self._to_list(spec.get('args')),
            env=[EnvVar(name=e['name'], value=str(e.get('value', ''))) for e in spec.get('env') or []],
            endpoints=[
                Endpoint(name=e['name'], target_port=int(e['targetPort']))
                for e in spec.get('endpoints') or []
            ],
            volume_mounts=[
                VolumeMount(name=v['name'], path=v.get('path') or f"/{v['name']}")
                for v in spec.get('volumeMounts') or []
            ],
            mount_sources=spec.get('mountSources', True),
        )

    def _parse_exec(self, spec: Dict[str, Any]) -> Command:
        group = spec.get('group') or {}
        attributes = spec.get('attributes') or {}
        return Command(
            id=spec['id'],
            component=spec['component'],
            command_line=spec['commandLine'],
            working_dir=spec.get('workingDir'),
            group=CommandGroup(group['kind']) if group.get('kind') else None,
            is_default=bool(group.get('isDefault', False)),
            restart=self._to_bool(attributes.get('restart', True)),
        )

    def _validate(self, devfile: Devfile):
        aliases = [component.name for component in devfile.components]
        if len(set(aliases)) != len(aliases):
            raise ConfigurationError("Devfile declares the same container name more than once")

        declared_volumes = {volume.name for volume in devfile.volumes}
        for component in devfile.components:
            for mount in component.volume_mounts:
                if mount.name not in declared_volumes:
                    raise ConfigurationError(
                        f"Container {component.name} mounts volume {mount.name}, "
                        "which is not declared as a volume component"
                    )

        for command in devfile.commands:
            if command.component not in aliases:
                raise ConfigurationError(
                    f"Command {command.id} targets container {command.component}, "
                    "which is not declared in the devfile"
                )

    @staticmethod
    def _volume_fields(spec: Dict[str, Any]) -> Dict[str, Any]:
        return {'name': spec['name'], 'size': spec.get('size')}

    @staticmethod
    def _to_list(val: Any) -> List[str]:
        """
        Helper to ensure a value is a list of strings.
        """
        if val is None:
            return []
        if isinstance(val, str):
            return [val]
        return [str(v) for v in val]

    @staticmethod
    def _to_bool(val: Any) -> bool:
        # Anything that is not a recognisable false keeps the default restart behaviour
        if isinstance(val, bool):
            return val
        return str(val).strip().lower() not in ('false', '0', 'no')


def get_push_commands(devfile: Devfile,
                      init: Optional[str] = None,
                      build: Optional[str] = None,
                      run: Optional[str] = None) -> PushCommands:
    """
    Selects the init, build and run commands of a push.

    For each group the command named on the command line wins, then the
    group's default command, then the group's only command.

    :raises ConfigurationError: If a named command does not exist in its group, or a
        group has several commands and none is the default.
    """
    return PushCommands(
        init=_select(devfile, CommandGroup.INIT, init),
        build=_select(devfile, CommandGroup.BUILD, build),
        run=_select(devfile, CommandGroup.RUN, run),
    )


def _select(devfile: Devfile, group: CommandGroup, name: Optional[str]) -> Optional[Command]:
    candidates = devfile.commands_in_group(group)
    if name:
        for command in candidates:
            if command.id == name:
                return command
        raise ConfigurationError(f"The command \"{name}\" is not found in the devfile's {group.value} commands")

    if not candidates:
        return None
    defaults = [command for command in candidates if command.is_default]
    if len(defaults) == 1:
        return defaults[0]
    if len(defaults) > 1:
        raise ConfigurationError(f"The devfile has more than one default {group.value} command")
    if len(candidates) == 1:
        return candidates[0]
    raise ConfigurationError(
        f"The devfile has {len(candidates)} {group.value} commands and none is marked isDefault"
    )
