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
Models for a parsed devfile.
"""
from typing import List, Optional
from pydantic import BaseModel
from .component_spec import ComponentSpec, VolumeComponent
from .command import Command, CommandGroup


class Devfile(BaseModel):
    """
    The parts of a devfile a push works with.
    Equivalent to a parsed devfile.yaml file.
    """
    name: Optional[str] = None
    schema_version: Optional[str] = None
    components: List[ComponentSpec] = []
    volumes: List[VolumeComponent] = []
    commands: List[Command] = []

    def get_component(self, alias: str) -> Optional[ComponentSpec]:
        for component in self.components:
            if component.name == alias:
                return component
        return None

    def commands_in_group(self, group: CommandGroup) -> List[Command]:
        return [command for command in self.commands if command.group == group]
