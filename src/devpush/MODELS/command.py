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
Models for devfile commands and the set of commands selected for a push.
"""
from enum import Enum
from typing import Iterator, List, Optional, Tuple
from pydantic import BaseModel, ConfigDict


class CommandGroup(str, Enum):
    """
    The group a devfile command belongs to.
    """
    INIT = "init"
    BUILD = "build"
    RUN = "run"
    TEST = "test"
    DEBUG = "debug"


class Command(BaseModel):
    """
    A devfile exec command bound to one container alias.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    component: str
    command_line: str
    working_dir: Optional[str] = None
    group: Optional[CommandGroup] = None
    is_default: bool = False

    # Run commands only: whether a push restarts the running process
    restart: bool = True


class PushCommands(BaseModel):
    """
    The init, build and run commands selected for one push.
    """
    model_config = ConfigDict(frozen=True)

    init: Optional[Command] = None
    build: Optional[Command] = None
    run: Optional[Command] = None

    def stages(self) -> Iterator[Tuple[CommandGroup, Command]]:
        """
        Yields the declared commands in execution order.
        """
        for group, command in ((CommandGroup.INIT, self.init),
                               (CommandGroup.BUILD, self.build),
                               (CommandGroup.RUN, self.run)):
            if command is not None:
                yield group, command

    def all(self) -> List[Command]:
        return [command for _, command in self.stages()]

    def is_empty(self) -> bool:
        return not self.all()
