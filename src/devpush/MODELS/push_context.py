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
The immutable context shared by every step of one push.
"""
import threading
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field
from .component_spec import ComponentSpec, ExposedURL
from .command import Command, PushCommands
from ..UTILS.errors import PushCancelledError
from ..UTILS.settings import Settings


class PushContext(BaseModel):
    """
    Everything a push needs, resolved once before any container is touched.

    ``client`` is any object implementing the RuntimeClient protocol.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    component_name: str
    client: Any
    components: List[ComponentSpec] = []
    commands: PushCommands = Field(default_factory=PushCommands)
    exposed_urls: List[ExposedURL] = []

    # Runtime volume names
    project_volume: Optional[str] = None
    supervisor_volume: Optional[str] = None
    storage_volumes: Dict[str, str] = {}  # devfile volume name -> runtime volume name

    settings: Settings = Field(default_factory=Settings)
    cancel_event: Optional[threading.Event] = None

    @property
    def run_command(self) -> Optional[Command]:
        return self.commands.run

    @property
    def show_log(self) -> bool:
        return self.settings.show_log

    def check_cancelled(self):
        """
        Raises PushCancelledError once cancellation has been requested.
        """
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise PushCancelledError("Push cancelled", component=self.component_name)
