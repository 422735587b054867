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
Settings read from DEVPUSH_* environment variables and an optional .env file.
"""
import os
from typing import Dict, Mapping, Optional
from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict, ValidationError
from .errors import ConfigurationError

ENV_PREFIX = "DEVPUSH_"


class Settings(BaseModel):
    """
    Tunables for a push. Every field can be set as DEVPUSH_<FIELD>.
    """
    model_config = ConfigDict(frozen=True)

    docker_host: Optional[str] = None
    timeout: float = 120.0
    log_level: str = "INFO"
    supervisor_image: str = "devpush/supervisord:latest"
    volume_name_prefix: str = "devpush"
    show_log: bool = False


def load_settings(env_file: Optional[str] = None,
                  environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Builds the settings from a .env file and the process environment.

    :param env_file: Path to a .env file. Missing files are ignored.
    :param environ: Environment to read, defaults to os.environ. Wins over the file.
    :return: The loaded settings.
    :raises ConfigurationError: If a value cannot be converted.
    """
    values: Dict[str, Optional[str]] = {}
    if env_file and os.path.exists(env_file):
        values.update(dotenv_values(env_file))
    values.update(os.environ if environ is None else environ)

    fields = {}
    for name in Settings.model_fields:
        value = values.get(ENV_PREFIX + name.upper())
        if value is not None and value != "":
            fields[name] = value
    try:
        return Settings(**fields)
    except ValidationError as err:
        raise ConfigurationError(f"Invalid DEVPUSH_* setting: {err}") from err
