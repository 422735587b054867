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
Parsers for the per-context env.yaml file holding the component's URL records.
"""
import os
from typing import List, Optional
import yaml
from pydantic import ValidationError
from ..MODELS.component_spec import ExposedURL
from ..UTILS.errors import ConfigurationError

ENV_FILE_PATH = os.path.join(".devpush", "env", "env.yaml")


class EnvInfo:
    """
    Reads the URLs persisted for a component.

    Example env.yaml::

        componentSettings:
          name: nodejs
          url:
            - name: app
              port: 8080
              exposedPort: 20001
    """
    def __init__(self, context_dir: Optional[str] = None):
        """
        :param context_dir: The component's context directory, defaults to the working directory.
        """
        self.context_dir = context_dir or os.getcwd()
        self.path = os.path.join(self.context_dir, ENV_FILE_PATH)

    def get_exposed_urls(self) -> List[ExposedURL]:
        """
        Returns the URL records, or no records when the file does not exist.
        """
        content = self._read()
        if content is None:
            return []
        return self.parse_from_string(content)

    @staticmethod
    def parse_from_string(content: str) -> List[ExposedURL]:
        try:
            data = yaml.safe_load(content) or {}
        except (yaml.YAMLError, ValueError) as err:
            raise ConfigurationError(f"env.yaml is not valid YAML: {err}") from err
        if not isinstance(data, dict):
            raise ConfigurationError("env.yaml must be a mapping")

        settings = data.get('componentSettings') or {}
        if not isinstance(settings, dict):
            raise ConfigurationError("componentSettings in env.yaml must be a mapping")
        records = settings.get('url') or []
        if not isinstance(records, list):
            raise ConfigurationError("url in env.yaml must be a list")
        urls = []
        for url in records:
            try:
                urls.append(ExposedURL(
                    name=url['name'],
                    port=int(url['port']),
                    exposed_port=int(url.get('exposedPort') or 0),
                ))
            except (ValidationError, KeyError, TypeError, ValueError, AttributeError) as err:
                raise ConfigurationError(f"Invalid URL record in env.yaml: {url}") from err
        return urls

    def get_component_name(self) -> Optional[str]:
        """
        Returns the component name stored in env.yaml, if any.
        """
        content = self._read()
        if content is None:
            return None
        try:
            data = yaml.safe_load(content) or {}
        except (yaml.YAMLError, ValueError) as err:
            raise ConfigurationError(f"env.yaml is not valid YAML: {err}") from err
        settings = data.get('componentSettings') if isinstance(data, dict) else None
        if not isinstance(settings, dict) or settings.get('name') is None:
            return None
        return str(settings['name'])

    def _read(self) -> Optional[str]:
        if not os.path.exists(self.path):
            return None
        try:
            with open(self.path, 'r') as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as err:
            raise ConfigurationError(f"Unable to read {self.path}: {err}") from err
