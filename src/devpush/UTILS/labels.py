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
Label sets used to find the runtime resources that belong to a component.
"""
from typing import Dict

COMPONENT_LABEL = "component"
ALIAS_LABEL = "alias"
TYPE_LABEL = "type"
STORAGE_NAME_LABEL = "storage-name"

PROJECTS_VOLUME_TYPE = "projects"
SUPERVISOR_VOLUME_TYPE = "supervisord"


def container_labels(component_name: str, alias: str) -> Dict[str, str]:
    return {COMPONENT_LABEL: component_name, ALIAS_LABEL: alias}


def component_labels(component_name: str) -> Dict[str, str]:
    return {COMPONENT_LABEL: component_name}


def project_volume_labels(component_name: str) -> Dict[str, str]:
    return {COMPONENT_LABEL: component_name, TYPE_LABEL: PROJECTS_VOLUME_TYPE}


def supervisor_volume_labels(component_name: str) -> Dict[str, str]:
    return {COMPONENT_LABEL: component_name, TYPE_LABEL: SUPERVISOR_VOLUME_TYPE}


def storage_volume_labels(component_name: str, storage_name: str) -> Dict[str, str]:
    return {COMPONENT_LABEL: component_name, STORAGE_NAME_LABEL: storage_name}
