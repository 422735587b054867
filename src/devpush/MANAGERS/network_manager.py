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
Network management for components, mapping exposed URLs onto host port bindings.
"""
import logging
from typing import Dict, List, Tuple
from ..MODELS.component_spec import Endpoint, ExposedURL
from ..MODELS.container_config import PortBinding
from ..UTILS.errors import PortMappingError

logger = logging.getLogger(__name__)

LOCALHOST_IP = "127.0.0.1"


class NetworkManager:
    """
    Translates the URLs exposed for a component into port bindings for its containers.
    """

    def map_ports(self,
                  endpoints: List[Endpoint],
                  urls: List[ExposedURL]) -> Tuple[List[PortBinding], Dict[int, str]]:
        """
        Binds every exposed URL whose port the container declares.

        :param endpoints: Endpoints declared by the container.
        :param urls: URL records persisted for the component.
        :return: The port bindings, and the URL name for each bound container port.
        :raises PortMappingError: If a URL targets a port the container no longer
            declares. URLs are ignored when the container declares no endpoints.
        """
        declared = {endpoint.target_port for endpoint in endpoints}
        bindings: Dict[int, PortBinding] = {}
        names: Dict[int, str] = {}

        for url in urls:
            if url.exposed_port <= 0:
                continue
            if url.port in declared:
                bindings[url.port] = PortBinding(
                    container_port=url.port,
                    host_ip=LOCALHOST_IP,
                    host_port=url.exposed_port,
                    name=url.name,
                )
                names[url.port] = url.name
                logger.debug("URL %s: %s:%s -> %s", url.name, LOCALHOST_IP, url.exposed_port, url.port)
            elif declared:
                raise PortMappingError(
                    f"URL {url.name} uses port {url.port}, which is not declared in the devfile. "
                    "Please re-create the URL with a port from the devfile"
                )

        return list(bindings.values()), names

    @staticmethod
    def port_labels(names: Dict[int, str]) -> Dict[str, str]:
        """
        Container labels recording which URL each port is bound for.
        """
        return {str(port): name for port, name in names.items()}
