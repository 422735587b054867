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
Error types raised while pushing a component.

Every error carries optional component and alias context. The context is
filled in by :func:`error_context` as the error travels up through the
push, so callers always see which component failed.
"""
from contextlib import contextmanager
from typing import Iterator, Optional


class DevPushError(Exception):
    """Base class for all push errors."""

    def __init__(self,
                 message: str,
                 component: Optional[str] = None,
                 alias: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.component = component
        self.alias = alias

    def __str__(self) -> str:
        context = []
        if self.component:
            context.append(f"component {self.component}")
        if self.alias:
            context.append(f"container {self.alias}")
        if context:
            return f"{self.message} ({', '.join(context)})"
        return self.message


class ConfigurationError(DevPushError):
    """The devfile or the push request is unusable as declared."""


class ConflictError(DevPushError):
    """More than one runtime resource matches a label set that must be unique."""


class PortMappingError(DevPushError):
    """An exposed URL points at a port the component no longer declares."""


class RuntimeCallError(DevPushError):
    """A call to the container runtime failed."""

    def __init__(self,
                 operation: str,
                 message: str,
                 component: Optional[str] = None,
                 alias: Optional[str] = None):
        super().__init__(f"Unable to {operation}: {message}", component, alias)
        self.operation = operation


class CommandExecError(DevPushError):
    """A devfile command exited with a non-zero status inside its container."""

    def __init__(self,
                 command_id: str,
                 exit_code: Optional[int],
                 output: str = "",
                 component: Optional[str] = None,
                 alias: Optional[str] = None):
        message = f"Command {command_id} failed with exit code {exit_code}"
        if output:
            message = f"{message}: {output}"
        super().__init__(message, component, alias)
        self.command_id = command_id
        self.exit_code = exit_code
        self.output = output


class PushCancelledError(DevPushError):
    """The push was cancelled before it completed."""


@contextmanager
def error_context(component: Optional[str], alias: Optional[str] = None) -> Iterator[None]:
    """
    Attaches component and alias context to any DevPushError raised inside the block.

    Context already set closer to the failure is kept.
    """
    try:
        yield
    except DevPushError as err:
        if not err.component:
            err.component = component
        if not err.alias:
            err.alias = alias
        raise
