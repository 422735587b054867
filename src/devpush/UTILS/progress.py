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
Progress reporting for long running push steps.
"""
import logging
import time
from contextlib import contextmanager
from typing import Iterator

logger = logging.getLogger("devpush.progress")


@contextmanager
def progress(message: str) -> Iterator[None]:
    """
    Logs the start of a step and exactly one outcome for it.

    :param message: Description of the step, e.g. "Pulling image nginx".
    """
    start = time.monotonic()
    logger.info("%s...", message)
    try:
        yield
    except BaseException:
        logger.info("%s [failed]", message)
        raise
    logger.info("%s [done in %.1fs]", message, time.monotonic() - start)
