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
Exceptions raised while loading and ordering deployments.
"""
from typing import List, Optional


class ComposeError(ValueError):
    """
    Raised when a compose document cannot be turned into a deployment.
    Carries every problem found, one readable line each.
    """
    def __init__(self, message: str, errors: Optional[List[str]] = None):
        self.errors = list(errors) if errors else [message]
        super().__init__(message)

    def __str__(self) -> str:
        if len(self.errors) == 1 and self.errors[0] == self.args[0]:
            return self.args[0]
        return self.args[0] + "\n" + "\n".join(f"  - {e}" for e in self.errors)


class CircularDependencyError(ValueError):
    """
    Raised when services depend on each other in a loop.
    """
    def __init__(self, cycle: List[str]):
        self.cycle = cycle
        super().__init__(f"Circular dependency detected: {' -> '.join(cycle)}")
