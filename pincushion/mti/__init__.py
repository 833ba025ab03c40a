#
# This source file is part of the PinCushion open source project.
#
# Copyright 2012-present the PinCushion authors.
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
#


"""Multi-table inheritance emulated through views, rules and triggers."""

from __future__ import annotations

from .compiler import InheritanceCompiler, render
from .spec import Identifier, InheritanceSpec, singularize

__all__ = (
    'Identifier',
    'InheritanceCompiler',
    'InheritanceSpec',
    'render',
    'singularize',
)
