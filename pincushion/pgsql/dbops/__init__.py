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


"""Abstractions for low-level database DDL operations."""

from __future__ import annotations

from .base import *  # NOQA
from .ddl import *  # NOQA
from .functions import *  # NOQA
from .rules import *  # NOQA
from .tables import *  # NOQA
from .triggers import *  # NOQA
from .types import *  # NOQA
from .views import *  # NOQA
