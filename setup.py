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


import pathlib
import re

import setuptools


ROOT_PATH = pathlib.Path(__file__).parent.resolve()

RUNTIME_DEPS = [
    'asyncpg>=0.29.0',
]

TEST_DEPS = [
    'pytest>=7.0',
]


def _version():
    init = (ROOT_PATH / 'pincushion' / '__init__.py').read_text()
    m = re.search(r"^__version__ = '([^']+)'$", init, re.M)
    if m is None:
        raise RuntimeError('cannot find __version__ in pincushion/__init__.py')
    return m.group(1)


setuptools.setup(
    name='pincushion',
    version=_version(),
    description='Multi-table inheritance for PostgreSQL via views and rules',
    license='Apache License, Version 2.0',
    python_requires='>=3.10',
    packages=setuptools.find_packages(include=['pincushion', 'pincushion.*']),
    install_requires=RUNTIME_DEPS,
    extras_require={
        'test': TEST_DEPS,
    },
)
