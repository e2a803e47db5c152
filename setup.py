#!/usr/bin/env python3

import os
import re

from setuptools import setup


def read(fname):
    with open(os.path.join(os.path.dirname(__file__), fname)) as f:
        return f.read()


def version():
    match = re.search(r"^__version__ = ['\"]([^'\"]*)['\"]", read("pagestate/__init__.py"), re.M)
    if not match:
        raise RuntimeError("failed to parse version")
    return match.group(1)


install_requires = [
    "aiosqlite >= 0.17.0",
    "iso8601 >= 1.0.2",
    "multidict >= 6.0.2",
    "uvicorn >= 0.17.0",
    "wrapt >= 1.13.3",
]

extras_require = {
    "test": [
        "pytest >= 7.0",
        "pytest-asyncio >= 0.18.0",
    ],
}

classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "License :: OSI Approved :: Mozilla Public License 2.0 (MPL 2.0)",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Topic :: Database",
    "Topic :: Internet :: WWW/HTTP",
]

setup(
    name="pagestate",
    version=version(),
    description="Forward and random-access pagination over batch-oriented query execution.",
    long_description=read("README.rst"),
    license="Mozilla Public License 2.0",
    classifiers=classifiers,
    packages=["pagestate"],
    python_requires=">= 3.10",
    install_requires=install_requires,
    extras_require=extras_require,
    entry_points={"console_scripts": ["pagestate = pagestate.__main__:main"]},
    keywords="pagination cursor paging asgi sqlite",
)
